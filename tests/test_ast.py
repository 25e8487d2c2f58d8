from photondb.reql.ast import Term, TermBuilder
from photondb.reql.terms import TermType


def test_term_creation():
    term = Term(TermType.DB)
    assert term.term_type == TermType.DB
    assert term.args == []
    assert term.optargs == {}


def test_datum_term():
    term = Term.literal("test")
    assert term.is_datum()
    assert term.datum == "test"


def test_db_term():
    term = Term.db("mydb")
    assert term.term_type == TermType.DB
    assert len(term.args) == 1
    db_name = term.first_arg()
    assert db_name.is_datum()
    assert db_name.datum == "mydb"


def test_filter_term():
    term = Term.filter(Term.table("users"), Term.literal(True))
    assert term.term_type == TermType.FILTER
    assert len(term.args) == 2


def test_builder():
    term = (
        TermBuilder(TermType.GET)
        .arg(Term.table("users"))
        .arg(Term.literal("id123"))
        .optarg("read_mode", Term.literal("single"))
        .build()
    )
    assert term.term_type == TermType.GET
    assert len(term.args) == 2
    assert term.optarg("read_mode") == Term.literal("single")


def test_with_methods_do_not_mutate():
    base = Term(TermType.ADD)
    extended = base.with_arg(Term.literal(1.0)).with_args([Term.literal(2.0)])
    assert base.args == []
    assert [a.datum for a in extended.args] == [1.0, 2.0]
    opt = base.with_optarg("a", Term.literal(1.0)).with_optargs({"b": Term.literal(2.0)})
    assert set(opt.optargs) == {"a", "b"}
    assert base.optargs == {}


def test_arg_out_of_range_is_none():
    term = Term.db("x")
    assert term.arg(1) is None
    assert term.arg(-1) is None
    assert Term.db_list().first_arg() is None
    assert term.optarg("missing") is None


def test_limit_and_skip_store_floats():
    seq = Term.literal([1.0, 2.0])
    assert Term.limit(seq, 3).args[1].datum == 3.0
    assert Term.skip(seq, 2).term_type == TermType.SKIP


def test_sum_optional_field():
    seq = Term.table("t")
    assert len(Term.sum(seq).args) == 1
    with_field = Term.avg(seq, "age")
    assert with_field.term_type == TermType.AVG
    assert with_field.args[1].datum == "age"


def test_get_all_and_insert():
    table = Term.table("t")
    get_all = Term.get_all(table, ["a", "b"])
    assert [a.datum for a in get_all.args[1:]] == ["a", "b"]
    insert = Term.insert(table, [{"id": 1.0}])
    assert insert.term_type == TermType.INSERT
    assert insert.args[1].datum == {"id": 1.0}


def test_logic_constructors():
    one, two = Term.literal(1.0), Term.literal(2.0)
    assert Term.eq(one, two).term_type == TermType.EQ
    assert Term.ne(one, two).term_type == TermType.NE
    assert Term.lt(one, two).term_type == TermType.LT
    assert Term.gt(one, two).term_type == TermType.GT
    assert Term.and_([one, two]).term_type == TermType.AND
    assert Term.or_([one]).term_type == TermType.OR
    assert Term.not_(one).args == [one]


def test_pretty_print_datum():
    assert Term.literal(1.0).pretty_print(0) == "DATUM(1)"


def test_pretty_print_nested():
    assert Term.db("mydb").pretty_print(0) == 'DB(\n  DATUM("mydb")\n)'


def test_pretty_print_multiple_args():
    term = Term.add([Term.literal(1.0), Term.literal(2.0)])
    assert term.pretty_print() == "ADD(\n  DATUM(1),\n  DATUM(2)\n)"


def test_pretty_print_optargs():
    term = Term.table("t").with_optarg("x", Term.literal(True))
    assert term.pretty_print(0) == 'TABLE(\n  DATUM("t")\n {\n  x:     DATUM(true)\n})'