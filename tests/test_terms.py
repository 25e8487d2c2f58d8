import pytest

from photondb.reql.terms import QueryType, ResponseType, TermType


def test_term_type_conversion():
    assert TermType.from_id(0) is TermType.DATUM
    assert TermType.from_id(1) is TermType.MAKE_ARRAY
    assert TermType.from_id(13) is TermType.EQ
    assert TermType.from_id(999) is None


def test_term_type_to_id():
    assert int(TermType.from_id(0)) == 0
    assert int(TermType.from_id(1)) == 1
    assert int(TermType.from_id(13)) == 13


def test_term_type_names():
    assert TermType.from_id(0).name == "DATUM"
    assert TermType.from_id(53).name == "FILTER"
    assert TermType.from_id(76).name == "INSERT"


def test_str_is_name():
    assert str(TermType.from_id(53)) == "FILTER"
    assert f"{TermType.from_id(79)}" == "DB_LIST"


@pytest.mark.parametrize("value", [-1, 5, 25, 38, 157, "13", 13.5, True, None])
def test_from_id_rejects_unknown(value):
    assert TermType.from_id(value) is None


def test_from_id_round_trip_all_members():
    for member in TermType:
        assert TermType.from_id(int(member)) is member


def test_known_identifiers():
    assert int(TermType.MAP) == 51
    assert int(TermType.FILTER) == 53
    assert TermType.from_id(103) is TermType.FUNC


def test_query_and_response_kinds():
    assert [QueryType(q.value).name for q in QueryType] == [
        "START",
        "CONTINUE",
        "STOP",
        "WAIT",
    ]
    runtime_error = ResponseType["RUNTIME_ERROR"]
    assert ResponseType(runtime_error.value) is ResponseType.RUNTIME_ERROR
    assert len(ResponseType) == 8