"""Core of a document database speaking the RethinkDB wire protocol."""

__version__ = "3.0.0a0"