"""
Full-text and similarity primitives of the relational store.

The search engine composes queries against :class:`TextSearchBackend` and
never names a store function directly. Full-text predicates work on the
stored ``tsv`` column of each searchable table. PostgreSQL uses its native
text search (``websearch_to_tsquery`` / ``ts_rank_cd``) and ``pg_trgm``;
SQLite, used for local development and tests, gets equivalent SQL functions
(``to_tsvector`` included, for the generated columns) registered on every
new connection.
"""
from sqlalchemy import Boolean, Float, cast, event, func, literal
from sqlalchemy.dialects.postgresql import REGCONFIG
from sqlalchemy.engine import Engine

from marketplace.utils import trigram
from marketplace.utils.logging import get_logger

logger = get_logger(__name__)


class TextSearchBackend:
    name = "base"

    def fulltext_match(self, vector, term: str):
        raise NotImplementedError

    def fulltext_rank(self, vector, term: str):
        raise NotImplementedError

    def similarity(self, name, term: str):
        raise NotImplementedError


class PostgresTextSearch(TextSearchBackend):
    name = "postgresql"

    def __init__(self, ts_config: str = "simple"):
        self.ts_config = ts_config

    def _config(self):
        return cast(literal(self.ts_config), REGCONFIG)

    def _query(self, term: str):
        return func.websearch_to_tsquery(self._config(), term)

    def fulltext_match(self, vector, term: str):
        return vector.op("@@", return_type=Boolean)(self._query(term))

    def fulltext_rank(self, vector, term: str):
        return func.ts_rank_cd(vector, self._query(term), type_=Float)

    def similarity(self, name, term: str):
        return func.similarity(name, term, type_=Float)


def _to_tsvector(config, document):
    return " ".join(trigram.tokens(document))


def _fts_match(vector, term):
    wanted = set(trigram.tokens(term))
    if not wanted:
        return 0
    return int(wanted.issubset(trigram.tokens(vector)))


def _fts_rank(vector, term):
    words = trigram.tokens(vector)
    wanted = set(trigram.tokens(term))
    if not words or not wanted:
        return 0.0
    hits = sum(1 for w in words if w in wanted)
    return hits / len(words)


class SqliteTextSearch(TextSearchBackend):
    """Token-based full-text match and pg_trgm-compatible similarity for SQLite."""

    name = "sqlite"

    def install(self, engine: Engine) -> None:
        event.listen(engine, "connect", self._register)

    @staticmethod
    def _register(dbapi_connection, connection_record):
        dbapi_connection.create_function("to_tsvector", 2, _to_tsvector, deterministic=True)
        dbapi_connection.create_function("fts_match", 2, _fts_match, deterministic=True)
        dbapi_connection.create_function("fts_rank", 2, _fts_rank, deterministic=True)
        dbapi_connection.create_function("similarity", 2, trigram.similarity, deterministic=True)

    def fulltext_match(self, vector, term: str):
        return func.fts_match(vector, term, type_=Boolean)

    def fulltext_rank(self, vector, term: str):
        return func.fts_rank(vector, term, type_=Float)

    def similarity(self, name, term: str):
        return func.similarity(name, term, type_=Float)


def backend_for(engine: Engine, ts_config: str = "simple") -> TextSearchBackend:
    dialect = engine.dialect.name
    if dialect == "postgresql":
        return PostgresTextSearch(ts_config)
    if dialect == "sqlite":
        backend = SqliteTextSearch()
        backend.install(engine)
        return backend
    raise RuntimeError(f"No text search support for dialect {dialect!r}")
