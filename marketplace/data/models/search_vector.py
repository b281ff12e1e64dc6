"""
Stored full-text vectors and trigram indexes for the searchable tables.

``tsv`` is a generated column kept up to date by the store itself. On
PostgreSQL it is a ``tsvector`` with a GIN index; on SQLite the same
expression is evaluated by the ``to_tsvector`` function registered on every
connection and stored as text.
"""
from sqlalchemy import DDL, Column, Computed, Text, event
from sqlalchemy.dialects.postgresql import TSVECTOR
from sqlalchemy.orm import deferred

from marketplace.utils.settings import SEARCH_TS_CONFIG


def search_vector(*columns: str):
    document = " || ' ' || ".join(f"coalesce({column}, '')" for column in columns)
    return deferred(
        Column(
            TSVECTOR().with_variant(Text(), "sqlite"),
            Computed(f"to_tsvector('{SEARCH_TS_CONFIG}', {document})", persisted=True),
        )
    )


def trigram_index(table, column: str) -> None:
    """GIN trigram index on ``column`` for ``similarity()`` lookups, PostgreSQL only."""
    name = f"ix_{table.name}_{column}_trgm"
    event.listen(
        table,
        "after_create",
        DDL(f"CREATE INDEX IF NOT EXISTS {name} ON {table.name} USING gin ({column} gin_trgm_ops)").execute_if(
            dialect="postgresql"
        ),
    )
