"""Static description of the tab store schema."""

from __future__ import annotations

from dataclasses import dataclass

# Bump together with a new step in squirrel.storage.migrations.
SCHEMA_VERSION = 1


@dataclass(frozen=True)
class Column:
    name: str
    type: str
    nullable: bool = False
    primary_key: bool = False

    def ddl(self) -> str:
        parts = [self.name, self.type]
        if self.primary_key:
            parts.append("PRIMARY KEY")
        elif not self.nullable:
            parts.append("NOT NULL")
        return " ".join(parts)


@dataclass(frozen=True)
class Table:
    name: str
    columns: tuple[Column, ...]

    def create_sql(self) -> str:
        columns = ", ".join(column.ddl() for column in self.columns)
        return f"CREATE TABLE IF NOT EXISTS {self.name} ({columns})"


@dataclass(frozen=True)
class Index:
    """Non-unique index on one or more columns of a table."""

    name: str
    table: str
    columns: tuple[str, ...]

    def create_sql(self) -> str:
        columns = ", ".join(self.columns)
        return f"CREATE INDEX IF NOT EXISTS {self.name} ON {self.table}({columns})"


TABLES: tuple[Table, ...] = (
    Table(
        "squirrel_tabs",
        (
            Column("id", "INTEGER", primary_key=True),
            Column("session_id", "INTEGER"),
            Column("url", "TEXT"),
            Column("title", "TEXT"),
            Column("timestamp", "INTEGER"),
        ),
    ),
    Table(
        "squirrel_sessions",
        (
            Column("id", "INTEGER", primary_key=True),
            Column("timestamp", "INTEGER"),
        ),
    ),
    Table(
        "squirrel_sessions_tabs",
        (
            Column("tab_id", "INTEGER"),
            Column("session_id", "INTEGER"),
        ),
    ),
)

INDICES: tuple[Index, ...] = (
    Index("squirrel_tabs_timestamp_index", "squirrel_tabs", ("timestamp",)),
    Index("squirrel_sessions_timestamp_index", "squirrel_sessions", ("timestamp",)),
    Index("squirrel_sessions_tabs_tab_index", "squirrel_sessions_tabs", ("tab_id",)),
    Index("squirrel_sessions_tabs_session_index", "squirrel_sessions_tabs", ("session_id",)),
)
