from __future__ import annotations

from typing import Any, Sequence

import psycopg
from psycopg import Connection, sql

from batch_loader.db.gateway import BaseRecordGateway
from batch_loader.errors import ConnectivityError, PersistenceError


def build_upsert(table_name: str, *, columns: Sequence[str], key: str) -> sql.Composed:
    """
    `INSERT ... ON CONFLICT (key) DO UPDATE` for one row.

    Identifiers come from configuration only, values are always placeholders.
    A repeated key overwrites the earlier row.
    """
    others = [c for c in columns if c != key]
    if others:
        conflict_action = sql.SQL("DO UPDATE SET {sets}").format(
            sets=sql.SQL(", ").join(
                sql.SQL("{col} = EXCLUDED.{col}").format(col=sql.Identifier(c)) for c in others
            )
        )
    else:
        conflict_action = sql.SQL("DO NOTHING")

    return sql.SQL("INSERT INTO {tbl} ({cols}) VALUES ({vals}) ON CONFLICT ({key}) {action}").format(
        tbl=sql.Identifier(table_name),
        cols=sql.SQL(", ").join(sql.Identifier(c) for c in columns),
        vals=sql.SQL(", ").join(sql.Placeholder() for _ in columns),
        key=sql.Identifier(key),
        action=conflict_action,
    )


class PostgresRecordGateway(BaseRecordGateway):
    """
    Writes records into a Postgres table keyed by `key`.

    Every record runs in its own transaction, so a refused row is rolled back
    alone and the connection stays usable for the next one.
    """

    def __init__(self, conn: Connection, *, table_name: str, columns: Sequence[str], key: str) -> None:
        super().__init__(columns=columns)
        if key not in self.columns:
            raise ValueError(f"key column {key!r} is not one of {self.columns}")
        self.conn = conn
        self.table_name = table_name
        self._query = build_upsert(table_name, columns=self.columns, key=key)

    def _put(self, item: dict[str, Any]) -> None:
        if self.conn.closed:
            raise ConnectivityError("Postgres connection is closed")

        # absent optional fields are written as NULL
        params = tuple(item.get(c) for c in self.columns)
        try:
            with self.conn.transaction():
                self.conn.execute(self._query, params)
        except psycopg.InterfaceError as e:
            raise ConnectivityError(f"Postgres unreachable: {e}") from e
        except psycopg.OperationalError as e:
            # timeouts and the like leave the session alive: only this row failed
            if self.conn.closed or self.conn.broken:
                raise ConnectivityError(f"Postgres unreachable: {e}") from e
            raise PersistenceError(str(e).strip()) from e
        except psycopg.Error as e:
            raise PersistenceError(str(e).strip()) from e
