from __future__ import annotations

from pathlib import Path

import psycopg

from batch_loader.db.connect import connect


def _statements(script: str) -> list[str]:
    # the schema files hold plain DDL: no functions or quoted semicolons
    return [s.strip() for s in script.split(";") if s.strip()]


def _apply_schema_file(conn: psycopg.Connection, path: Path) -> None:
    """Run each DDL statement of `path`, then commit once for the whole file."""
    for n, stmt in enumerate(_statements(path.read_text(encoding="utf-8")), start=1):
        try:
            conn.execute(stmt)
        except psycopg.Error as e:
            conn.rollback()
            raise RuntimeError(f"schema init: {path.name} statement {n} failed ({e}): {stmt}") from e
    conn.commit()


def sql_files(sql_path: Path) -> list[Path]:
    """A single file, or every `*.sql` in a dir sorted ASC."""
    if sql_path.is_dir():
        return sorted(sql_path.glob("*.sql"))
    return [sql_path]


def db_init(*, database_url: str, sql_path: Path) -> list[Path]:
    """
    Run the schema SQL at `sql_path` (a file, or a directory of `.sql` files)
    against `database_url`. Returns the files that ran.
    """
    files = sql_files(sql_path)
    with connect(database_url) as conn:
        for p in files:
            _apply_schema_file(conn, p)
    return files
