from __future__ import annotations

import psycopg
from psycopg import Connection

from batch_loader.errors import ConnectivityError


def connect(database_url: str) -> Connection:
    """
    Return a psycopg connection.

    - `database_url` comes from `Settings.database_url`.
    - Leaves autocommit OFF (each stored record commits its own transaction).
    - Raises `ConnectivityError` when the server cannot be reached.
    """
    try:
        return psycopg.connect(database_url)
    except psycopg.OperationalError as e:
        raise ConnectivityError(f"unable to connect to Postgres: {e}") from e
