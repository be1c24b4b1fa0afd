from __future__ import annotations

import argparse
import json
from pathlib import Path

from batch_loader.cli.loader import run_event
from batch_loader.config import get_settings
from batch_loader.db.initialize import db_init
from batch_loader.logs import configure_logging
from batch_loader.sources.objects import make_event


def main(argv: list[str] | None = None) -> int:
    """
    A CLI for running batch loads by hand.

    The `cmd` options are:
    ## load:
    Load one object from the inbound bucket, exactly as an upload event would.
    - `--bucket` the bucket name (defaults to `INBOUND_BUCKET`),
    - `--key` the object key inside it.

    ## handle:
    Replay a saved storage event.
    - `--event` path to the event JSON.

    A summary line prints on success. Exit code 1 means the batch aborted.

    ### Example usage:
    - `batchload load --key students-2024.csv`
    - `batchload handle --event events/upload.json`

    ## db:
    - `init` runs the schema SQL for the Postgres store,
    - `--sql` is a SQL file or a dir of `.sql` files (default `sql`).
    """
    p = argparse.ArgumentParser(prog="batchload")
    sub = p.add_subparsers(dest="cmd", required=True)

    # load cmd
    load = sub.add_parser("load", help="Load one object from the inbound bucket.")
    load.add_argument("--bucket", default=None, help="Bucket name (defaults to INBOUND_BUCKET).")
    load.add_argument("--key", required=True, help="Object key of the CSV file.")

    # handle cmd
    handle = sub.add_parser("handle", help="Run a batch from a saved storage event.")
    handle.add_argument("--event", required=True, help="Path to the event JSON.")

    # db cmd
    db = sub.add_parser("db", help="Database utilities.")
    db_sub = db.add_subparsers(dest="db_cmd", required=True)

    db_init_p = db_sub.add_parser("init", help="Initialize the record table from SQL file(s).")
    db_init_p.add_argument("--sql", default="sql", help="Path to schema SQL file OR a directory of `.sql` files.")

    args = p.parse_args(argv)

    settings = get_settings()
    configure_logging(settings.log_level)

    if args.cmd in ("load", "handle"):
        if args.cmd == "load":
            event = make_event(args.bucket or settings.inbound_bucket, args.key)
        else:
            event = json.loads(Path(args.event).read_text(encoding="utf-8"))

        result = run_event(event, settings=settings)
        if result.summary is None:
            print(f"batch {result.batch_id} failed: {result.error}")
            return 1
        print(f"{result.summary.render_one_line()} batch_id={result.batch_id}")
        return 0

    if args.cmd == "db" and args.db_cmd == "init":
        files = db_init(database_url=settings.database_url, sql_path=Path(args.sql))
        print(f"Initialized schema from {', '.join(str(f) for f in files)}")
        return 0

    return 2
