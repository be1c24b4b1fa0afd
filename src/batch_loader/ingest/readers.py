from __future__ import annotations

import csv
import io
from types import MappingProxyType
from typing import BinaryIO, Iterator, Sequence

from batch_loader.errors import DecodeError
from batch_loader.parsing.types import Record

# `utf-8-sig` also strips the BOM spreadsheet exports like to prepend.
_TEXT_ENCODING = "utf-8-sig"


def decode_records(stream: BinaryIO, *, columns: Sequence[str]) -> Iterator[Record]:
    """
    Yields one read-only `Record` per CSV data row, in file order.

    - The first row is the header. Header names and cells are trimmed.
    - Only `columns` are kept, any other column is dropped silently.
    - A row too short to reach a kept column leaves that field absent;
      the validator decides whether that matters.
    - Blank lines are skipped and do not count as rows.

    The iterator is lazy and can be consumed once. Raises `DecodeError` (while
    iterating) on unreadable streams, invalid UTF-8, or malformed CSV quoting.
    """
    wanted = set(columns)
    # `newline=""` leaves row splitting to `csv`; a stray \x0c stays inside its cell
    text = io.TextIOWrapper(stream, encoding=_TEXT_ENCODING, newline="")
    reader = csv.reader(text, strict=True)

    try:
        header = next(reader, None)
        if header is None:
            # an empty file is an empty batch
            return
        # (index, name) pairs for kept columns only
        keep = [(i, name.strip()) for i, name in enumerate(header) if name.strip() in wanted]

        for row in reader:
            if not row:
                continue
            yield MappingProxyType({name: row[i].strip() for i, name in keep if i < len(row)})

    except csv.Error as e:
        raise DecodeError(f"malformed CSV near line {reader.line_num}: {e}") from e
    except UnicodeDecodeError as e:
        raise DecodeError(f"input is not valid UTF-8: {e}") from e
    except OSError as e:
        raise DecodeError(f"unable to read input stream: {e}") from e
