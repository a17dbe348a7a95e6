"""
Import/export payloads for vocabulary lists.

Two formats are supported:

- ``json``: a list of word objects (the same keys the store writes).
- ``csv``: a fixed six-column header followed by one word per line.

The csv dialect is deliberately simple. Export wraps every value in double
quotes; import splits on commas and strips one pair of surrounding quotes.
Values that contain a comma or a double quote do not survive a round trip.
"""

import json
from typing import Any, Iterable

from .types import VocabularyEntry

FORMAT_JSON = "json"
FORMAT_CSV = "csv"
FORMATS = (FORMAT_JSON, FORMAT_CSV)

CSV_COLUMNS = ("english", "vietnamese", "type", "phonetic", "example", "category")
CSV_HEADER = "English,Vietnamese,Type,Phonetic,Example,Category"


def normalize_format(fmt: str) -> str:
    """Lower-case a format name and reject unknown ones."""
    name = (fmt or "").strip().lower()
    if name not in FORMATS:
        raise ValueError(f"Unsupported format: {fmt!r} (expected one of {', '.join(FORMATS)})")
    return name


def _unquote(value: str) -> str:
    value = value.strip()
    if len(value) >= 2 and value[0] == value[-1] == '"':
        return value[1:-1]
    return value


def parse_payload(text: str, fmt: str) -> list[Any]:
    """
    Parse an import payload into candidate records.

    Every element of the returned list counts as one candidate, valid or
    not. Blank csv lines are not candidates.

    Raises:
        ValueError: unknown format, malformed JSON, or JSON that is not a list
    """
    fmt = normalize_format(fmt)
    if fmt == FORMAT_JSON:
        data = json.loads(text)
        if not isinstance(data, list):
            raise ValueError("JSON import must be a list of word objects")
        return data

    records = []
    lines = text.splitlines()[1:]  # header
    for line in lines:
        if not line.strip():
            continue
        values = [_unquote(v) for v in line.split(",")]
        values += [""] * (len(CSV_COLUMNS) - len(values))
        records.append(dict(zip(CSV_COLUMNS, values)))
    return records


def is_importable(record: Any) -> bool:
    """A candidate needs non-empty english and vietnamese text."""
    if not isinstance(record, dict):
        return False
    english = record.get("english")
    vietnamese = record.get("vietnamese")
    return (
        isinstance(english, str) and bool(english.strip())
        and isinstance(vietnamese, str) and bool(vietnamese.strip())
    )


def render_payload(entries: Iterable[VocabularyEntry], fmt: str) -> str:
    """Serialize words for export."""
    fmt = normalize_format(fmt)
    if fmt == FORMAT_JSON:
        return json.dumps([e.to_dict() for e in entries], ensure_ascii=False, indent=2)

    rows = [
        ",".join(f'"{getattr(entry, column)}"' for column in CSV_COLUMNS)
        for entry in entries
    ]
    return "\n".join([CSV_HEADER, *rows])
