from __future__ import annotations

import base64
import json
from pathlib import Path
from typing import Any

import vobject

from .conversion import DataConverter
from .exceptions import ConversionError
from .io import write_vcards
from .model import LocalRecord

# bytes values (photos) are carried through JSON with this prefix
B64_PREFIX = "base64:"


def _encode_value(value: Any) -> Any:
    if isinstance(value, bytes):
        return B64_PREFIX + base64.b64encode(value).decode("ascii")
    return value


def _decode_value(value: Any) -> Any:
    if isinstance(value, str) and value.startswith(B64_PREFIX):
        return base64.b64decode(value[len(B64_PREFIX):])
    return value


def records_to_json(records: list[LocalRecord]) -> str:
    return json.dumps(
        [{k: _encode_value(v) for k, v in r.items()} for r in records],
        indent=2,
        ensure_ascii=False,
    )


def records_from_json(text: str) -> list[LocalRecord]:
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ConversionError("Records are not valid JSON", problems=[str(e)]) from e
    if isinstance(data, dict):
        data = [data]
    if not isinstance(data, list) or not all(isinstance(r, dict) for r in data):
        raise ConversionError("Expected a JSON object or a list of objects")
    return [{k: _decode_value(v) for k, v in r.items()} for r in data]


def export_records(
    records: list[LocalRecord],
    converter: DataConverter,
    path: Path,
    existing: list[vobject.base.Component] | None = None,
) -> int:
    """Write records as vCards; records[i] updates existing[i] when given."""
    existing = existing or []
    cards = []
    for i, record in enumerate(records):
        vcard = existing[i] if i < len(existing) else None
        cards.append(converter.from_local(record, vcard))
    return write_vcards(cards, path)
