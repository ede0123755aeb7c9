"""
Record model and the JSON interchange format for the record list
"""

from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Optional, Sequence

from .exceptions import DuplicateRecordError, RecordNotFoundError

logger = logging.getLogger(__name__)

# older stores wrote "user" and "password"
_LEGACY_FIELDS = {"user": "account", "password": "secret"}


@dataclass
class Record:
    name: str
    account: str
    secret: str

    def to_dict(self) -> Dict[str, str]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Record:
        """
        Build a Record from a decoded JSON object.
        Raises ValueError if a field is missing or not a string.
        """
        fields = {}
        for key, value in data.items():
            fields[_LEGACY_FIELDS.get(key, key)] = value
        values = []
        for field in ("name", "account", "secret"):
            value = fields.get(field)
            if not isinstance(value, str):
                raise ValueError(f"record field {field!r} missing or not a string")
            values.append(value)
        return cls(*values)

    def masked(self) -> str:
        return f"{self.name}  ->  {self.account}:****"


def serialize(records: Sequence[Record]) -> bytes:
    return json.dumps([r.to_dict() for r in records], ensure_ascii=False).encode("utf-8")


def deserialize(data: bytes) -> List[Record]:
    """Parse a serialized record list; anything unparseable yields []."""
    try:
        raw = json.loads(data.decode("utf-8"))
    except (UnicodeDecodeError, ValueError, RecursionError):
        logger.warning("record payload is not valid JSON; treating store as empty")
        return []
    if not isinstance(raw, list):
        logger.warning("record payload is not a list; treating store as empty")
        return []
    try:
        return [Record.from_dict(item) for item in raw]
    except (AttributeError, TypeError, ValueError) as e:
        logger.warning("malformed record in payload (%s); treating store as empty", e)
        return []


def find_record(records: Sequence[Record], name: str) -> Optional[Record]:
    # names are matched exactly, case included
    for record in records:
        if record.name == name:
            return record
    return None


def add_record(records: List[Record], record: Record) -> None:
    if find_record(records, record.name) is not None:
        raise DuplicateRecordError(f"name already exists: {record.name}", name=record.name)
    records.append(record)


def remove_record(records: List[Record], name: str) -> Record:
    for i, record in enumerate(records):
        if record.name == name:
            return records.pop(i)
    raise RecordNotFoundError(f"not found: {name}", name=name)
