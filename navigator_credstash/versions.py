"""
Version Resolver — version arithmetic and selection over fetched records.

Versions are decimal integers stored as text. Ordering is always numeric
("9" < "10"); values that do not parse are ignored for arithmetic so that
foreign records cannot break version assignment.
"""
import re
from collections.abc import Iterable, Sequence
from typing import Optional, TypeVar

from .exceptions import NotFoundError

_DIGITS = re.compile(r"[0-9]+")
_CANONICAL = re.compile(r"[1-9][0-9]*")

R = TypeVar("R")


def parse_version(value: str) -> Optional[int]:
    """Parse a version string, returning None when it is not a
    non-negative decimal integer."""
    if isinstance(value, str) and _DIGITS.fullmatch(value):
        return int(value)
    return None


def validate_version(value: str) -> str:
    """Ensure an explicit version is a positive integer without leading zeros.

    Raises:
        ValueError: If the version is not canonical.
    """
    if not isinstance(value, str) or not _CANONICAL.fullmatch(value):
        raise ValueError(
            f"Version must be a positive integer without leading zeros, "
            f"got {value!r}"
        )
    return value


def _numeric(versions: Iterable[str]) -> list[int]:
    return [n for n in map(parse_version, versions) if n is not None]


def latest_version(versions: Iterable[str]) -> str:
    """Highest parseable version as stored, or "1" when none parses."""
    best = None
    for value in versions:
        number = parse_version(value)
        if number is not None and (best is None or number > best[0]):
            best = (number, value)
    return best[1] if best else "1"


def next_version(versions: Iterable[str]) -> str:
    """Version to assign to the next write."""
    numbers = _numeric(versions)
    return str(max(numbers) + 1) if numbers else "1"


def sort_descending(records: Sequence[R]) -> list[R]:
    """Order records by numeric version, highest first.

    Records whose version does not parse go last, keeping their order.
    """
    numbered = []
    others = []
    for record in records:
        number = parse_version(record.version)
        if number is None:
            others.append(record)
        else:
            numbered.append((number, record))
    numbered.sort(key=lambda pair: pair[0], reverse=True)
    return [record for _, record in numbered] + others


def select_for_read(
    name: str,
    records: Sequence[R],
    version: Optional[str] = None,
) -> R:
    """Pick the record to decrypt.

    Args:
        name: Secret name, used for error reporting.
        records: Records for ``name``, highest version first.
        version: Exact version requested, if any.

    Raises:
        NotFoundError: If there is no record, or none with that version.
    """
    if version is not None:
        for record in records:
            if record.version == version:
                return record
        raise NotFoundError(name, version)
    if not records:
        raise NotFoundError(name)
    return records[0]


def select_for_delete(
    versions: Sequence[str],
    version: Optional[str] = None,
    delete_all: bool = False,
) -> list[str]:
    """Versions a delete should remove."""
    if delete_all:
        return list(versions)
    if version is not None:
        return [version]
    return [latest_version(versions)]
