"""
Document combination, content hashing and week bucketing helpers.
"""

from __future__ import annotations

import hashlib
from collections.abc import Sequence
from datetime import datetime, timezone

DOCUMENT_SEPARATOR = "\n"


def combine_documents(documents: Sequence[str]) -> str:
    """
    Join normalized documents in the given order.
    """

    return DOCUMENT_SEPARATOR.join(documents)


def document_hash(document: str) -> str:
    """
    Return the MD5 hex digest of a combined document.
    """

    return hashlib.md5(document.encode("utf-8")).hexdigest()


def week_bucket(moment: datetime | None = None) -> tuple[int, int]:
    """
    Return the (year, ISO week) bucket for `moment` (defaults to now, UTC).

    The year is the ISO week-numbering year so that the last days of
    December falling into week 1 land in the next year's bucket.
    """

    current = moment or datetime.now(timezone.utc)
    iso = current.isocalendar()
    return iso[0], iso[1]
