"""Sentinel values for processors.

DROP lets a record-wise transform remove a record from the stream without
confusing "drop it" with a legitimate None record. MISSING marks a field
path that does not exist, as opposed to a field whose value is None.

Example usage:
    from forkline.processors.sentinels import DROP

    def process(self, record: Any) -> Any:
        if not record:
            return DROP
        return record
"""

from typing import Final


class DropSentinel:
    """Sentinel class marking a record as dropped.

    This is a singleton - use the DROP instance, not the class directly.
    Comparison should always use `is` identity, never equality.
    """

    __slots__ = ()

    def __repr__(self) -> str:
        return "<DROP>"


class MissingSentinel:
    """Sentinel class for a field path that is absent from a record."""

    __slots__ = ()

    def __repr__(self) -> str:
        return "<MISSING>"


DROP: Final[DropSentinel] = DropSentinel()
MISSING: Final[MissingSentinel] = MissingSentinel()
