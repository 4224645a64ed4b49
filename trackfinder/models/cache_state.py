"""Lifecycle state of a memoized snapshot."""

from enum import Enum


class CacheState(Enum):
    """Represents where a snapshot cache is in its lifecycle.

    EMPTY -> POPULATED on the first successful load, POPULATED -> INVALIDATED
    on a change signal, INVALIDATED -> POPULATED on the next access.
    """

    EMPTY = "empty"
    POPULATED = "populated"
    INVALIDATED = "invalidated"

    def needs_reload(self) -> bool:
        """Check if the next access has to rebuild from the source."""
        return self is not CacheState.POPULATED
