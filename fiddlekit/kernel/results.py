from typing import Optional

from fiddlekit.kernel.contracts import Snapshot


class ResultAggregator:
    """
    Holds the latest result snapshot of one execution.
    Every update replaces the snapshot wholesale; nothing is merged.
    """

    def __init__(self):
        self._latest: Optional[Snapshot] = None
        self._update_count = 0

    @property
    def latest(self) -> Optional[Snapshot]:
        return self._latest

    @property
    def has_snapshot(self) -> bool:
        return self._latest is not None

    @property
    def update_count(self) -> int:
        return self._update_count

    def update(self, snapshot: Snapshot) -> bool:
        """
        Replace the held snapshot. Returns True if it is the first one received.
        """
        first = self._latest is None
        self._latest = snapshot
        self._update_count += 1
        return first
