"""
registry.py
In-memory volume registry for a single command invocation.

Maps volume id -> Volume. Built by discover.collect_volumes(), consulted for
lookups and removal decisions, then discarded; nothing is persisted.
"""

from __future__ import annotations
from typing import Dict, Iterator, Optional
from .types import Volume
from .errors import AmbiguousTokenError
from .util import truncate_id, SHORT_ID_LEN


class VolumeRegistry:
    def __init__(self):
        self._vols: Dict[str, Volume] = {}

    def __iter__(self) -> Iterator[Volume]:
        return iter(self._vols.values())

    def __len__(self) -> int:
        return len(self._vols)

    def __contains__(self, vol_id: str) -> bool:
        return vol_id in self._vols

    def add(self, volume: Volume) -> Volume:
        self._vols[volume.id] = volume
        return volume

    def get(self, vol_id: str) -> Optional[Volume]:
        return self._vols.get(vol_id)

    def find(self, token: str) -> Optional[Volume]:
        """
        Resolve a token by full id, then by any "container:/path" name, then by
        12-character truncated id. Raises AmbiguousTokenError when a truncated
        id matches more than one volume.
        """
        return (
            self.get(token)
            or self.find_by_name(token)
            or self.find_by_truncated_id(token)
        )

    def find_by_name(self, name: str) -> Optional[Volume]:
        for vol in self._vols.values():
            if name in vol.names:
                return vol
        return None

    def find_by_truncated_id(self, token: str) -> Optional[Volume]:
        if len(token) > SHORT_ID_LEN:
            return None
        matches = [v for v in self._vols.values() if truncate_id(v.id) == token]
        if len(matches) > 1:
            raise AmbiguousTokenError(token, sorted(v.id for v in matches))
        return matches[0] if matches else None

    def can_remove(self, volume: Volume) -> bool:
        """True iff no container references the volume (point-in-time check)."""
        return not volume.containers
