"""Bidirectional map-handle id <-> storage id table.

Markers drawn by the map engine get a new id every time they are recreated,
while annotation records keep one storage id for their whole life. The linker
is the only place where the two are associated. One link exists per visible
marker.
"""

from __future__ import annotations

import logging

logger = logging.getLogger(__name__)


class IdentityLinker:
    """Forward and inverse index between map handle ids and storage ids.

    All operations are synchronous and O(1). Lookups return None for unknown
    ids and never raise; callers decide whether a missing link aborts their
    workflow.

    At most one live map handle id should map to a given storage id. That is
    enforced by caller discipline: when a marker is recreated, drop the old
    link before registering the new one, or use ``replace`` which does both.

    Examples
    --------
    >>> linker = IdentityLinker()
    >>> linker.register("marker-1", "record-a")
    >>> linker.lookup_storage_id("marker-1")
    'record-a'
    >>> linker.replace("marker-1", "marker-2")
    'record-a'
    >>> linker.lookup_map_handle_id("record-a")
    'marker-2'
    >>> linker.lookup_storage_id("marker-1") is None
    True

    """

    def __init__(self) -> None:
        self._storage_by_map: dict[str, str] = {}
        self._map_by_storage: dict[str, str] = {}

    def __len__(self) -> int:
        return len(self._storage_by_map)

    def __contains__(self, map_handle_id: object) -> bool:
        return map_handle_id in self._storage_by_map

    def register(self, map_handle_id: str, storage_id: str) -> None:
        """Add or overwrite the link for ``map_handle_id``.

        Parameters
        ----------
        map_handle_id : str
            Id of the marker as assigned by the map engine.
        storage_id : str
            Id of the persisted annotation record.

        """
        previous_storage = self._storage_by_map.get(map_handle_id)
        if previous_storage is not None and previous_storage != storage_id:
            if self._map_by_storage.get(previous_storage) == map_handle_id:
                del self._map_by_storage[previous_storage]

        live_handle = self._map_by_storage.get(storage_id)
        if live_handle is not None and live_handle != map_handle_id:
            logger.warning(
                "Storage id %s is still linked to marker %s; registering %s "
                "without removing the old link",
                storage_id,
                live_handle,
                map_handle_id,
            )

        self._storage_by_map[map_handle_id] = storage_id
        self._map_by_storage[storage_id] = map_handle_id
        logger.debug("Linked marker %s -> storage id %s", map_handle_id, storage_id)

    def lookup_storage_id(self, map_handle_id: str) -> str | None:
        return self._storage_by_map.get(map_handle_id)

    def lookup_map_handle_id(self, storage_id: str) -> str | None:
        return self._map_by_storage.get(storage_id)

    def remove(self, map_handle_id: str) -> str | None:
        """Drop the link for a marker.

        Returns
        -------
        str or None
            The storage id that was linked, or None if there was no link.

        """
        storage_id = self._storage_by_map.pop(map_handle_id, None)
        if storage_id is None:
            return None
        # Only clear the inverse entry if it still points at this marker
        if self._map_by_storage.get(storage_id) == map_handle_id:
            del self._map_by_storage[storage_id]
        logger.debug("Unlinked marker %s (storage id %s)", map_handle_id, storage_id)
        return storage_id

    def replace(self, old_map_handle_id: str, new_map_handle_id: str) -> str | None:
        """Move the link of a recreated marker to its new handle id.

        The old link is dropped and the new one registered without any
        suspension point in between, so no caller can observe both.

        Returns
        -------
        str or None
            The storage id now linked to ``new_map_handle_id``, or None if the
            old handle had no link (nothing is registered in that case).

        """
        storage_id = self.remove(old_map_handle_id)
        if storage_id is None:
            logger.warning(
                "Cannot relink marker %s -> %s: no link for the old marker",
                old_map_handle_id,
                new_map_handle_id,
            )
            return None
        self.register(new_map_handle_id, storage_id)
        return storage_id

    def storage_ids(self) -> list[str]:
        """Storage ids of all currently linked markers."""
        return list(self._map_by_storage)

    def clear(self) -> None:
        self._storage_by_map.clear()
        self._map_by_storage.clear()
