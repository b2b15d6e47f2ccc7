"""JSON-file annotation repository."""

from __future__ import annotations

import asyncio
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any

from mapnotes.annotation._types import AnnotationRecord
from mapnotes.annotation.errors import RecordNotFound, StorageIOError

logger = logging.getLogger(__name__)

FORMAT_VERSION = 1


class JsonAnnotationRepository:
    """Annotation records stored in one JSON document.

    The file layout is ``{"format_version": 1, "annotations": [...]}`` with
    one ``AnnotationRecord.to_dict()`` entry per annotation. A missing file is
    an empty repository. File access runs in a worker thread so the event
    loop is never blocked, and every write replaces the file atomically.

    Parameters
    ----------
    path : str or Path
        Location of the JSON document. Parent directories are created on the
        first write.

    Examples
    --------
    >>> import asyncio, tempfile
    >>> from pathlib import Path
    >>> from mapnotes.annotation import AnnotationRecord
    >>> async def main(path):
    ...     repo = JsonAnnotationRepository(path)
    ...     await repo.add(AnnotationRecord("a1", latitude=20.0, longitude=10.0))
    ...     return [r.storage_id for r in await repo.get_all()]
    >>> with tempfile.TemporaryDirectory() as tmp:
    ...     asyncio.run(main(Path(tmp) / "annotations.json"))
    ['a1']

    """

    def __init__(self, path: str | os.PathLike[str]) -> None:
        self.path = Path(path)
        self._lock = asyncio.Lock()

    def __repr__(self) -> str:
        return f"{type(self).__name__}({str(self.path)!r})"

    async def get_all(self) -> list[AnnotationRecord]:
        async with self._lock:
            return await asyncio.to_thread(self._read)

    async def add(self, record: AnnotationRecord) -> None:
        async with self._lock:
            records = await asyncio.to_thread(self._read)
            if any(r.storage_id == record.storage_id for r in records):
                raise StorageIOError(
                    f"Annotation {record.storage_id} already exists in {self.path}"
                )
            records.append(record)
            await asyncio.to_thread(self._write, records)
        logger.debug("Added annotation %s to %s", record.storage_id, self.path)

    async def update(self, record: AnnotationRecord) -> None:
        async with self._lock:
            records = await asyncio.to_thread(self._read)
            index = self._index_of(records, record.storage_id)
            records[index] = record
            await asyncio.to_thread(self._write, records)
        logger.debug("Updated annotation %s in %s", record.storage_id, self.path)

    async def delete(self, storage_id: str) -> None:
        async with self._lock:
            records = await asyncio.to_thread(self._read)
            del records[self._index_of(records, storage_id)]
            await asyncio.to_thread(self._write, records)
        logger.debug("Deleted annotation %s from %s", storage_id, self.path)

    def _index_of(self, records: list[AnnotationRecord], storage_id: str) -> int:
        for index, record in enumerate(records):
            if record.storage_id == storage_id:
                return index
        raise RecordNotFound(f"Annotation {storage_id} not found in {self.path}")

    def _read(self) -> list[AnnotationRecord]:
        if not self.path.exists():
            return []
        try:
            with self.path.open("r", encoding="utf-8") as fh:
                document = json.load(fh)
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise StorageIOError(f"Cannot read annotations from {self.path}: {exc}") from exc

        if not isinstance(document, dict) or "annotations" not in document:
            raise StorageIOError(f"{self.path} is not an annotation document")
        version = document.get("format_version", FORMAT_VERSION)
        if version != FORMAT_VERSION:
            logger.warning(
                "%s has format_version %s, expected %s. Attempting to read anyway.",
                self.path,
                version,
                FORMAT_VERSION,
            )
        try:
            return [AnnotationRecord.from_dict(item) for item in document["annotations"]]
        except (KeyError, TypeError, ValueError) as exc:
            raise StorageIOError(f"Malformed annotation in {self.path}: {exc}") from exc

    def _write(self, records: list[AnnotationRecord]) -> None:
        document: dict[str, Any] = {
            "format_version": FORMAT_VERSION,
            "annotations": [record.to_dict() for record in records],
        }
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(suffix=".json", dir=self.path.parent)
        except OSError as exc:
            raise StorageIOError(f"Cannot write annotations to {self.path}: {exc}") from exc

        tmp_path = Path(tmp_name)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(document, fh, indent=2)
            os.replace(tmp_path, self.path)
        except OSError as exc:
            raise StorageIOError(f"Cannot write annotations to {self.path}: {exc}") from exc
        finally:
            if tmp_path.exists():
                tmp_path.unlink()
