"""Exception taxonomy for the annotation interaction core.

Every error carries a short code that prefixes its message (``[E3001] ...``)
so log lines and bug reports can be matched to the failing workflow stage.
Each class also derives from the closest builtin exception, which lets
callers that do not know about this module catch them idiomatically
(``except LookupError``, ``except OSError``).

Codes
-----
E3001 LinkNotFound
    No identity link for a map handle. Recoverable; the current workflow is
    aborted with a warning and nothing is shown to the user.
E3002 RecordNotFound
    The storage record behind a resolved link is missing (data drift).
    Recoverable; same treatment as E3001.
E3003 CoordinateConversionFailed
    The map engine could not convert between pixels and coordinates.
    Aborts handling of that single gesture event.
E3004 StorageIOError
    Persistent read or write failed. Fatal to the active workflow; visual
    changes are rolled back where a snapshot exists.
E3005 AssetLoadError
    Icon bytes could not be loaded. Fatal to create/edit; no partial marker.
E3006 ModeTransitionError
    A transition violated the interaction-mode exclusivity rules.
"""

from __future__ import annotations


class AnnotationError(Exception):
    """Base class for all errors raised by the annotation core.

    Parameters
    ----------
    message : str
        Human-readable description including the handle id, storage id or
        workflow stage involved.

    """

    code: str = "E3000"

    def __init__(self, message: str) -> None:
        super().__init__(f"[{self.code}] {message}")


class LinkNotFound(AnnotationError, LookupError):
    """A map handle id has no registered storage id."""

    code = "E3001"


class RecordNotFound(AnnotationError, LookupError):
    """A storage id resolved through a link has no stored record."""

    code = "E3002"


class CoordinateConversionFailed(AnnotationError, ValueError):
    """Pixel/coordinate conversion by the map engine failed."""

    code = "E3003"


class StorageIOError(AnnotationError, OSError):
    """The annotation repository failed to read or write."""

    code = "E3004"


class AssetLoadError(AnnotationError, OSError):
    """Icon image bytes are missing or unreadable."""

    code = "E3005"


class ModeTransitionError(AnnotationError, RuntimeError):
    """An interaction mode was entered from a state that does not allow it."""

    code = "E3006"
