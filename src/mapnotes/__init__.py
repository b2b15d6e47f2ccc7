"""Interaction core for annotating places on a map.

**mapnotes** turns raw map gestures (long press, drag, tap) and menu actions
into annotation workflows: placing a new annotation, editing, moving,
connecting two annotations and deleting by dropping a marker onto a trash
zone. Map engine, storage, dialogs and icons are plugged in through small
async protocols, so the core runs headless in tests.

Submodule Organization
----------------------
annotation : Interaction modes, workflows and the UI-facing facade

    >>> from mapnotes.annotation import InteractionFacade, InteractionConfig

io : Storage and asset adapters

    >>> from mapnotes.io import JsonAnnotationRepository, IconDirectory

Logging
-------
Every module logs through ``logging.getLogger(__name__)``; no handlers are
installed. Enable verbose output with::

    import logging
    logging.basicConfig()
    logging.getLogger("mapnotes").setLevel(logging.DEBUG)
"""

__version__ = "0.1.0"

__all__ = ["__version__"]
