"""
Storage and asset adapters for the annotation core.

Submodules
----------
_repository : JSON-file ``AnnotationRepository``
_assets : Directory-backed ``IconLoader``
"""

from mapnotes.io._assets import IconDirectory
from mapnotes.io._repository import FORMAT_VERSION, JsonAnnotationRepository

__all__ = [
    "FORMAT_VERSION",
    "IconDirectory",
    "JsonAnnotationRepository",
]
