"""Icon images loaded from a directory."""

from __future__ import annotations

import asyncio
import logging
import os
from pathlib import Path

from mapnotes.annotation.errors import AssetLoadError

logger = logging.getLogger(__name__)


class IconDirectory:
    """Load ``<root>/<icon_name><suffix>`` as marker icon bytes.

    Parameters
    ----------
    root : str or Path
        Directory holding the icon files.
    suffix : str, default=".png"
        File extension appended to icon names.

    """

    def __init__(self, root: str | os.PathLike[str], suffix: str = ".png") -> None:
        self.root = Path(root)
        self.suffix = suffix

    def __repr__(self) -> str:
        return f"{type(self).__name__}({str(self.root)!r}, suffix={self.suffix!r})"

    def path_for(self, icon_name: str) -> Path:
        """File an icon name resolves to.

        Raises
        ------
        AssetLoadError
            If the name is empty or contains a path separator.

        """
        if not icon_name or "/" in icon_name or "\\" in icon_name or icon_name in (".", ".."):
            raise AssetLoadError(f"Invalid icon name {icon_name!r}")
        return self.root / f"{icon_name}{self.suffix}"

    async def load_icon(self, icon_name: str) -> bytes:
        path = self.path_for(icon_name)
        try:
            data = await asyncio.to_thread(path.read_bytes)
        except OSError as exc:
            raise AssetLoadError(f"Cannot load icon {icon_name!r} from {path}: {exc}") from exc
        if not data:
            raise AssetLoadError(f"Icon file {path} is empty")
        logger.debug("Loaded icon %s (%d bytes)", icon_name, len(data))
        return data
