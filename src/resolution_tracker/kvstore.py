"""Key-value persistence backends.

Each key holds one string value. Writing a key replaces its whole value;
that single-key replace is the only atomicity the storage layer relies on.
"""

import asyncio
import logging
import os
import tempfile
from pathlib import Path
from typing import Protocol
from urllib.parse import quote

logger = logging.getLogger(__name__)


class KeyValueStore(Protocol):
    """Async string key-value store."""

    async def get_item(self, key: str) -> str | None: ...

    async def set_item(self, key: str, value: str) -> None: ...


class MemoryKeyValueStore:
    """In-process store backed by a dict."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._data: dict[str, str] = dict(initial or {})

    async def get_item(self, key: str) -> str | None:
        return self._data.get(key)

    async def set_item(self, key: str, value: str) -> None:
        self._data[key] = value


class FileKeyValueStore:
    """Store that keeps each key in its own file under a directory."""

    def __init__(self, directory: str | Path) -> None:
        """Initialize store rooted at ``directory`` (created on first write)."""
        self.directory = Path(directory).expanduser()

    def path_for(self, key: str) -> Path:
        """Get the file path holding the value for ``key``."""
        return self.directory / f"{quote(key, safe='')}.json"

    async def get_item(self, key: str) -> str | None:
        return await asyncio.to_thread(self._read, key)

    async def set_item(self, key: str, value: str) -> None:
        await asyncio.to_thread(self._write, key, value)

    def _read(self, key: str) -> str | None:
        path = self.path_for(key)
        if not path.exists():
            return None
        return path.read_text(encoding="utf-8")

    def _write(self, key: str, value: str) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        path = self.path_for(key)

        # Write beside the target so os.replace stays on one filesystem
        fd, tmp_name = tempfile.mkstemp(dir=self.directory, prefix=".tmp-", suffix=".json")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(value)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
        logger.debug(f"Wrote {len(value)} chars to {path}")
