# infrastructure/file_storage.py
import asyncio
import logging
from pathlib import Path
from typing import Union

from config import settings
from core.interfaces import IFileStorage

logger = logging.getLogger(settings.LOGGER_NAME)


class LocalFileStorage(IFileStorage):
    """Keeps the original upload bytes on disk so reprocessing can re-extract them."""

    def __init__(self, base_path: Union[str, Path]):
        self.base_path = Path(base_path)
        self.base_path.mkdir(parents=True, exist_ok=True)
        logger.debug(f"[STORAGE] Uploads kept under {self.base_path}")

    def _path_for(self, name: str) -> Path:
        # Only the last component is honoured, so '../x' lands inside base_path
        return self.base_path / Path(name.replace("\\", "/")).name

    async def save(self, content: bytes, filename: str) -> str:
        target = self._path_for(filename)
        try:
            await asyncio.to_thread(target.write_bytes, content)
        except OSError as e:
            logger.error(f"[STORAGE] Could not write {target}: {e}")
            raise
        logger.info(f"[STORAGE] Stored {len(content)} bytes as {target.name}")
        return str(target)

    async def read(self, filename: str) -> bytes:
        """Raises OSError (FileNotFoundError included) when the upload is gone."""
        return await asyncio.to_thread(self._path_for(filename).read_bytes)

    async def delete(self, filename: str) -> bool:
        target = self._path_for(filename)
        try:
            await asyncio.to_thread(target.unlink)
        except FileNotFoundError:
            logger.warning(f"[STORAGE] Nothing to delete at {target}")
            return False
        except OSError as e:
            logger.error(f"[STORAGE] Could not delete {target}: {e}")
            return False
        logger.info(f"[STORAGE] Deleted {target.name}")
        return True
