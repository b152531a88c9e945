"""Key-value storage backends holding one serialized blob per key."""

import os
import errno
import uuid
import logging
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Iterable, Optional, Union

from .exceptions import StorageError, ValidationError

logger = logging.getLogger(__name__)


class KeyValueStorage(ABC):
    """Minimal string key-value store."""

    @abstractmethod
    def get_item(self, key: str) -> Optional[str]:
        """
        Read the value stored under a key.

        Returns:
            The stored value, or None if the key is absent

        Raises:
            StorageError: If the read fails
        """

    @abstractmethod
    def set_item(self, key: str, value: str) -> None:
        """
        Store a value under a key, replacing any previous value.

        Raises:
            StorageError: If the write fails
        """

    @abstractmethod
    def remove_items(self, keys: Iterable[str]) -> None:
        """
        Remove several keys. Absent keys are ignored.

        Raises:
            StorageError: If the removal fails
        """


class MemoryStorage(KeyValueStorage):
    """In-process storage; contents are lost when the process exits."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._items: Dict[str, str] = dict(initial or {})

    def get_item(self, key: str) -> Optional[str]:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._items[key] = value

    def remove_items(self, keys: Iterable[str]) -> None:
        for key in keys:
            self._items.pop(key, None)


class FileStorage(KeyValueStorage):
    """Stores each key as a JSON file in a directory."""

    def __init__(self, directory: Union[str, Path]):
        """
        Initialize file storage.

        Args:
            directory: Directory holding one file per key
        """
        self.directory = Path(directory)

    def _path(self, key: str) -> Path:
        return self.directory / f"{key}.json"

    def get_item(self, key: str) -> Optional[str]:
        path = self._path(key)
        try:
            return path.read_text(encoding='utf-8')
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError) as e:
            logger.error(f"Error reading {path}: {e}")
            raise StorageError(f"Failed to read {key}: {str(e)}")

    def set_item(self, key: str, value: str) -> None:
        path = self._path(key)
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            # Write to a sibling temp file, then swap it in
            fd, tmp_name = tempfile.mkstemp(dir=self.directory, prefix=f".{key}.", suffix='.tmp')
            try:
                with os.fdopen(fd, 'w', encoding='utf-8') as handle:
                    handle.write(value)
                os.replace(tmp_name, path)
            except BaseException:
                if os.path.exists(tmp_name):
                    os.unlink(tmp_name)
                raise
        except OSError as e:
            logger.error(f"Error writing {path}: {e}")
            raise StorageError(f"Failed to write {key}: {str(e)}")

    def remove_items(self, keys: Iterable[str]) -> None:
        """
        Remove several keys as a unit.

        Every file is first moved aside; if any of them cannot be, the moved
        files are put back and nothing is removed.

        Raises:
            StorageError: If the removal fails
        """
        staged = []
        for key in keys:
            path = self._path(key)
            try:
                if path.is_dir():
                    raise IsADirectoryError(errno.EISDIR, os.strerror(errno.EISDIR), str(path))
                if not path.exists():
                    continue
                aside = self.directory / f".{key}.{uuid.uuid4().hex}.removing"
                os.replace(path, aside)
                staged.append((path, aside))
            except OSError as e:
                logger.error(f"Error removing {path}: {e}")
                self._restore(staged)
                raise StorageError(f"Failed to remove {key}: {str(e)}")

        for _, aside in staged:
            try:
                aside.unlink()
            except OSError as e:
                # Already out of the key's place, so the removal itself holds
                logger.warning(f"Could not delete {aside}: {e}")

    def _restore(self, staged) -> None:
        for path, aside in reversed(staged):
            os.replace(aside, path)


def create_storage(settings) -> KeyValueStorage:
    """
    Build the storage backend named by the settings.

    Args:
        settings: Application settings

    Returns:
        Storage backend

    Raises:
        ValidationError: If the backend is unknown or misconfigured
    """
    backend = settings.storage_backend

    if backend == 'memory':
        return MemoryStorage()

    if backend == 'file':
        return FileStorage(settings.data_dir)

    if backend == 's3':
        if not settings.storage_bucket:
            raise ValidationError("STORAGE_BUCKET is required for the s3 backend")
        from .s3 import S3Storage
        return S3Storage(settings.storage_bucket, prefix=settings.storage_prefix)

    raise ValidationError(f"Invalid storage backend: {backend}")
