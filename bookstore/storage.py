"""Key-value persistence slots used by the cart store."""
import json
import logging
from pathlib import Path
from typing import Dict, Optional

logger = logging.getLogger(__name__)


class MemoryStorage:
    """In-process key-value store. Contents are lost when the process exits."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})

    def get_item(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set_item(self, key: str, value: str):
        self._data[key] = value

    def remove_item(self, key: str):
        self._data.pop(key, None)

    def close(self):
        pass


class FileStorage:
    """
    Key-value store backed by a single JSON object on disk.

    Every write rewrites the whole file, like a browser's localStorage
    flushing one origin's entries.
    """

    def __init__(self, path):
        """
        Initialize file storage.

        Args:
            path: Location of the JSON file (created on first write)
        """
        self.path = Path(path)

    def _read_all(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        with self.path.open("r", encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError(f"Storage file {self.path} does not hold a JSON object")
        return data

    def _read_for_write(self) -> Dict[str, str]:
        # An unreadable file is replaced on the next write
        try:
            return self._read_all()
        except ValueError as e:
            logger.warning(f"Overwriting unreadable storage file {self.path}: {e}")
            return {}

    def _write_all(self, data: Dict[str, str]):
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        with tmp_path.open("w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)
        tmp_path.replace(self.path)

    def get_item(self, key: str) -> Optional[str]:
        value = self._read_all().get(key)
        return value if isinstance(value, str) else None

    def set_item(self, key: str, value: str):
        data = self._read_for_write()
        data[key] = value
        self._write_all(data)

    def remove_item(self, key: str):
        data = self._read_for_write()
        if key in data:
            del data[key]
            self._write_all(data)

    def close(self):
        pass


def build_storage(config):
    """
    Create the persistence slot selected by configuration.

    Args:
        config: Config instance

    Returns:
        A storage object, or None when persistence is disabled
    """
    backend = (config.CART_STORAGE_BACKEND or "none").lower()

    if backend == "file":
        return FileStorage(config.CART_STORAGE_PATH)
    if backend == "memory":
        return MemoryStorage()
    if backend == "postgres":
        import psycopg2
        from bookstore.database import PostgresStorage

        storage = None
        try:
            storage = PostgresStorage(config.DATABASE_URL)
            storage.init_schema()
        except psycopg2.Error as e:
            logger.warning(f"PostgreSQL unavailable, cart persistence disabled: {e}")
            if storage is not None:
                storage.close()
            return None
        return storage
    if backend == "none":
        logger.info("Cart persistence disabled")
        return None

    raise ValueError(f"Unknown storage backend: {config.CART_STORAGE_BACKEND}")
