"""Key/value storage backends for persisted identity and signatures."""
from __future__ import annotations

import json
from pathlib import Path
from typing import Dict, Optional, Protocol, runtime_checkable

from routeguard.utils.errors import StorageError
from routeguard.utils.logging import get_logger

logger = get_logger(__name__)


@runtime_checkable
class Storage(Protocol):
    def get_item(self, key: str) -> Optional[str]: ...

    def set_item(self, key: str, value: str) -> None: ...

    def remove_item(self, key: str) -> None: ...


class MemoryStorage:
    """Process-local storage, gone when the process exits."""

    def __init__(self, initial: Optional[Dict[str, str]] = None) -> None:
        self._items: Dict[str, str] = dict(initial or {})

    def get_item(self, key: str) -> Optional[str]:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._items[key] = value

    def remove_item(self, key: str) -> None:
        self._items.pop(key, None)

    def __len__(self) -> int:
        return len(self._items)


class FileStorage:
    """Storage persisted as a single JSON object on disk.

    The document is re-read on every access so that two processes sharing the
    file (for instance the CLI and a running session) see each other's writes.
    """

    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)

    def _read(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        text = self.path.read_text(encoding="utf-8")
        if not text.strip():
            return {}
        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            raise StorageError(f"Storage document {self.path} is not valid JSON") from exc
        if not isinstance(data, dict):
            raise StorageError(f"Storage document {self.path} must hold a JSON object")
        return data

    def _write(self, data: Dict[str, str]) -> None:
        self.path.write_text(json.dumps(data, ensure_ascii=False, indent=2), encoding="utf-8")

    def get_item(self, key: str) -> Optional[str]:
        value = self._read().get(key)
        return None if value is None else str(value)

    def set_item(self, key: str, value: str) -> None:
        data = self._read()
        data[key] = value
        self._write(data)
        logger.debug("storage item written", extra={"path": str(self.path)})

    def remove_item(self, key: str) -> None:
        data = self._read()
        if key in data:
            del data[key]
            self._write(data)


__all__ = ["FileStorage", "MemoryStorage", "Storage"]
