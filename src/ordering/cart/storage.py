"""Durable key/value storage for the cart.

The cart survives restarts by writing one string under a fixed key. The
port is tiny on purpose: anything that can keep a string per key (browser
storage bridge, a file, a test dict) can back a cart.
"""

import json
from abc import ABC, abstractmethod
from pathlib import Path

import structlog

logger = structlog.get_logger(__name__)


class CartStorage(ABC):
    """Abstract string storage keyed by name."""

    @abstractmethod
    def get(self, key: str) -> str | None: ...

    @abstractmethod
    def set(self, key: str, value: str) -> None: ...

    @abstractmethod
    def remove(self, key: str) -> None: ...


class MemoryCartStorage(CartStorage):
    """Process-local storage, used by the API and in tests."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self.values: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self.values.get(key)

    def set(self, key: str, value: str) -> None:
        self.values[key] = value

    def remove(self, key: str) -> None:
        self.values.pop(key, None)


class FileCartStorage(CartStorage):
    """Keeps all keys in one JSON object on disk.

    A missing or unreadable file behaves like empty storage. Concurrent
    writers are not coordinated: the last write wins.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def _read(self) -> dict[str, str]:
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return {}
        except (OSError, ValueError):
            logger.warning("Cart storage file unreadable, starting empty", path=str(self.path))
            return {}
        return data if isinstance(data, dict) else {}

    def _write(self, data: dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(data), encoding="utf-8")

    def get(self, key: str) -> str | None:
        value = self._read().get(key)
        return value if isinstance(value, str) else None

    def set(self, key: str, value: str) -> None:
        data = self._read()
        data[key] = value
        self._write(data)

    def remove(self, key: str) -> None:
        data = self._read()
        if key in data:
            del data[key]
            self._write(data)
