"""Sidecar records: the JSON documents Google Takeout writes next to each photo."""
from __future__ import annotations

import json
from pathlib import Path
from types import MappingProxyType
from typing import Any, Iterable, Mapping


class SidecarRecord:
    """Read-only view over a decoded sidecar document with path lookup.

    Paths are either a dotted string (``"photoTakenTime.timestamp"``) or a
    sequence of keys. Missing keys, or walking into a non-mapping, give None.
    """

    def __init__(self, data: Mapping[str, Any], source: str | Path | None = None):
        if not isinstance(data, Mapping):
            raise TypeError(f"Sidecar document must be a JSON object, got {type(data).__name__}")
        self._data = MappingProxyType(dict(data))
        self.source = Path(source) if source is not None else None

    @classmethod
    def from_bytes(cls, raw: bytes | str, source: str | Path | None = None) -> "SidecarRecord":
        if isinstance(raw, bytes):
            raw = raw.decode("utf-8-sig")
        return cls(json.loads(raw), source=source)

    @classmethod
    def load(cls, path: str | Path) -> "SidecarRecord":
        path = Path(path)
        return cls.from_bytes(path.read_bytes(), source=path)

    def lookup(self, path: str | Iterable[str], default: Any = None) -> Any:
        """Return the value at `path`, or `default` if any step is absent."""
        parts = path.split(".") if isinstance(path, str) else list(path)
        node: Any = self._data
        for part in parts:
            if isinstance(node, Mapping) and part in node:
                node = node[part]
            else:
                return default
        return node

    @property
    def title(self) -> str | None:
        value = self.lookup("title")
        return value if isinstance(value, str) and value else None

    def __repr__(self) -> str:
        return f"SidecarRecord(source={str(self.source)!r})"
