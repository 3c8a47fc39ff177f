from __future__ import annotations

import json
import os
import threading
from pathlib import Path
from typing import Dict, Optional, Union


class LocalStorage:
    """String key/value store standing in for the browser's localStorage.

    With a path the items are kept in a JSON file and survive restarts;
    without one they live only in memory.
    """

    def __init__(self, path: Optional[Union[str, Path]] = None) -> None:
        self.path = Path(path) if path else None
        self._lock = threading.Lock()
        self._items: Dict[str, str] = self._read()

    def get_item(self, key: str) -> Optional[str]:
        with self._lock:
            return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        with self._lock:
            self._items[key] = str(value)
            self._flush()

    def remove_item(self, key: str) -> None:
        with self._lock:
            if self._items.pop(key, None) is not None:
                self._flush()

    def _read(self) -> Dict[str, str]:
        if self.path is None or not self.path.exists():
            return {}
        with self.path.open(encoding="utf-8") as handle:
            data = json.load(handle)
        return {str(key): str(value) for key, value in data.items()}

    def _flush(self) -> None:
        if self.path is None:
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        with tmp_path.open("w", encoding="utf-8") as handle:
            json.dump(self._items, handle)
        os.replace(tmp_path, self.path)


__all__ = ["LocalStorage"]
