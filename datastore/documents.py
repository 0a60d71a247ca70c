from __future__ import annotations
import copy
import json
from functools import lru_cache
from pathlib import Path
from threading import Lock
from typing import Any, Dict, List, Optional
from uuid import uuid4

from settings import get_settings

Document = Dict[str, Any]


class DocumentTable:
    """In-memory document collection with optional JSON persistence.

    Documents are plain JSON-compatible dicts keyed by a generated id. Reads
    hand out deep copies so callers can never mutate stored state.
    """

    def __init__(self, name: str, persistence_path: Optional[Path] = None) -> None:
        self.name = name
        self._items: Dict[str, Document] = {}
        self.persistence_path = persistence_path
        self._lock = Lock()
        if persistence_path:
            persistence_path.parent.mkdir(parents=True, exist_ok=True)
            self._load_from_disk()

    def add_item(self, item: Document) -> str:
        doc_id = uuid4().hex
        self.put_item(doc_id, item)
        return doc_id

    def put_item(self, key: str, item: Document) -> None:
        with self._lock:
            self._items[key] = copy.deepcopy(item)
            self._persist()

    def get_item(self, key: str) -> Optional[Document]:
        with self._lock:
            item = self._items.get(key)
            if item is None:
                return None
            return copy.deepcopy(item)

    def update_item(self, key: str, changes: Document) -> Document:
        """Merge ``changes`` into an existing document and return the result."""
        with self._lock:
            item = self._items.get(key)
            if item is None:
                raise KeyError(f"Document {key!r} not found in table {self.name!r}.")
            item.update(copy.deepcopy(changes))
            self._persist()
            return copy.deepcopy(item)

    def query(self, **equals: Any) -> List[tuple[str, Document]]:
        """Return ``(id, document)`` pairs whose fields equal every given value."""
        with self._lock:
            return [
                (key, copy.deepcopy(item))
                for key, item in self._items.items()
                if all(item.get(field) == value for field, value in equals.items())
            ]

    def scan(self) -> List[tuple[str, Document]]:
        return self.query()

    def _persist(self) -> None:
        if not self.persistence_path:
            return
        self.persistence_path.write_text(
            json.dumps(self._items, indent=2, sort_keys=True, ensure_ascii=False),
            encoding="utf-8",
        )

    def _load_from_disk(self) -> None:
        if not self.persistence_path or not self.persistence_path.exists():
            return

        try:
            raw = self.persistence_path.read_text(encoding="utf-8") or "{}"
            data = json.loads(raw)
        except (OSError, json.JSONDecodeError):
            data = {}

        if isinstance(data, dict):
            self._items.update(
                {key: value for key, value in data.items() if isinstance(value, dict)}
            )


@lru_cache
def build_default_table(name: str) -> DocumentTable:
    settings = get_settings()
    persistence = Path(settings.data_dir) / f"{name}.json" if settings.data_dir else None
    return DocumentTable(name=name, persistence_path=persistence)
