"""In-memory knowledge base injected verbatim into stage prompts."""

from __future__ import annotations

import json
import logging
import threading
import uuid
from dataclasses import asdict, dataclass
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional

logger = logging.getLogger(__name__)

MAX_SNIPPET_CHARS = 50_000
CONTEXT_HEADER = "=== [USER UPLOADED KNOWLEDGE BASE] ==="
CONTEXT_FOOTER = "=== [END KNOWLEDGE BASE] ==="


def _kind_for(name: str) -> str:
    lowered = name.lower()
    if lowered.endswith(".csv"):
        return "CSV"
    if lowered.endswith(".json"):
        return "JSON"
    return "TEXT"


@dataclass
class KnowledgeItem:
    item_id: str
    name: str
    kind: str
    content: str
    size: int
    uploaded_at: str
    summary: Optional[str] = None


class KnowledgeBase:
    """Thread-safe store of uploaded reference documents.

    No embeddings: every stage receives the whole (truncated) store, in upload
    order. Large documents are cut at ``MAX_SNIPPET_CHARS`` characters.
    """

    def __init__(self, items: Optional[List[KnowledgeItem]] = None) -> None:
        self._items: Dict[str, KnowledgeItem] = {item.item_id: item for item in (items or [])}
        self._lock = threading.Lock()

    def ingest(self, name: str, content: str, summary: Optional[str] = None) -> KnowledgeItem:
        item = KnowledgeItem(
            item_id=uuid.uuid4().hex[:7],
            name=name,
            kind=_kind_for(name),
            content=content,
            size=len(content.encode("utf-8")),
            uploaded_at=datetime.now().isoformat(timespec="seconds"),
            summary=summary,
        )
        with self._lock:
            self._items[item.item_id] = item
        logger.info("Knowledge ingested: %s (%s, %d bytes)", name, item.kind, item.size)
        return item

    def ingest_file(self, path: Path) -> KnowledgeItem:
        return self.ingest(path.name, path.read_text(encoding="utf-8-sig"))

    def delete(self, item_id: str) -> bool:
        with self._lock:
            removed = self._items.pop(item_id, None)
        if removed:
            logger.info("Knowledge removed: %s", removed.name)
        return removed is not None

    def items(self) -> List[KnowledgeItem]:
        with self._lock:
            return list(self._items.values())

    def context_for(self, stage_id: str) -> str:
        """Render the knowledge block for a stage prompt ("" when the store is empty)."""
        items = self.items()
        if not items:
            return ""

        lines = [CONTEXT_HEADER]
        for index, item in enumerate(items, start=1):
            lines.append(f"--- FILE {index}: {item.name} ({item.kind}) ---")
            lines.append(item.content[:MAX_SNIPPET_CHARS])
            if len(item.content) > MAX_SNIPPET_CHARS:
                lines.append("...(Truncated for bandwidth)...")
        lines.append(CONTEXT_FOOTER)
        return "\n".join(lines)

    def save_json(self, path: Path) -> None:
        payload = {"items": [asdict(item) for item in self.items()]}
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(payload, ensure_ascii=False, indent=2), encoding="utf-8")

    @classmethod
    def load_json(cls, path: Path) -> "KnowledgeBase":
        """Load a knowledge base snapshot from disk; malformed entries are skipped."""

        raw = json.loads(path.read_text(encoding="utf-8-sig"))

        items: List[KnowledgeItem] = []
        for entry in raw.get("items", []):
            if not isinstance(entry, dict) or not entry.get("item_id"):
                continue
            content = str(entry.get("content", ""))
            items.append(
                KnowledgeItem(
                    item_id=str(entry["item_id"]),
                    name=str(entry.get("name", "")),
                    kind=str(entry.get("kind") or _kind_for(str(entry.get("name", "")))),
                    content=content,
                    size=int(entry.get("size") or len(content.encode("utf-8"))),
                    uploaded_at=str(entry.get("uploaded_at", "")),
                    summary=entry.get("summary"),
                )
            )
        return cls(items)
