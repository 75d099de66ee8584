"""JSON-file task store adapter."""

import json
import logging
from pathlib import Path

from gapfill.core.memos import InvalidMemoError, Memo

logger = logging.getLogger(__name__)


class JsonTaskStore:
    """
    Memos kept in a single JSON file.

    Implements TaskRepository protocol. The file holds a list of memo
    objects; entries that cannot be parsed are skipped with a warning and
    left untouched on save.
    """

    def __init__(self, path: Path | str):
        self.path = Path(path).expanduser()

    def _read_raw(self) -> list[dict]:
        if not self.path.exists():
            return []
        try:
            data = json.loads(self.path.read_text())
        except json.JSONDecodeError as e:
            raise RuntimeError(f"Task file {self.path} is not valid JSON: {e}")
        if isinstance(data, dict):
            data = data.get("memos", [])
        return data

    def _write_raw(self, items: list[dict]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp.write_text(json.dumps(items, indent=2, ensure_ascii=False))
        tmp.replace(self.path)

    def fetch_all(self) -> list[Memo]:
        """Fetch all memos."""
        memos = []
        for item in self._read_raw():
            try:
                memos.append(Memo.from_dict(item))
            except InvalidMemoError as e:
                logger.warning(f"Skipping unreadable memo in {self.path.name}: {e}")
        return memos

    def get(self, memo_id: str) -> Memo | None:
        return next((m for m in self.fetch_all() if m.id == memo_id), None)

    def save(self, memo: Memo) -> None:
        """Replace the stored memo with the same id, or append it."""
        items = self._read_raw()
        data = memo.to_dict()
        for i, item in enumerate(items):
            if str(item.get("id")) == memo.id:
                items[i] = data
                break
        else:
            items.append(data)
        self._write_raw(items)
