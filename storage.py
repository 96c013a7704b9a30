from __future__ import annotations
import copy
import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional
from paths import get_data_dir

logger = logging.getLogger(__name__)


def data_path(filename: str | Path) -> Path:
    """
    Resolve a file path inside the app data directory.
    """
    return get_data_dir() / Path(filename)


def backup_file(path: Path, content: str) -> None:
    try:
        backup = path.with_suffix(path.suffix + ".bak")
        backup.write_text(content, encoding="utf-8")
    except OSError as exc:
        # If backup fails we still continue with a reset
        logger.warning("Could not back up %s: %s", path, exc)


def load_json(path: Path | str, default: Optional[Any] = None) -> Any:
    """
    Load JSON from path with safety:
    - If missing: return default ({} when not given)
    - If empty or invalid: write .bak and reset to default
    """
    path = Path(path)
    fallback = {} if default is None else default
    path.parent.mkdir(parents=True, exist_ok=True)

    if not path.exists():
        return copy.deepcopy(fallback)

    try:
        raw_text = path.read_text(encoding="utf-8")
    except OSError as exc:
        logger.warning("Could not read %s: %s", path, exc)
        return copy.deepcopy(fallback)

    text = raw_text.strip()
    if not text:
        backup_file(path, raw_text)
        save_json(path, fallback)
        return copy.deepcopy(fallback)

    try:
        return json.loads(text)
    except json.JSONDecodeError:
        logger.warning("Corrupt JSON in %s, backed up and reset", path)
        backup_file(path, raw_text)
        save_json(path, fallback)
        return copy.deepcopy(fallback)


def save_json(path: Path | str, payload: Any) -> None:
    """
    Atomic JSON write: write to temp file then replace target.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    temp = path.with_suffix(path.suffix + ".tmp")
    temp.write_text(
        json.dumps(payload, ensure_ascii=False, indent=2),
        encoding="utf-8",
    )
    temp.replace(path)


class JsonFileStore:
    """Durable record backed by a single JSON file."""

    def __init__(self, path: Path | str):
        self.path = Path(path)

    def load(self) -> Dict[str, Any]:
        raw = load_json(self.path, {})
        return raw if isinstance(raw, dict) else {}

    def save(self, payload: Dict[str, Any]) -> None:
        save_json(self.path, payload)


class MemoryStore:
    def __init__(self, initial: Optional[Dict[str, Any]] = None):
        self.payload: Dict[str, Any] = copy.deepcopy(initial or {})
        self.saves = 0

    def load(self) -> Dict[str, Any]:
        return copy.deepcopy(self.payload)

    def save(self, payload: Dict[str, Any]) -> None:
        self.payload = copy.deepcopy(payload)
        self.saves += 1
