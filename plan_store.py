from __future__ import annotations
import json
import logging
from typing import Any, get_args
from pydantic import ValidationError
from models import Level, PlanState
from paths import PLAN_FILE, PROGRESS_FILE
from progress import ProgressLedger
from storage import JsonFileStore, backup_file, data_path, load_json, save_json

logger = logging.getLogger(__name__)

LEVELS = list(get_args(Level))
DEFAULT_LEVEL = "intermediate"


def coerce_level(value: Any) -> str:
    if isinstance(value, str) and value.strip().lower() in LEVELS:
        return value.strip().lower()
    return DEFAULT_LEVEL


def _repair_levels(raw: Any) -> Any:
    # A cleared editor cell must not cost the whole plan
    if isinstance(raw, dict) and isinstance(raw.get("levels"), dict):
        raw["levels"] = {str(name): coerce_level(level) for name, level in raw["levels"].items()}
    return raw


def load_plan() -> PlanState:
    default_state = PlanState()
    path = data_path(PLAN_FILE)
    raw = _repair_levels(load_json(path, default_state.model_dump(mode="json")))
    try:
        return PlanState.model_validate(raw)
    except ValidationError as exc:
        logger.warning("Plan record at %s is invalid, backed up and starting fresh: %s", path, exc)
        backup_file(path, json.dumps(raw, ensure_ascii=False, indent=2))
        save_plan(default_state)
        return default_state


def save_plan(state: PlanState) -> None:
    state.levels = {name: coerce_level(level) for name, level in state.levels.items()}
    save_json(data_path(PLAN_FILE), state.model_dump(mode="json"))


def open_ledger() -> ProgressLedger:
    return ProgressLedger(JsonFileStore(data_path(PROGRESS_FILE)))


def reset_plan(state: PlanState, ledger: ProgressLedger) -> PlanState:
    """Drop subjects, rotation and progress but keep settings."""
    ledger.clear_days(list(ledger.logs))
    fresh = PlanState(settings=state.settings, config=state.config)
    save_plan(fresh)
    return fresh
