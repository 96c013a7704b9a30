from __future__ import annotations
import os
import sys
from pathlib import Path


APP_NAME = "StudyCyclePlanner"
DATA_DIR_ENV = "STUDY_PLANNER_DATA_DIR"

PLAN_FILE = "plan.json"
PROGRESS_FILE = "progress.json"


def _platform_base(home: Path) -> Path:
    if sys.platform == "darwin":
        return home / "Library" / "Application Support" / APP_NAME
    if sys.platform.startswith("win"):
        appdata = os.environ.get("APPDATA")
        return (Path(appdata) if appdata else home / "AppData" / "Roaming") / APP_NAME
    xdg = os.environ.get("XDG_DATA_HOME")
    return (Path(xdg) if xdg else home / ".local" / "share") / "study-cycle-planner"


def get_data_dir() -> Path:
    """
    Directory holding the plan and progress records.
    STUDY_PLANNER_DATA_DIR wins; otherwise the per-OS user data location.
    """
    override = os.environ.get(DATA_DIR_ENV)
    base = Path(override).expanduser() if override else _platform_base(Path.home())
    base.mkdir(parents=True, exist_ok=True)
    return base
