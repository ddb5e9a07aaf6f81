from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import List

from .models import Alarm

logger = logging.getLogger(__name__)


def load_alarms(path: Path) -> List[Alarm]:
    if not path.exists():
        return []
    try:
        with path.open("r", encoding="utf-8") as f:
            payload = json.load(f)
    except (OSError, ValueError) as exc:
        logger.error("Failed to load alarms from %s: %s", path, exc)
        return []
    if not isinstance(payload, list):
        logger.error("Alarm file %s does not hold a list, ignoring it", path)
        return []
    alarms: List[Alarm] = []
    for item in payload:
        try:
            alarms.append(Alarm.from_dict(item))
        except (AttributeError, TypeError, ValueError) as exc:
            logger.warning("Skipping alarm item due to parse error: %s", exc)
    return alarms


def save_alarms(path: Path, alarms: List[Alarm]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    serializable = [a.to_dict() for a in alarms]
    tmp_path = path.with_suffix(path.suffix + ".tmp")
    with tmp_path.open("w", encoding="utf-8") as f:
        json.dump(serializable, f, ensure_ascii=False, indent=2)
    tmp_path.replace(path)


class JsonAlarmStore:
    """Persistence collaborator: plugs into ``AlarmManager(on_change=...)``."""

    def __init__(self, path: Path):
        self.path = Path(path)

    def load(self) -> List[Alarm]:
        alarms = load_alarms(self.path)
        logger.info("Loaded %s alarms from %s", len(alarms), self.path)
        return alarms

    def __call__(self, alarms: List[Alarm]) -> None:
        save_alarms(self.path, alarms)
