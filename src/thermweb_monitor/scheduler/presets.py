"""Named health check schedules."""

from typing import Dict, List, Optional

# Preset name -> 5-field crontab expression
SCHEDULE_PRESETS: Dict[str, str] = {
    "every_minute": "* * * * *",
    "every_5_minutes": "*/5 * * * *",
    "every_15_minutes": "*/15 * * * *",
    "hourly": "0 * * * *",
}


def get_preset(name: str) -> Optional[str]:
    """Crontab expression for a preset name, or None if unknown."""
    return SCHEDULE_PRESETS.get(name)


def list_presets() -> List[str]:
    return list(SCHEDULE_PRESETS)
