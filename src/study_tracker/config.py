"""Engine thresholds, with per-user overrides kept in the user_settings table."""
from dataclasses import dataclass, fields

from study_tracker.db import DEFAULT_DB_PATH, get_setting, set_setting


@dataclass
class EngineConfig:
    neglect_days: int = 7
    exam_soon_days: int = 7
    urgent_review_days: int = 14
    low_progress_threshold: float = 30.0
    pomodoro_minutes: int = 25


def load_config(db_path: str = DEFAULT_DB_PATH) -> EngineConfig:
    """Build an EngineConfig, taking any value stored under its field name in user_settings."""
    config = EngineConfig()
    for f in fields(EngineConfig):
        raw = get_setting(db_path, f.name)
        if raw is not None:
            setattr(config, f.name, type(getattr(config, f.name))(raw))
    return config


def save_config_value(db_path: str, name: str, value) -> None:
    valid = {f.name for f in fields(EngineConfig)}
    if name not in valid:
        raise KeyError(f"Unknown setting: {name}")
    set_setting(db_path, name, str(value))
