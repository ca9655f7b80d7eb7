# activity_recorder/config.py
import json
import os
from dataclasses import dataclass, field, fields, replace
from typing import Optional, Tuple

import yaml
from dotenv import load_dotenv

load_dotenv()

DEFAULT_DB_PATH = os.path.join(os.getcwd(), "recordings", "workflows.db")


@dataclass(frozen=True)
class RecorderConfig:
    input_debounce: float = 0.5
    scroll_debounce: float = 0.4
    scroll_threshold: int = 300
    max_value_length: int = 200
    click_text_length: int = 80
    text_selector_length: int = 50
    capture_input_value: bool = True
    capture_input_hash: bool = False
    sensitive_fields: Tuple[str, ...] = field(default_factory=tuple)
    db_path: str = DEFAULT_DB_PATH
    sink_url: Optional[str] = None

    @classmethod
    def from_env(cls) -> "RecorderConfig":
        """Build a config from RECORDER_* environment variables (.env supported)."""
        values = {}
        for f in fields(cls):
            raw = os.getenv(f"RECORDER_{f.name.upper()}")
            if raw is not None:
                values[f.name] = raw
        return cls()._merge(values)

    def _merge(self, values: dict) -> "RecorderConfig":
        known = {f.name: f for f in fields(self)}
        unknown = sorted(set(values) - set(known))
        if unknown:
            raise ValueError(f"Unknown recorder config keys: {', '.join(unknown)}")
        coerced = {name: _coerce(getattr(self, name), raw) for name, raw in values.items()}
        return replace(self, **coerced)


def _coerce(default, raw):
    if raw is None:
        return None
    if isinstance(default, bool):
        if isinstance(raw, bool):
            return raw
        return str(raw).strip().lower() in ("1", "true", "yes", "on")
    if isinstance(default, int):
        return int(raw)
    if isinstance(default, float):
        return float(raw)
    if isinstance(default, tuple):
        if isinstance(raw, str):
            return tuple(s.strip() for s in raw.split(",") if s.strip())
        return tuple(raw)
    return str(raw)


def load_config(file_path: Optional[str] = None) -> RecorderConfig:
    """Load config from the environment, overlaid with a JSON or YAML file."""
    config = RecorderConfig.from_env()
    if not file_path:
        return config

    ext = os.path.splitext(file_path)[1].lower()
    if ext == ".json":
        with open(file_path, "r", encoding="utf-8") as f:
            data = json.load(f)
    elif ext in (".yaml", ".yml"):
        with open(file_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    else:
        raise ValueError(f"Unsupported config file type: {ext}")

    return config._merge(data or {})
