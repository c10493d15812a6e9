"""
Configuration
Defaults mirror the installation's tuned constants; a JSON file may override them.
"""

import json
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Dict, Optional, Tuple


@dataclass(frozen=True)
class TrainingConfig:
    """Mirrored training hyperparameters"""
    hidden_dims: Tuple[int, ...] = (128, 64, 32)
    epochs: int = 50
    batch_size: int = 32
    learning_rate: float = 0.001
    min_samples: int = 10
    device: str = 'cpu'
    # If set, loss curves for both runs are saved here
    history_dir: Optional[str] = None


@dataclass(frozen=True)
class SessionConfig:
    recording_seconds: float = 10.0
    pre_roll_seconds: float = 3.0
    gesture_threshold: int = 100  # ~5s at 20 fps
    max_bodies: int = 2


@dataclass(frozen=True)
class RenderConfig:
    """Metaball skeleton parameters"""
    strength: float = 0.033
    subdivisions: int = 8
    leg_multiplier: float = 1.5
    head_multiplier: float = 8.0
    torso_multiplier: float = 5.0
    resolution: int = 96
    isolation: float = 800.0
    subtract: float = 6.0
    fps: float = 60.0
    window_size: int = 480


@dataclass(frozen=True)
class AppConfig:
    training: TrainingConfig = field(default_factory=TrainingConfig)
    session: SessionConfig = field(default_factory=SessionConfig)
    render: RenderConfig = field(default_factory=RenderConfig)
    camera_index: int = 0
    model_path: str = 'models/pose_landmarker_full.task'
    mirror: bool = False
    show_video: bool = True


def _coerce(value: Any, default: Any, name: str) -> Any:
    if default is None:
        return None if value is None else str(value)
    try:
        if isinstance(default, bool):
            if isinstance(value, str):
                return value.strip().lower() in ('1', 'true', 'yes', 'on')
            return bool(value)
        if isinstance(default, tuple):
            return tuple(int(v) for v in value)
        return type(default)(value)
    except (TypeError, ValueError) as e:
        raise ValueError(f"Invalid value for '{name}': {value!r}") from e


def _apply(section, raw: Dict[str, Any], prefix: str = ''):
    """Return a copy of a config dataclass with known keys from raw applied"""
    updates = {}
    for f in fields(section):
        if f.name in raw and not isinstance(getattr(section, f.name), (TrainingConfig, SessionConfig, RenderConfig)):
            updates[f.name] = _coerce(raw[f.name], getattr(section, f.name), prefix + f.name)
    return replace(section, **updates)


def load_config(path=None) -> AppConfig:
    """Load an AppConfig from JSON. A missing file yields the defaults."""
    config = AppConfig()
    if path is None:
        return config

    path = Path(path).expanduser()
    if not path.exists():
        return config

    with open(path) as f:
        raw = json.load(f)
    if not isinstance(raw, dict):
        raise ValueError(f"Config root must be an object: {path}")

    return replace(
        _apply(config, raw),
        training=_apply(config.training, raw.get('training') or {}, 'training.'),
        session=_apply(config.session, raw.get('session') or {}, 'session.'),
        render=_apply(config.render, raw.get('render') or {}, 'render.'),
    )
