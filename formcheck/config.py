"""
Tunable engine constants. Two named profiles; individual values can be
overridden with FORMCHECK_<FIELD> environment variables (see load_config).
"""
from __future__ import annotations

import dataclasses
import logging
import os
from dataclasses import dataclass
from typing import Any, Optional

logger = logging.getLogger(__name__)

KNEE_FORWARD_PERCENT = "percent"
KNEE_FORWARD_PIXELS = "pixels"


@dataclass(frozen=True)
class EngineConfig:
    # Side selection
    # Per-joint confidence a side's hip/knee/ankle must reach.
    confidence_threshold: float = 0.45
    # Average confidence below which a side is not trusted when both are visible.
    min_side_confidence: float = 0.55
    # Other side must beat the current one by this much (absolute) to switch.
    side_switch_margin: float = 0.15

    # Phase machine (distances in the observation's pixel units, hip-to-ankle)
    debounce_frames: int = 5
    fallback_standing_distance: float = 270.0
    fallback_depth_distance: float = 150.0
    standing_ratio: float = 0.85
    depth_ratio: float = 0.50
    # Hip movement per frame treated as noise.
    velocity_noise_floor: float = 3.0
    # Near-top stall while ascending: distance above this and speed below near_top_velocity -> standing.
    near_top_distance: float = 200.0
    near_top_velocity: float = 15.0
    # Informational cadence; also used to normalise velocity when frame spacing is supplied.
    target_fps: float = 15.0

    # Form scoring
    knee_angle_min: float = 70.0
    knee_angle_max: float = 95.0
    knee_forward_mode: str = KNEE_FORWARD_PERCENT
    knee_forward_max_percent: float = 45.0
    knee_forward_max_px: float = 30.0
    back_angle_max: float = 50.0
    # Deduction above which a metric emits a coaching cue.
    knee_angle_cue_threshold: float = 5.0
    knee_forward_cue_threshold: float = 10.0
    back_angle_cue_threshold: float = 10.0

    # Repetition aggregation
    partial_rep_quality: int = 30
    max_rep_cues: int = 3
    good_form_quality: int = 70

    def with_overrides(self, **overrides: Any) -> EngineConfig:
        return dataclasses.replace(self, **overrides)


PROFILES: dict[str, EngineConfig] = {
    "standard": EngineConfig(),
    "strict": EngineConfig(
        confidence_threshold=0.5,
        min_side_confidence=0.6,
        knee_angle_min=80.0,
        knee_angle_max=100.0,
    ),
}

DEFAULT_PROFILE = "standard"
ENV_PREFIX = "FORMCHECK_"


def _parse_value(raw: str, current: Any, name: str) -> Any:
    try:
        if isinstance(current, bool):
            return raw.strip().lower() in ("1", "true", "yes", "on")
        if isinstance(current, int):
            return int(raw)
        if isinstance(current, float):
            return float(raw)
    except ValueError as e:
        raise ValueError(f"Invalid value for {ENV_PREFIX}{name.upper()}: {raw!r}") from e
    return raw.strip()


def load_config(profile: Optional[str] = None) -> EngineConfig:
    """
    Resolve a profile (argument, then FORMCHECK_PROFILE, then "standard") and
    apply FORMCHECK_<FIELD> environment overrides on top of it.
    """
    name = profile or os.getenv(f"{ENV_PREFIX}PROFILE") or DEFAULT_PROFILE
    if name not in PROFILES:
        raise ValueError(f"Unknown profile {name!r}; expected one of {sorted(PROFILES)}")
    config = PROFILES[name]
    overrides: dict[str, Any] = {}
    for f in dataclasses.fields(config):
        raw = os.getenv(f"{ENV_PREFIX}{f.name.upper()}")
        if raw is None or raw == "":
            continue
        overrides[f.name] = _parse_value(raw, getattr(config, f.name), f.name)
    if overrides.get("knee_forward_mode", config.knee_forward_mode) not in (
        KNEE_FORWARD_PERCENT,
        KNEE_FORWARD_PIXELS,
    ):
        raise ValueError(f"Invalid knee_forward_mode: {overrides['knee_forward_mode']!r}")
    if overrides:
        logger.info("config: profile=%s overrides=%s", name, overrides)
        config = config.with_overrides(**overrides)
    return config
