"""
Engine configuration.

All tunables live in pydantic models grouped by pipeline stage and are
collected by EngineSettings, which also reads MOVEMENT_ENGINE_* environment
variables (nested fields joined with "__") and an optional .env file.

Every engine instance receives its own settings object; nothing here is
shared between instances.
"""

import os
from typing import Literal, Optional

from pydantic import BaseModel, Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .data_types import BodySegment

BASE_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), '../../'))


class ValidityConfig(BaseModel):
    """Confidence, distance and orientation gates."""
    min_landmark_confidence: float = Field(
        0.3, ge=0.0, le=1.0, description="Landmarks below this confidence are treated as missing"
    )
    head_threshold: float = Field(0.7, ge=0.0, le=1.0)
    upper_threshold: float = Field(0.6, ge=0.0, le=1.0)
    core_threshold: float = Field(0.5, ge=0.0, le=1.0)
    lower_threshold: float = Field(0.6, ge=0.0, le=1.0)

    # Fraction of frame height spanned from head to feet
    too_close_span: float = Field(0.95, gt=0.0, description="Span above this means too close")
    too_far_span: float = Field(0.35, gt=0.0, description="Span below this means too far")
    target_span: float = Field(0.7, gt=0.0)
    # Shoulder width fallback when head or feet are not visible
    too_close_shoulder_width: float = Field(0.45, gt=0.0)
    too_far_shoulder_width: float = Field(0.08, gt=0.0)
    target_shoulder_width: float = Field(0.2, gt=0.0)
    suppress_on_bad_distance: bool = Field(
        True, description="Withhold every segment while the subject is too close or too far"
    )

    max_tilt: float = Field(15.0, ge=0.0, description="Max shoulder/hip line tilt (degrees)")
    max_rotation: float = Field(20.0, ge=0.0, description="Max shoulder vs hip rotation (degrees)")
    min_frontal_ratio: float = Field(0.3, ge=0.0, description="Min shoulder width / torso length")

    @model_validator(mode="after")
    def _check_distance_bounds(self) -> "ValidityConfig":
        if self.too_far_span >= self.too_close_span:
            raise ValueError("too_far_span must be smaller than too_close_span")
        if self.too_far_shoulder_width >= self.too_close_shoulder_width:
            raise ValueError("too_far_shoulder_width must be smaller than too_close_shoulder_width")
        return self

    def threshold_for(self, segment: BodySegment) -> float:
        return {
            BodySegment.HEAD: self.head_threshold,
            BodySegment.UPPER: self.upper_threshold,
            BodySegment.CORE: self.core_threshold,
            BodySegment.LOWER: self.lower_threshold,
        }[segment]


class HistoryConfig(BaseModel):
    """Temporal buffers."""
    capacity: int = Field(30, ge=2, description="Samples kept per joint")
    rate_interval_mode: Literal["timestamps", "fixed"] = Field(
        "timestamps",
        description="'timestamps' divides by real elapsed time, 'fixed' by assumed_interval_s"
    )
    assumed_interval_s: float = Field(0.5, gt=0.0)
    stability_variance_scale: float = Field(0.01, gt=0.0)
    smoothness_scale: float = Field(10.0, gt=0.0)


class MetricsConfig(BaseModel):
    """Capability flags and score scales of the metrics engine."""
    use_3d: Optional[bool] = Field(
        None, description="None: 3D angles when depth is present; False: always planar"
    )
    enable_face_metrics: bool = True
    enable_rom_tracking: bool = True
    enable_posture: bool = True
    enable_symmetry: bool = True
    enable_motion_metrics: bool = True

    symmetry_scale: float = Field(2.0, gt=0.0)
    levelness_scale: float = Field(500.0, gt=0.0)
    alignment_scale: float = Field(400.0, gt=0.0)


class TrackingConfig(BaseModel):
    """Exercise phase tracking."""
    subject_loss_frames: int = Field(
        30, ge=1, description="Consecutive frames without the primary joint before returning to idle"
    )


class FeedbackConfig(BaseModel):
    """General posture advisories."""
    enabled: bool = True
    max_spine_lean: float = Field(20.0, ge=0.0)
    max_shoulder_tilt: float = Field(10.0, ge=0.0)


class EngineSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="MOVEMENT_ENGINE_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    LOGGING_CONFIG_FILE: str = os.path.join(BASE_DIR, 'logging.ini')
    JOURNAL_SIZE: int = Field(500, ge=1, description="Entries kept by the session journal")

    validity: ValidityConfig = Field(default_factory=ValidityConfig)
    history: HistoryConfig = Field(default_factory=HistoryConfig)
    metrics: MetricsConfig = Field(default_factory=MetricsConfig)
    tracking: TrackingConfig = Field(default_factory=TrackingConfig)
    feedback: FeedbackConfig = Field(default_factory=FeedbackConfig)


def load_settings(env_file: Optional[str] = None, **overrides) -> EngineSettings:
    """
    Build a fresh settings object.

    Args:
        env_file: .env file read for this instance only (defaults to the
                  repository's .env). The process environment is not modified.
        **overrides: Field values that win over environment variables.
    """
    return EngineSettings(
        _env_file=env_file or os.path.join(BASE_DIR, '.env'),
        _env_file_encoding="utf-8",
        **overrides
    )
