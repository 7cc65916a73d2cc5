"""
Layout Tunables and Feature Flags

This module holds every tunable constant of the layout engine as a named,
validated value, plus feature flags for the orchestration behaviours that
can be toggled without code changes. Values are read from environment
variables so a deployment can retune separation or persistence without a
release.

Usage:
    from netmap.config.settings import get_settings, is_enabled

    settings = get_settings()
    resolver = CollisionResolver(settings)

    if is_enabled('persist_positions'):
        store.save(nodes)

Environment Variables:
    NETMAP_MIN_SEPARATION=62.5     - Minimum center-to-center distance
    NETMAP_PUSH_STEP=5             - Overshoot added to every correction
    NETMAP_MAX_ITERATIONS=50       - Resolver pass cap
    NETMAP_STORAGE_DIR=...         - Directory for persisted positions
    NETMAP_PERSIST_POSITIONS=true/false - Toggle Position Store writes
    NETMAP_RESOLVE_ON_LOAD=true/false   - Toggle the settle pass on load

    Any other LayoutSettings field can be overridden the same way
    (NETMAP_<FIELD_NAME_UPPERCASE>).
"""

import math
import os
from pathlib import Path
from typing import Dict, Optional

from pydantic import BaseModel, Field, model_validator

ENV_PREFIX = "NETMAP_"


class LayoutSettings(BaseModel):
    """Tunable constants for placement, collision resolution and attachments.

    Distances are in diagram units (pixels at zoom 1). The defaults form one
    coherent set: circles of radius 25, kept at least 2.5 radii apart.
    """

    # Node geometry
    node_radius: float = Field(default=25.0, gt=0, description="Rendered circle radius")
    attachment_points: int = Field(
        default=64, ge=4, description="Evenly spaced perimeter attachment points per node"
    )

    # Collision resolution
    min_separation: float = Field(
        default=62.5, gt=0, description="Minimum allowed center-to-center distance"
    )
    push_step: float = Field(
        default=5.0, ge=0, description="Overshoot added on top of the raw overlap"
    )
    max_iterations: int = Field(default=50, ge=1, description="Resolver pass cap")
    coincidence_epsilon: float = Field(
        default=1e-6, gt=0, description="Distances below this are treated as coincident"
    )
    active_share: float = Field(
        default=0.3, gt=0, lt=1, description="Push fraction taken by the dragged node"
    )
    passive_share: float = Field(
        default=0.7, gt=0, lt=1, description="Push fraction taken by the dragged node's partner"
    )
    symmetric_share: float = Field(
        default=0.5, gt=0, le=1, description="Push fraction per node when neither is active"
    )

    # Ring placement for contacts without an introducer
    ring_radius: float = Field(default=200.0, gt=0)
    ring_radius_jitter: float = Field(default=40.0, ge=0)

    # Arc placement for introduced contacts
    introduced_radius: float = Field(default=120.0, gt=0)
    introduced_radius_jitter: float = Field(default=30.0, ge=0)
    introduced_spread: float = Field(default=math.pi / 4, ge=0)
    introduced_spread_jitter: float = Field(default=math.pi / 12, ge=0)
    introduced_max_spread: float = Field(default=math.pi, ge=0)

    # Identity and storage
    self_node_id: str = Field(default="user-center", min_length=1)
    storage_dir: Path = Field(default=Path.home() / ".netmap" / "positions")

    @model_validator(mode="after")
    def validate_shares(self) -> "LayoutSettings":
        """The dragged node must yield less than its partner, and the split is complete."""
        if not math.isclose(self.active_share + self.passive_share, 1.0, abs_tol=1e-9):
            raise ValueError(
                f"active_share + passive_share must equal 1, got "
                f"{self.active_share} + {self.passive_share}"
            )
        if self.active_share >= self.passive_share:
            raise ValueError(
                f"active_share ({self.active_share}) must be smaller than "
                f"passive_share ({self.passive_share})"
            )
        return self

    @classmethod
    def from_env(cls, environ: Optional[Dict[str, str]] = None) -> "LayoutSettings":
        """Build settings from NETMAP_* environment variables.

        Args:
            environ: Mapping to read instead of os.environ (for tests)

        Returns:
            Validated LayoutSettings

        Raises:
            pydantic.ValidationError: If an override is not a valid value
        """
        environ = os.environ if environ is None else environ
        overrides = {}
        for name in cls.model_fields:
            value = environ.get(f"{ENV_PREFIX}{name.upper()}")
            if value is not None:
                overrides[name] = value
        return cls(**overrides)


_settings: Optional[LayoutSettings] = None


def get_settings() -> LayoutSettings:
    """Return the process-wide settings, reading the environment on first use."""
    global _settings
    if _settings is None:
        _settings = LayoutSettings.from_env()
    return _settings


def reset_settings() -> None:
    """Forget cached settings so the next get_settings() re-reads the environment."""
    global _settings
    _settings = None


# Feature flags with environment variable overrides
FEATURE_FLAGS: Dict[str, bool] = {
    # Write drag results to the Position Store on drag end
    'persist_positions': os.getenv('NETMAP_PERSIST_POSITIONS', 'true').lower() == 'true',

    # Run the collision resolver once after every data load
    'resolve_on_load': os.getenv('NETMAP_RESOLVE_ON_LOAD', 'true').lower() == 'true',
}


def is_enabled(flag: str) -> bool:
    """
    Check if a feature flag is enabled.

    Args:
        flag: Feature flag name (e.g., 'persist_positions')

    Returns:
        True if flag is enabled, False otherwise

    Raises:
        KeyError: If flag name is not recognized
    """
    if flag not in FEATURE_FLAGS:
        available = ', '.join(FEATURE_FLAGS.keys())
        raise KeyError(
            f"Unknown feature flag: '{flag}'. "
            f"Available flags: {available}"
        )

    return FEATURE_FLAGS[flag]


def get_all_flags() -> Dict[str, bool]:
    """Get all feature flags and their current state."""
    return FEATURE_FLAGS.copy()


def set_flag(flag: str, enabled: bool) -> None:
    """
    Programmatically set a feature flag (for testing only).

    Args:
        flag: Feature flag name
        enabled: True to enable, False to disable

    Warning:
        This is for testing only. In production, use environment variables.
    """
    if flag not in FEATURE_FLAGS:
        available = ', '.join(FEATURE_FLAGS.keys())
        raise KeyError(
            f"Unknown feature flag: '{flag}'. "
            f"Available flags: {available}"
        )

    FEATURE_FLAGS[flag] = enabled
