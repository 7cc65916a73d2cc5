"""Configuration: layout tunables and feature flags."""

from .settings import (
    LayoutSettings,
    get_settings,
    reset_settings,
    is_enabled,
    get_all_flags,
    set_flag,
)

__all__ = [
    'LayoutSettings',
    'get_settings',
    'reset_settings',
    'is_enabled',
    'get_all_flags',
    'set_flag',
]
