"""
Core Layer - Persistence and Styling

Modules:
- position_store: per-user persisted node positions
- styling: initials, node gradients and sentiment edge colors
"""

from .position_store import (
    PositionStore,
    PositionBackend,
    InMemoryBackend,
    JsonFileBackend,
    PositionStoreError,
    create_position_store,
)
from .styling import (
    initials,
    gradient_from_id,
    line_color,
)

__all__ = [
    # Persistence
    'PositionStore',
    'PositionBackend',
    'InMemoryBackend',
    'JsonFileBackend',
    'PositionStoreError',
    'create_position_store',
    # Styling
    'initials',
    'gradient_from_id',
    'line_color',
]
