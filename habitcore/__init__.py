# File: __init__.py
"""habitcore - scheduling and streak engine for shared habit tracking.

Pure, synchronous computations over snapshots of habits, completions and
members. Callers own persistence; every engine returns derived values for the
caller to store.
"""

from __future__ import annotations

from .data_builders import EntityValidationError, build_engine_config
from .engines import (
    ChainEngine,
    GamificationEngine,
    InvalidChainLinkError,
    ScheduleEngine,
    StatisticsEngine,
    StreakEngine,
    UnknownScheduleTypeError,
    WagerEngine,
)

__all__ = [
    "ChainEngine",
    "EntityValidationError",
    "GamificationEngine",
    "InvalidChainLinkError",
    "ScheduleEngine",
    "StatisticsEngine",
    "StreakEngine",
    "UnknownScheduleTypeError",
    "WagerEngine",
    "build_engine_config",
]
