"""Synthetic history seeding."""

from .scenario import ScenarioSeeder, ScenarioWriter, SeedError, SeedResult
from .timeline import EventTime, GiftTime, TimelineGenerator, TimelineSettings

__all__ = [
    "ScenarioSeeder",
    "ScenarioWriter",
    "SeedError",
    "SeedResult",
    "TimelineGenerator",
    "TimelineSettings",
    "EventTime",
    "GiftTime",
]
