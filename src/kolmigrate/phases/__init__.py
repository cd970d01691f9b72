"""Migration phases, run in order: project, collaborations, effects, daily stats."""

from kolmigrate.phases.collaborations import DEFAULT_STATUS, CollaborationPhase
from kolmigrate.phases.daily_stats import DailyStatsPhase, build_daily_entry
from kolmigrate.phases.effects import EffectPhase
from kolmigrate.phases.project import ProjectPhase

__all__ = [
    "ProjectPhase",
    "CollaborationPhase",
    "EffectPhase",
    "DailyStatsPhase",
    "DEFAULT_STATUS",
    "build_daily_entry",
]
