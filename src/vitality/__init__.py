"""
Vitality - adaptive workout programs.

Builds deterministic weekly training plans from a structured request and
an exercise catalog, progresses them from logged sessions, and analyzes
execution to suggest adaptations.
"""

from .catalog import ExerciseCatalog, ExerciseFilter, load_catalog
from .config import EngineConfig, Settings
from .errors import (
    AdaptationApplyConflict,
    EmptyPoolError,
    MalformedRequestError,
    VitalityError,
)
from .models import (
    Adaptation,
    Goal,
    Level,
    SessionLog,
    TrainingRequest,
    WeeklyPlan,
)
from .profile import ProfileResolver
from .program import PerformanceAnalyzer, ProgramAssembler, apply_adaptation

__version__ = "0.3.0"

__all__ = [
    'ExerciseCatalog',
    'ExerciseFilter',
    'load_catalog',
    'EngineConfig',
    'Settings',
    'VitalityError',
    'EmptyPoolError',
    'MalformedRequestError',
    'AdaptationApplyConflict',
    'Adaptation',
    'Goal',
    'Level',
    'SessionLog',
    'TrainingRequest',
    'WeeklyPlan',
    'ProfileResolver',
    'ProgramAssembler',
    'PerformanceAnalyzer',
    'apply_adaptation',
]
