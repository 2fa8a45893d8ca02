"""
Program engine: split planning, exercise selection, set schemes,
progression, assembly and performance analysis.

Internal Codename: FORGE
"""

from .rng import SeededRandom
from .splits import SplitPlanner, Split
from .selection import ExerciseSelector, FocusStrategy, FOCUS_STRATEGIES, build_pool
from .schemes import SetSchemeAssigner
from .progression import ProgressionEngine
from .assembler import ProgramAssembler
from .performance import PerformanceAnalyzer
from .adaptation import AdaptationBoard, apply_adaptation, apply_all, filter_applied

__all__ = [
    'SeededRandom',
    'SplitPlanner',
    'Split',
    'ExerciseSelector',
    'FocusStrategy',
    'FOCUS_STRATEGIES',
    'build_pool',
    'SetSchemeAssigner',
    'ProgressionEngine',
    'ProgramAssembler',
    'PerformanceAnalyzer',
    'AdaptationBoard',
    'apply_adaptation',
    'apply_all',
    'filter_applied',
]
