"""
Training Data Model

Internal Codename: BLUEPRINT
Dataclasses and enums shared by the planner, the progression engine and
the performance coach. Everything here serializes to plain JSON-ready
dicts so the storage collaborator never needs to know about our types.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Dict, FrozenSet, List, Optional, Set, Tuple

from dateutil import parser as date_parser

logger = logging.getLogger(__name__)


WEEKDAY_NAMES = [
    "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"
]

MIN_DAYS_PER_WEEK = 3
MAX_DAYS_PER_WEEK = 7
MIN_SETS = 1
MAX_SETS = 6
COMPOUND_REP_CAP = 10
ISOLATION_REP_CAP = 20


# =============================================================================
# Enumerations
# =============================================================================

class Goal(Enum):
    """Primary training goal."""
    STRENGTH = "strength"
    WEIGHT_LOSS = "weight_loss"
    MUSCLE_GAIN = "muscle_gain"
    ENDURANCE = "endurance"
    FLEXIBILITY = "flexibility"


class Level(Enum):
    """Training experience level. Also used as exercise difficulty."""
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"


class Category(Enum):
    """Exercise category in the catalog."""
    STRENGTH = "strength"
    CARDIO = "cardio"
    FLEXIBILITY = "flexibility"
    BALANCE = "balance"


class PlanCategory(Enum):
    """Coarse classification of a whole plan."""
    STRENGTH = "strength"
    CARDIO = "cardio"
    FLEXIBILITY = "flexibility"
    BODYWEIGHT = "bodyweight"
    MIXED = "mixed"


class AdaptationType(Enum):
    PROGRESSIVE_OVERLOAD = "progressive_overload"
    VOLUME_ADJUSTMENT = "volume_adjustment"
    EXERCISE_SUBSTITUTION = "exercise_substitution"
    INTENSITY_CHANGE = "intensity_change"
    FREQUENCY_CHANGE = "frequency_change"
    DURATION_ADJUSTMENT = "duration_adjustment"
    REST_ADJUSTMENT = "rest_adjustment"


class Priority(Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class Impact(Enum):
    POSITIVE = "positive"
    NEUTRAL = "neutral"
    NEGATIVE = "negative"


def parse_enum(enum_cls, value, default):
    """
    Coerce a raw value into an enum member.

    Unknown values fall back to ``default`` with a warning; upstream
    parsing is best-effort so we never fail on a bad label.
    """
    if isinstance(value, enum_cls):
        return value
    if value is None:
        return default
    try:
        return enum_cls(str(value).strip().lower())
    except ValueError:
        logger.warning("Unknown %s %r, using %s", enum_cls.__name__, value, default.value)
        return default


def parse_date(value) -> date:
    """Parse a date from a date, datetime or string."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date_parser.parse(str(value)).date()


def parse_datetime(value) -> datetime:
    if isinstance(value, datetime):
        return value
    return date_parser.parse(str(value))


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# Catalog
# =============================================================================

@dataclass(frozen=True)
class ExerciseDefinition:
    """A single catalog entry. Immutable once loaded."""
    id: str
    name: str
    category: Category
    movement_pattern: str
    primary_muscle_group: str
    secondary_muscle_groups: FrozenSet[str] = frozenset()
    muscle_region: str = "full"  # Sub-area of the primary group, e.g. "upper"
    difficulty: Level = Level.BEGINNER
    equipment: FrozenSet[str] = frozenset({"bodyweight"})
    alternatives: Tuple[str, ...] = ()

    @property
    def is_compound(self) -> bool:
        return len(self.secondary_muscle_groups) > 0

    @property
    def muscle_groups(self) -> List[str]:
        """Primary group first, then secondaries in stable order."""
        return [self.primary_muscle_group] + sorted(self.secondary_muscle_groups)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ExerciseDefinition':
        equipment = data.get("equipment") or ["bodyweight"]
        if isinstance(equipment, str):
            equipment = [equipment]
        return cls(
            id=str(data["id"]),
            name=data["name"],
            category=parse_enum(Category, data.get("category"), Category.STRENGTH),
            movement_pattern=data.get("movement_pattern", "other"),
            primary_muscle_group=data["primary_muscle_group"],
            secondary_muscle_groups=frozenset(data.get("secondary_muscle_groups") or []),
            muscle_region=data.get("muscle_region") or "full",
            difficulty=parse_enum(Level, data.get("difficulty"), Level.BEGINNER),
            equipment=frozenset(e.lower() for e in equipment),
            alternatives=tuple(data.get("alternatives") or []),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "category": self.category.value,
            "movement_pattern": self.movement_pattern,
            "primary_muscle_group": self.primary_muscle_group,
            "secondary_muscle_groups": sorted(self.secondary_muscle_groups),
            "muscle_region": self.muscle_region,
            "difficulty": self.difficulty.value,
            "equipment": sorted(self.equipment),
            "alternatives": list(self.alternatives),
        }


# =============================================================================
# Requests and plans
# =============================================================================

@dataclass
class TrainingRequest:
    """Structured training intent produced by the profile resolver."""
    goal: Goal
    level: Level
    days_per_week: int = 3
    excluded_exercise_names: Set[str] = field(default_factory=set)
    secondary_goals: Set[Goal] = field(default_factory=set)
    preferred_session_minutes: Optional[int] = None
    equipment_available: Optional[Set[str]] = None  # None = full gym

    def fingerprint(self) -> Dict[str, Any]:
        """Stable, order-independent representation for hashing."""
        return {
            "goal": self.goal.value,
            "level": self.level.value,
            "days_per_week": self.days_per_week,
            "excluded": sorted(n.lower() for n in self.excluded_exercise_names),
            "secondary_goals": sorted(g.value for g in self.secondary_goals),
            "preferred_session_minutes": self.preferred_session_minutes,
            "equipment": None if self.equipment_available is None
            else sorted(self.equipment_available),
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            "goal": self.goal.value,
            "level": self.level.value,
            "days_per_week": self.days_per_week,
            "excluded_exercise_names": sorted(self.excluded_exercise_names),
            "secondary_goals": sorted(g.value for g in self.secondary_goals),
            "preferred_session_minutes": self.preferred_session_minutes,
            "equipment_available": None if self.equipment_available is None
            else sorted(self.equipment_available),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'TrainingRequest':
        equipment = data.get("equipment_available")
        try:
            days = int(data.get("days_per_week", 3))
        except (TypeError, ValueError):
            logger.warning("Unparseable days_per_week %r, using 3", data.get("days_per_week"))
            days = 3
        minutes = data.get("preferred_session_minutes")
        return cls(
            goal=parse_enum(Goal, data.get("goal"), Goal.STRENGTH),
            level=parse_enum(Level, data.get("level"), Level.BEGINNER),
            days_per_week=days,
            excluded_exercise_names=set(data.get("excluded_exercise_names") or []),
            secondary_goals={
                parse_enum(Goal, g, Goal.STRENGTH) for g in data.get("secondary_goals") or []
            },
            preferred_session_minutes=int(minutes) if minutes is not None else None,
            equipment_available=set(equipment) if equipment is not None else None,
        )


@dataclass
class PlannedExercise:
    """One exercise slot inside a day, with its prescribed scheme."""
    exercise_id: str
    name: str
    sets: int
    reps: int
    weight: float = 0.0
    rest_seconds: Optional[int] = None
    category: Category = Category.STRENGTH
    movement_pattern: str = "other"
    muscle_groups: List[str] = field(default_factory=list)  # Primary first
    equipment: List[str] = field(default_factory=list)
    difficulty: Level = Level.BEGINNER

    @property
    def is_compound(self) -> bool:
        return len(self.muscle_groups) > 1

    @property
    def rep_cap(self) -> int:
        return COMPOUND_REP_CAP if self.is_compound else ISOLATION_REP_CAP

    @property
    def is_bodyweight(self) -> bool:
        return set(self.equipment) <= {"bodyweight"}

    def matches(self, exercise_id: Optional[str], name: Optional[str]) -> bool:
        """Match by id first, then by case-insensitive name."""
        if exercise_id and self.exercise_id == exercise_id:
            return True
        return bool(name) and self.name.lower() == name.lower()

    @classmethod
    def from_definition(cls, definition: ExerciseDefinition, sets: int, reps: int,
                        rest_seconds: Optional[int] = None) -> 'PlannedExercise':
        return cls(
            exercise_id=definition.id,
            name=definition.name,
            sets=sets,
            reps=reps,
            weight=0.0,
            rest_seconds=rest_seconds,
            category=definition.category,
            movement_pattern=definition.movement_pattern,
            muscle_groups=definition.muscle_groups,
            equipment=sorted(definition.equipment),
            difficulty=definition.difficulty,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "exercise_id": self.exercise_id,
            "name": self.name,
            "sets": self.sets,
            "reps": self.reps,
            "weight": self.weight,
            "rest_seconds": self.rest_seconds,
            "category": self.category.value,
            "movement_pattern": self.movement_pattern,
            "muscle_groups": list(self.muscle_groups),
            "equipment": list(self.equipment),
            "difficulty": self.difficulty.value,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'PlannedExercise':
        return cls(
            exercise_id=str(data["exercise_id"]),
            name=data["name"],
            sets=int(data["sets"]),
            reps=int(data["reps"]),
            weight=float(data.get("weight") or 0.0),
            rest_seconds=data.get("rest_seconds"),
            category=parse_enum(Category, data.get("category"), Category.STRENGTH),
            movement_pattern=data.get("movement_pattern", "other"),
            muscle_groups=list(data.get("muscle_groups") or []),
            equipment=list(data.get("equipment") or []),
            difficulty=parse_enum(Level, data.get("difficulty"), Level.BEGINNER),
        )


@dataclass
class DayWorkout:
    weekday: int  # 0 = Monday
    day_name: str
    focus: str
    exercises: List[PlannedExercise]
    duration_minutes: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "weekday": self.weekday,
            "day_name": self.day_name,
            "focus": self.focus,
            "exercises": [e.to_dict() for e in self.exercises],
            "duration_minutes": self.duration_minutes,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'DayWorkout':
        return cls(
            weekday=int(data["weekday"]),
            day_name=data.get("day_name") or WEEKDAY_NAMES[int(data["weekday"])],
            focus=data["focus"],
            exercises=[PlannedExercise.from_dict(e) for e in data.get("exercises", [])],
            duration_minutes=int(data.get("duration_minutes", 0)),
        )


@dataclass
class AppliedAdaptation:
    """Record of an adaptation already folded into a plan."""
    adaptation_id: str
    title: str
    content_key: str
    applied_at: datetime

    def to_dict(self) -> Dict[str, Any]:
        return {
            "adaptation_id": self.adaptation_id,
            "title": self.title,
            "content_key": self.content_key,
            "applied_at": self.applied_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'AppliedAdaptation':
        return cls(
            adaptation_id=data["adaptation_id"],
            title=data.get("title", ""),
            content_key=data["content_key"],
            applied_at=parse_datetime(data["applied_at"]),
        )


@dataclass
class WeeklyPlan:
    """
    A full week of training.

    Owned by the caller once generated; the engine only ever returns
    modified copies.
    """
    id: str
    name: str
    level: Level
    goal: Goal
    days_per_week: int
    days: List[DayWorkout]
    duration_minutes: int
    category: Optional[PlanCategory] = None
    split: str = ""
    variation_index: int = 0
    applied_adaptations: List[AppliedAdaptation] = field(default_factory=list)

    def all_exercises(self) -> List[PlannedExercise]:
        return [e for day in self.days for e in day.exercises]

    def find_exercises(self, exercise_id: Optional[str], name: Optional[str]) -> List[PlannedExercise]:
        """Every occurrence of an exercise across days (id match wins over name)."""
        by_id = [e for e in self.all_exercises() if exercise_id and e.exercise_id == exercise_id]
        if by_id:
            return by_id
        if not name:
            return []
        return [e for e in self.all_exercises() if e.name.lower() == name.lower()]

    def exercise_names(self) -> Set[str]:
        return {e.name for e in self.all_exercises()}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "level": self.level.value,
            "goal": self.goal.value,
            "days_per_week": self.days_per_week,
            "days": [d.to_dict() for d in self.days],
            "duration_minutes": self.duration_minutes,
            "category": self.category.value if self.category else None,
            "split": self.split,
            "variation_index": self.variation_index,
            "applied_adaptations": [a.to_dict() for a in self.applied_adaptations],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'WeeklyPlan':
        category = data.get("category")
        return cls(
            id=data["id"],
            name=data.get("name", ""),
            level=parse_enum(Level, data.get("level"), Level.BEGINNER),
            goal=parse_enum(Goal, data.get("goal"), Goal.STRENGTH),
            days_per_week=int(data.get("days_per_week", len(data.get("days", [])))),
            days=[DayWorkout.from_dict(d) for d in data.get("days", [])],
            duration_minutes=int(data.get("duration_minutes", 0)),
            category=parse_enum(PlanCategory, category, PlanCategory.MIXED) if category else None,
            split=data.get("split", ""),
            variation_index=int(data.get("variation_index", 0)),
            applied_adaptations=[
                AppliedAdaptation.from_dict(a) for a in data.get("applied_adaptations", [])
            ],
        )


# =============================================================================
# History
# =============================================================================

@dataclass(frozen=True)
class SetResult:
    set_number: int
    reps: int
    weight: float
    completed: bool

    def to_dict(self) -> Dict[str, Any]:
        return {
            "set_number": self.set_number,
            "reps": self.reps,
            "weight": self.weight,
            "completed": self.completed,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'SetResult':
        return cls(
            set_number=int(data.get("set_number", 1)),
            reps=int(data.get("reps") or 0),
            weight=float(data.get("weight") or 0.0),
            completed=bool(data.get("completed", False)),
        )


@dataclass(frozen=True)
class ExerciseLog:
    """All sets of one exercise within a session."""
    exercise_id: str
    name: str
    sets: Tuple[SetResult, ...]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "exercise_id": self.exercise_id,
            "name": self.name,
            "sets": [s.to_dict() for s in self.sets],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ExerciseLog':
        return cls(
            exercise_id=str(data.get("exercise_id", "")),
            name=data.get("name", ""),
            sets=tuple(SetResult.from_dict(s) for s in data.get("sets", [])),
        )


@dataclass(frozen=True)
class SessionLog:
    """One completed (or abandoned) workout. Append-only."""
    date: date
    plan_id: str
    exercises: Tuple[ExerciseLog, ...]
    completed: bool
    duration_minutes: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "date": self.date.isoformat(),
            "plan_id": self.plan_id,
            "exercises": [e.to_dict() for e in self.exercises],
            "completed": self.completed,
            "duration_minutes": self.duration_minutes,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'SessionLog':
        return cls(
            date=parse_date(data["date"]),
            plan_id=data.get("plan_id", ""),
            exercises=tuple(ExerciseLog.from_dict(e) for e in data.get("exercises", [])),
            completed=bool(data.get("completed", False)),
            duration_minutes=float(data.get("duration_minutes") or 0.0),
        )


# =============================================================================
# Analysis output
# =============================================================================

@dataclass
class ExercisePerformance:
    exercise_id: str
    name: str
    average_weight: float
    average_reps: float
    average_sets: float
    total_volume: float
    completion_rate: float  # 0-100, set level
    progression: float  # % change in average weight, first to latest session
    times_performed: int

    def to_dict(self) -> Dict[str, Any]:
        return dict(self.__dict__)


@dataclass
class PerformanceMetrics:
    program_id: str
    average_duration: float
    completion_rate: float
    frequency: float  # sessions per week
    consistency: float  # actual / expected sessions, %
    total_sessions: int
    category: PlanCategory
    exercises: Dict[str, ExercisePerformance] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "program_id": self.program_id,
            "average_duration": self.average_duration,
            "completion_rate": self.completion_rate,
            "frequency": self.frequency,
            "consistency": self.consistency,
            "total_sessions": self.total_sessions,
            "category": self.category.value,
            "exercises": {k: v.to_dict() for k, v in self.exercises.items()},
        }


@dataclass
class AdaptationChange:
    """A single field rewrite; exercise_id/name are None for plan-level fields."""
    field: str
    old_value: Any
    new_value: Any
    exercise_id: Optional[str] = None
    exercise_name: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "field": self.field,
            "old_value": self.old_value,
            "new_value": self.new_value,
            "exercise_id": self.exercise_id,
            "exercise_name": self.exercise_name,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'AdaptationChange':
        return cls(
            field=data["field"],
            old_value=data.get("old_value"),
            new_value=data.get("new_value"),
            exercise_id=data.get("exercise_id"),
            exercise_name=data.get("exercise_name"),
        )


@dataclass
class Adaptation:
    """One suggested modification to an existing plan."""
    id: str
    plan_id: str
    type: AdaptationType
    priority: Priority
    confidence: int
    title: str
    description: str
    reason: str
    changes: List[AdaptationChange]
    estimated_impact: Impact
    created_at: datetime

    def content_key(self) -> str:
        """Identity of what the suggestion does, independent of id and time."""
        parts = [
            f"{self.title}-{c.exercise_name or c.exercise_id or ''}-{c.field}-{c.old_value}-{c.new_value}"
            for c in self.changes
        ]
        return "|".join(parts) or self.title

    def content(self) -> Dict[str, Any]:
        data = self.to_dict()
        del data["id"]
        del data["created_at"]
        return data

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "plan_id": self.plan_id,
            "type": self.type.value,
            "priority": self.priority.value,
            "confidence": self.confidence,
            "title": self.title,
            "description": self.description,
            "reason": self.reason,
            "changes": [c.to_dict() for c in self.changes],
            "estimated_impact": self.estimated_impact.value,
            "created_at": self.created_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Adaptation':
        return cls(
            id=data["id"],
            plan_id=data.get("plan_id", ""),
            type=AdaptationType(data["type"]),
            priority=Priority(data.get("priority", "medium")),
            confidence=int(data.get("confidence", 0)),
            title=data.get("title", ""),
            description=data.get("description", ""),
            reason=data.get("reason", ""),
            changes=[AdaptationChange.from_dict(c) for c in data.get("changes", [])],
            estimated_impact=Impact(data.get("estimated_impact", "neutral")),
            created_at=parse_datetime(data.get("created_at") or utc_now().isoformat()),
        )
