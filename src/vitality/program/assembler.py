"""
Weekly Program Assembler

Internal Codename: FORGE
"Same inputs, same plan."

Runs split planning, exercise selection, set schemes and progression to
produce a WeeklyPlan, and generates reproducible variations keyed by a
variation index.
"""

import hashlib
import json
import logging
from dataclasses import replace
from typing import Iterable, List, Optional

from ..catalog import ExerciseCatalog
from ..config import EngineConfig
from ..errors import EmptyPoolError, MalformedRequestError
from ..models import (
    DayWorkout, Goal, MAX_DAYS_PER_WEEK, MIN_DAYS_PER_WEEK, PlanCategory,
    SessionLog, TrainingRequest, WEEKDAY_NAMES, WeeklyPlan,
)
from .progression import ProgressionEngine
from .rng import SeededRandom
from .schemes import SetSchemeAssigner
from .selection import ExerciseSelector, UsedRegions, build_pool, safe_default
from .splits import SplitPlanner

logger = logging.getLogger(__name__)

MIN_SESSION_MINUTES = 15
MAX_SESSION_MINUTES = 180

GOAL_PLAN_CATEGORY = {
    Goal.STRENGTH: PlanCategory.STRENGTH,
    Goal.MUSCLE_GAIN: PlanCategory.STRENGTH,
    Goal.WEIGHT_LOSS: PlanCategory.STRENGTH,
    Goal.ENDURANCE: PlanCategory.CARDIO,
    Goal.FLEXIBILITY: PlanCategory.FLEXIBILITY,
}

GOAL_TITLES = {
    Goal.STRENGTH: "Strength",
    Goal.MUSCLE_GAIN: "Muscle Building",
    Goal.WEIGHT_LOSS: "Fat Loss",
    Goal.ENDURANCE: "Endurance",
    Goal.FLEXIBILITY: "Mobility",
}


def validate_request(request: TrainingRequest):
    """
    Raises:
        MalformedRequestError: first out-of-range field found
    """
    if not MIN_DAYS_PER_WEEK <= request.days_per_week <= MAX_DAYS_PER_WEEK:
        raise MalformedRequestError("days_per_week", request.days_per_week)
    minutes = request.preferred_session_minutes
    if minutes is not None and not MIN_SESSION_MINUTES <= minutes <= MAX_SESSION_MINUTES:
        raise MalformedRequestError("preferred_session_minutes", minutes)


def normalize_request(request: TrainingRequest) -> TrainingRequest:
    """Clamp out-of-range fields instead of failing."""
    try:
        validate_request(request)
        return request
    except MalformedRequestError as e:
        logger.warning(f"{e}; clamping request")

    minutes = request.preferred_session_minutes
    if minutes is not None:
        minutes = max(MIN_SESSION_MINUTES, min(MAX_SESSION_MINUTES, minutes))
    return replace(
        request,
        days_per_week=max(MIN_DAYS_PER_WEEK, min(MAX_DAYS_PER_WEEK, request.days_per_week)),
        preferred_session_minutes=minutes,
    )


def plan_id_for(
    request: TrainingRequest,
    variation_index: int,
    history: Iterable[SessionLog] = ()
) -> str:
    """
    Deterministic plan id.

    A plan progressed from history gets a different id from the
    unprogressed plan for the same request and index.
    """
    fingerprint = {"request": request.fingerprint(), "variation": variation_index}
    sessions = sorted(json.dumps(s.to_dict(), sort_keys=True) for s in history)
    if sessions:
        fingerprint["history"] = hashlib.sha1("\n".join(sessions).encode("utf-8")).hexdigest()
    payload = json.dumps(fingerprint, sort_keys=True)
    return "plan-" + hashlib.sha1(payload.encode("utf-8")).hexdigest()[:16]


class ProgramAssembler:
    """
    Builds complete weekly plans.

    Integrates:
    - Split planning (day focuses and weekdays)
    - Exercise selection (filters, region diversity, deload budget)
    - Set schemes (goal/level/category tables)
    - Progression (history-driven overload)
    """

    def __init__(
        self,
        catalog: ExerciseCatalog,
        config: Optional[EngineConfig] = None
    ):
        """
        Initialize the assembler.

        Args:
            catalog: Exercise catalog
            config: Engine constants (defaults if omitted)
        """
        self.catalog = catalog
        self.config = config or EngineConfig()
        self.splits = SplitPlanner()
        self.schemes = SetSchemeAssigner()
        self.progression = ProgressionEngine(self.config)

    def exercise_budget(self, request: TrainingRequest, deload: bool) -> int:
        budget = self.config.exercise_budget[request.level]
        if deload:
            budget -= 1
        return max(1, budget)

    def session_minutes(self, request: TrainingRequest) -> int:
        if request.preferred_session_minutes:
            return request.preferred_session_minutes
        return self.config.default_session_minutes[request.level]

    def assemble(
        self,
        request: TrainingRequest,
        history: Iterable[SessionLog] = (),
        variation_index: int = 0
    ) -> WeeklyPlan:
        """
        Generate one weekly plan.

        Args:
            request: Structured training request
            history: Session logs used for progression and deload
            variation_index: Seed for the shuffle; same index, same plan

        Returns:
            WeeklyPlan
        """
        request = normalize_request(request)
        history = list(history)
        rng = SeededRandom(variation_index)

        split = self.splits.plan(request.goal, request.days_per_week)
        minutes = self.session_minutes(request)
        fallback = safe_default(self.catalog, request.excluded_exercise_names)

        try:
            pool = build_pool(self.catalog, request)
        except EmptyPoolError as e:
            logger.warning(f"{e}; building safe-default plan")
            pool = []

        deload = self.progression.needs_deload(history) if history else False
        budget = self.exercise_budget(request, deload)
        selector = ExerciseSelector(fallback=fallback)
        used_regions: UsedRegions = {}

        days = []
        for focus, weekday in zip(split.focuses, split.weekdays):
            if pool:
                chosen = selector.select(pool, focus, used_regions, budget, rng, request.level)
            else:
                chosen = [fallback]
            days.append(DayWorkout(
                weekday=weekday,
                day_name=WEEKDAY_NAMES[weekday],
                focus=focus,
                exercises=[self.schemes.assign(e, request.goal, request.level) for e in chosen],
                duration_minutes=minutes,
            ))

        plan = WeeklyPlan(
            id=plan_id_for(request, variation_index, history),
            name=f"{GOAL_TITLES[request.goal]} {split.name} ({request.level.value.title()})"
                 + (f" #{variation_index + 1}" if variation_index else ""),
            level=request.level,
            goal=request.goal,
            days_per_week=len(days),
            days=days,
            duration_minutes=minutes,
            category=GOAL_PLAN_CATEGORY[request.goal],
            split=split.name,
            variation_index=variation_index,
        )

        if history:
            plan = self.progression.apply(plan, history)
        return plan

    def generate_variations(
        self,
        request: TrainingRequest,
        count: int = 3,
        history: Iterable[SessionLog] = ()
    ) -> List[WeeklyPlan]:
        """Independent plans for variation indices 0..count-1, in index order."""
        history = list(history)
        return [self.assemble(request, history, i) for i in range(max(0, count))]
