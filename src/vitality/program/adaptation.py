"""
Applying Adaptations

Folds accepted suggestions back into a plan and keeps track of what has
already been applied so it is not suggested again.
"""

import copy
import logging
from collections import OrderedDict
from datetime import datetime
from typing import Dict, Iterable, Iterator, List, Optional

from ..catalog import ExerciseCatalog
from ..errors import AdaptationApplyConflict
from ..models import Adaptation, AdaptationChange, AppliedAdaptation, WeeklyPlan, utc_now
from .schemes import SetSchemeAssigner, clamp_scheme

logger = logging.getLogger(__name__)

EXERCISE_FIELDS = {"weight", "sets", "reps", "rest_seconds"}
PLAN_FIELDS = {"duration", "days_per_week"}


def _coerce(field_name: str, value):
    if field_name == "weight":
        return max(0.0, float(value))
    if field_name == "rest_seconds":
        return None if value is None else max(0, int(value))
    return int(value)


def _apply_change(
    change: AdaptationChange,
    plan: WeeklyPlan,
    catalog: Optional[ExerciseCatalog]
) -> bool:
    """Apply one change to plan in place. Returns False if nothing matched."""
    if change.field in EXERCISE_FIELDS:
        targets = plan.find_exercises(change.exercise_id, change.exercise_name)
        for exercise in targets:
            setattr(exercise, change.field, _coerce(change.field, change.new_value))
            clamp_scheme(exercise)
        return bool(targets)

    if change.field == "duration":
        minutes = int(change.new_value)
        plan.duration_minutes = minutes
        for day in plan.days:
            day.duration_minutes = minutes
        return True

    if change.field == "days_per_week":
        plan.days_per_week = int(change.new_value)
        return True

    if change.field == "exercise":
        if catalog is None:
            logger.warning("Substitution needs a catalog; skipping change")
            return False
        replacement = catalog.get_by_id(str(change.new_value)) or catalog.get_by_name(str(change.new_value))
        if replacement is None:
            return False
        assigner = SetSchemeAssigner()
        matched = False
        for day in plan.days:
            for i, exercise in enumerate(day.exercises):
                if exercise.matches(change.exercise_id, change.exercise_name):
                    day.exercises[i] = assigner.assign(replacement, plan.goal, plan.level)
                    matched = True
        return matched

    logger.warning(f"Unknown adaptation field '{change.field}'")
    return False


def _apply_changes(
    adaptation: Adaptation,
    plan: WeeklyPlan,
    catalog: Optional[ExerciseCatalog]
) -> WeeklyPlan:
    """
    Raises:
        AdaptationApplyConflict: plan id differs or no change found a target
    """
    if adaptation.plan_id and adaptation.plan_id != plan.id:
        raise AdaptationApplyConflict(
            adaptation.id, f"Adaptation {adaptation.id} targets plan {adaptation.plan_id}, not {plan.id}"
        )

    updated = copy.deepcopy(plan)
    results = [_apply_change(change, updated, catalog) for change in adaptation.changes]
    if not any(results):
        raise AdaptationApplyConflict(adaptation.id)
    return updated


def apply_adaptation(
    adaptation: Adaptation,
    plan: WeeklyPlan,
    catalog: Optional[ExerciseCatalog] = None,
    now: Optional[datetime] = None
) -> WeeklyPlan:
    """
    Return a copy of plan with the adaptation's changes applied.

    Exercises are located by id, then by case-insensitive name, across all
    days. Plan-level duration also rewrites every day's duration. If the
    adaptation no longer fits the plan it is a no-op.

    Args:
        adaptation: Suggestion to apply
        plan: Current plan (not modified)
        catalog: Needed for exercise substitutions
        now: Timestamp recorded on the plan (defaults to UTC now)

    Returns:
        Updated WeeklyPlan
    """
    try:
        updated = _apply_changes(adaptation, plan, catalog)
    except AdaptationApplyConflict as e:
        logger.warning(f"{e}; discarding")
        return copy.deepcopy(plan)

    updated.applied_adaptations.append(AppliedAdaptation(
        adaptation_id=adaptation.id,
        title=adaptation.title,
        content_key=adaptation.content_key(),
        applied_at=now or utc_now(),
    ))
    logger.info(f"Applied '{adaptation.title}' to plan {plan.id}")
    return updated


def apply_all(
    adaptations: Iterable[Adaptation],
    plan: WeeklyPlan,
    catalog: Optional[ExerciseCatalog] = None,
    now: Optional[datetime] = None
) -> WeeklyPlan:
    """Apply adaptations one after another, in the given order."""
    for adaptation in adaptations:
        plan = apply_adaptation(adaptation, plan, catalog, now)
    return plan


def filter_applied(adaptations: Iterable[Adaptation], plan: WeeklyPlan) -> List[Adaptation]:
    """Drop suggestions whose content was already applied to this plan."""
    applied = {record.content_key for record in plan.applied_adaptations}
    return [a for a in adaptations if a.content_key() not in applied]


class AdaptationBoard:
    """
    Caller-held set of current suggestions.

    The analyzer never keeps suggestions; whoever displays them owns this
    board and discards entries once applied or dismissed.
    """

    def __init__(self, adaptations: Iterable[Adaptation] = ()):
        self._items: Dict[str, Adaptation] = OrderedDict()
        self.replace(adaptations)

    def replace(self, adaptations: Iterable[Adaptation]):
        self._items = OrderedDict((a.id, a) for a in adaptations)

    def get(self, adaptation_id: str) -> Optional[Adaptation]:
        return self._items.get(adaptation_id)

    def dismiss(self, adaptation_id: str) -> bool:
        return self._items.pop(adaptation_id, None) is not None

    def clear(self):
        self._items.clear()

    def pending(self) -> List[Adaptation]:
        return list(self._items.values())

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[Adaptation]:
        return iter(list(self._items.values()))

    def __contains__(self, adaptation_id: str) -> bool:
        return adaptation_id in self._items
