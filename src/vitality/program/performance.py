"""
Performance Analysis

Internal Codename: FORGE
Mines session history for completion, duration and frequency signals and
turns them into prioritized, confidence-scored plan adaptations.

Every rule runs in isolation; a rule that fails is logged and skipped.
Rules may overlap or contradict each other and are not reconciled here.
"""

import logging
import math
import uuid
from collections import OrderedDict
from typing import Callable, Dict, List, Optional, Tuple

from ..catalog import ExerciseCatalog
from ..config import EngineConfig
from ..models import (
    Adaptation, AdaptationChange, AdaptationType, Category, ExercisePerformance,
    Impact, PerformanceMetrics, PlanCategory, PlannedExercise, Priority,
    SessionLog, WeeklyPlan, utc_now,
)
from .progression import find_log, round_to_increment

logger = logging.getLogger(__name__)

MIN_REST_SECONDS = 15
MIN_SESSION_MINUTES = 20
MIN_PLANNED_DAYS = 2
MAX_PLANNED_DAYS = 7


def derive_plan_category(plan: WeeklyPlan) -> PlanCategory:
    """Plan metadata if present, else inferred from the exercises in it."""
    if plan.category is not None:
        return plan.category

    exercises = plan.all_exercises()
    if not exercises:
        return PlanCategory.MIXED
    categories = {e.category for e in exercises}
    if categories == {Category.CARDIO}:
        return PlanCategory.CARDIO
    if categories <= {Category.FLEXIBILITY, Category.BALANCE}:
        return PlanCategory.FLEXIBILITY
    if categories == {Category.STRENGTH}:
        if all(e.is_bodyweight for e in exercises):
            return PlanCategory.BODYWEIGHT
        return PlanCategory.STRENGTH
    return PlanCategory.MIXED


def unique_exercises(plan: WeeklyPlan) -> List[PlannedExercise]:
    """First occurrence of each exercise id, in plan order."""
    seen = OrderedDict()
    for exercise in plan.all_exercises():
        seen.setdefault(exercise.exercise_id or exercise.name.lower(), exercise)
    return list(seen.values())


def _percent(part: float, whole: float) -> float:
    return round(part / whole * 100, 1) if whole else 0.0


class PerformanceAnalyzer:
    """
    Analyzes how well a plan is being executed.

    Pure with respect to its inputs: each call returns a fresh list and
    keeps no suggestion state between calls.
    """

    def __init__(
        self,
        catalog: Optional[ExerciseCatalog] = None,
        config: Optional[EngineConfig] = None,
        clock: Callable = utc_now
    ):
        """
        Initialize the analyzer.

        Args:
            catalog: Used to find substitutes (substitution rule is skipped without it)
            config: Engine constants
            clock: Returns the created_at timestamp for new adaptations
        """
        self.catalog = catalog
        self.config = config or EngineConfig()
        self.clock = clock

    # =========================================================================
    # METRICS
    # =========================================================================

    def recent_sessions(self, history: List[SessionLog], plan: WeeklyPlan) -> List[SessionLog]:
        sessions = [s for s in history if s.plan_id == plan.id and s.completed]
        sessions.sort(key=lambda s: s.date, reverse=True)
        return sessions[:self.config.recent_window]

    def compute_metrics(self, history: List[SessionLog], plan: WeeklyPlan) -> PerformanceMetrics:
        """
        Aggregate metrics over the recent window.

        Args:
            history: Session logs (any plan; filtered here)
            plan: Plan being executed

        Returns:
            PerformanceMetrics (zeros when there is no history)
        """
        recent = self.recent_sessions(list(history), plan)
        category = derive_plan_category(plan)

        if not recent:
            return PerformanceMetrics(
                program_id=plan.id, average_duration=0.0, completion_rate=0.0,
                frequency=0.0, consistency=0.0, total_sessions=0, category=category,
            )

        total_sets = sum(len(log.sets) for s in recent for log in s.exercises)
        completed_sets = sum(
            1 for s in recent for log in s.exercises for st in log.sets if st.completed
        )

        span_days = (recent[0].date - recent[-1].date).days
        weeks = max(1, math.ceil((span_days + 1) / 7))
        frequency = round(len(recent) / weeks, 2)
        consistency = _percent(frequency, plan.days_per_week) if plan.days_per_week else 0.0

        return PerformanceMetrics(
            program_id=plan.id,
            average_duration=round(sum(s.duration_minutes for s in recent) / len(recent), 1),
            completion_rate=_percent(completed_sets, total_sets),
            frequency=frequency,
            consistency=consistency,
            total_sessions=len(recent),
            category=category,
            exercises=self._exercise_performance(recent, plan),
        )

    def _exercise_performance(
        self,
        recent: List[SessionLog],
        plan: WeeklyPlan
    ) -> Dict[str, ExercisePerformance]:
        targets: List[Tuple[str, str]] = [
            (e.exercise_id, e.name) for e in unique_exercises(plan)
        ]
        known = {k for k, _ in targets} | {n.lower() for _, n in targets}
        for session in recent:
            for log in session.exercises:
                if log.exercise_id not in known and log.name.lower() not in known:
                    targets.append((log.exercise_id, log.name))
                    known.add(log.exercise_id)
                    known.add(log.name.lower())

        performance: Dict[str, ExercisePerformance] = {}
        for exercise_id, name in targets:
            # Oldest first, one entry per session the exercise appears in
            logs = [
                log for log in (find_log(s, exercise_id, name) for s in reversed(recent))
                if log is not None
            ]
            if not logs:
                continue

            all_sets = [st for log in logs for st in log.sets]
            done = [st for st in all_sets if st.completed]
            session_weights = [
                sum(st.weight for st in log.sets if st.completed)
                / max(1, sum(1 for st in log.sets if st.completed))
                for log in logs
            ]
            first, latest = session_weights[0], session_weights[-1]

            performance[exercise_id or name.lower()] = ExercisePerformance(
                exercise_id=exercise_id,
                name=name,
                average_weight=round(sum(st.weight for st in done) / len(done), 2) if done else 0.0,
                average_reps=round(sum(st.reps for st in done) / len(done), 2) if done else 0.0,
                average_sets=round(len(done) / len(logs), 2),
                total_volume=sum(st.weight * st.reps for st in done),
                completion_rate=_percent(len(done), len(all_sets)),
                progression=round((latest - first) / first * 100, 1) if first > 0 else 0.0,
                times_performed=len(logs),
            )
        return performance

    # =========================================================================
    # ANALYSIS
    # =========================================================================

    def analyze(self, history: List[SessionLog], plan: WeeklyPlan) -> List[Adaptation]:
        """
        Run every rule against the plan's recent history.

        Args:
            history: Session logs
            plan: Current plan

        Returns:
            Adaptations in rule order (possibly empty)
        """
        try:
            metrics = self.compute_metrics(list(history), plan)
        except Exception:
            logger.error(f"Could not compute metrics for plan {plan.id}", exc_info=True)
            return []

        if metrics.total_sessions == 0:
            return []

        rules = [
            self._progressive_overload,
            self._volume_adjustment,
            self._duration_adjustment,
            self._intensity_change,
            self._frequency_change,
            self._exercise_substitution,
        ]

        adaptations: List[Adaptation] = []
        for rule in rules:
            try:
                adaptations.extend(rule(metrics, plan))
            except Exception:
                logger.error(f"Rule {rule.__name__} failed for plan {plan.id}", exc_info=True)
        return adaptations

    def _adaptation(
        self,
        plan: WeeklyPlan,
        adaptation_type: AdaptationType,
        priority: Priority,
        confidence: int,
        title: str,
        description: str,
        reason: str,
        changes: List[AdaptationChange],
        impact: Impact = Impact.POSITIVE
    ) -> Adaptation:
        return Adaptation(
            id=str(uuid.uuid4()),
            plan_id=plan.id,
            type=adaptation_type,
            priority=priority,
            confidence=confidence,
            title=title,
            description=description,
            reason=reason,
            changes=changes,
            estimated_impact=impact,
            created_at=self.clock(),
        )

    def _planned(self, plan: WeeklyPlan, perf: ExercisePerformance) -> Optional[PlannedExercise]:
        matches = plan.find_exercises(perf.exercise_id, perf.name)
        return matches[0] if matches else None

    def _base_weight(self, metrics: PerformanceMetrics, exercise: PlannedExercise) -> float:
        """Planned load, or the average logged load when the plan has none yet."""
        if exercise.weight > 0:
            return exercise.weight
        perf = (metrics.exercises.get(exercise.exercise_id)
                or metrics.exercises.get(exercise.name.lower()))
        return perf.average_weight if perf else 0.0

    def _increase_weight(self, weight: float) -> float:
        inc = self.config.weight_increment
        return max(round_to_increment(weight * 1.05, inc), weight + inc)

    def _progressive_overload(self, metrics: PerformanceMetrics, plan: WeeklyPlan) -> List[Adaptation]:
        if metrics.category not in (PlanCategory.STRENGTH, PlanCategory.MIXED):
            return []

        out = []
        for perf in metrics.exercises.values():
            planned = self._planned(plan, perf)
            if planned is None:
                continue
            base = self._base_weight(metrics, planned)
            if base <= 0:
                continue
            if perf.times_performed >= 3 and perf.completion_rate >= 90 and perf.progression < 5:
                new_weight = self._increase_weight(base)
                out.append(self._adaptation(
                    plan, AdaptationType.PROGRESSIVE_OVERLOAD, Priority.MEDIUM, 85,
                    f"Increase weight on {planned.name}",
                    f"Raise {planned.name} from {base:g} to {new_weight:g}.",
                    f"{perf.completion_rate:g}% of sets completed over {perf.times_performed} "
                    f"sessions with only {perf.progression:g}% progression.",
                    [AdaptationChange("weight", planned.weight, new_weight,
                                      planned.exercise_id, planned.name)],
                ))
        return out

    def _volume_adjustment(self, metrics: PerformanceMetrics, plan: WeeklyPlan) -> List[Adaptation]:
        out = []
        for perf in metrics.exercises.values():
            planned = self._planned(plan, perf)
            if planned is None or planned.category != Category.STRENGTH:
                continue
            if perf.completion_rate >= 95 and planned.sets < 4:
                out.append(self._adaptation(
                    plan, AdaptationType.VOLUME_ADJUSTMENT, Priority.LOW, 75,
                    f"Add a set to {planned.name}",
                    f"Go from {planned.sets} to {planned.sets + 1} sets of {planned.name}.",
                    f"{perf.completion_rate:g}% of sets completed.",
                    [AdaptationChange("sets", planned.sets, planned.sets + 1,
                                      planned.exercise_id, planned.name)],
                ))
        return out

    def _duration_adjustment(self, metrics: PerformanceMetrics, plan: WeeklyPlan) -> List[Adaptation]:
        planned_minutes = plan.duration_minutes
        if metrics.total_sessions < 2 or planned_minutes <= 0:
            return []

        out = []
        average = metrics.average_duration
        if average > planned_minutes * 1.2:
            new_minutes = max(MIN_SESSION_MINUTES, planned_minutes - 10)
            if new_minutes < planned_minutes:
                out.append(self._adaptation(
                    plan, AdaptationType.DURATION_ADJUSTMENT, Priority.MEDIUM, 80,
                    "Shorten sessions",
                    f"Plan {new_minutes}-minute sessions instead of {planned_minutes}.",
                    f"Sessions average {average:g} minutes, well over the planned {planned_minutes}.",
                    [AdaptationChange("duration", planned_minutes, new_minutes)],
                    Impact.NEUTRAL,
                ))
        elif average < planned_minutes * 0.7:
            new_minutes = planned_minutes + 10
            out.append(self._adaptation(
                plan, AdaptationType.DURATION_ADJUSTMENT, Priority.LOW, 70,
                "Lengthen sessions",
                f"Plan {new_minutes}-minute sessions instead of {planned_minutes}.",
                f"Sessions average {average:g} minutes, well under the planned {planned_minutes}.",
                [AdaptationChange("duration", planned_minutes, new_minutes)],
            ))

        if metrics.completion_rate < 90:
            return out

        if metrics.category == PlanCategory.CARDIO:
            out.append(self._adaptation(
                plan, AdaptationType.DURATION_ADJUSTMENT, Priority.MEDIUM, 75,
                "Extend cardio sessions",
                f"Add 10 minutes: {planned_minutes} to {planned_minutes + 10}.",
                f"{metrics.completion_rate:g}% completion on cardio work.",
                [AdaptationChange("duration", planned_minutes, planned_minutes + 10)],
            ))
        elif metrics.category == PlanCategory.FLEXIBILITY:
            changes = [
                AdaptationChange("reps", e.reps, min(e.rep_cap, e.reps + 5), e.exercise_id, e.name)
                for e in unique_exercises(plan)
                if e.category in (Category.FLEXIBILITY, Category.BALANCE) and e.reps < e.rep_cap
            ]
            description = "Add 5 seconds to each hold."
            if not changes:
                # Holds already at the cap; give them more session time instead
                changes = [AdaptationChange("duration", planned_minutes, planned_minutes + 5)]
                description = f"Add 5 minutes of holds: {planned_minutes} to {planned_minutes + 5}."
            out.append(self._adaptation(
                plan, AdaptationType.DURATION_ADJUSTMENT, Priority.LOW, 70,
                "Hold stretches longer",
                description,
                f"{metrics.completion_rate:g}% completion on mobility work.",
                changes,
            ))
        return out

    def _intensity_change(self, metrics: PerformanceMetrics, plan: WeeklyPlan) -> List[Adaptation]:
        out = []
        exercises = unique_exercises(plan)
        inc = self.config.weight_increment

        if metrics.completion_rate < 70 and metrics.total_sessions >= 3:
            changes = []
            for e in exercises:
                base = self._base_weight(metrics, e)
                if base > 0:
                    lighter = round_to_increment(base * 0.9, inc)
                    if lighter >= base:
                        lighter = max(0.0, base - inc)
                    changes.append(AdaptationChange("weight", e.weight, lighter, e.exercise_id, e.name))
                elif e.reps > 1:
                    changes.append(AdaptationChange("reps", e.reps, max(1, e.reps - 2), e.exercise_id, e.name))
            if changes:
                out.append(self._adaptation(
                    plan, AdaptationType.INTENSITY_CHANGE, Priority.HIGH, 90,
                    "Reduce difficulty",
                    "Lower loads by about 10% (or 2 reps on bodyweight work) to rebuild consistency.",
                    f"Only {metrics.completion_rate:g}% of sets completed over "
                    f"{metrics.total_sessions} sessions.",
                    changes,
                ))

        elif metrics.completion_rate >= 95 and metrics.total_sessions >= 5:
            changes = []
            for e in exercises:
                base = self._base_weight(metrics, e)
                if base > 0:
                    changes.append(AdaptationChange(
                        "weight", e.weight, self._increase_weight(base), e.exercise_id, e.name
                    ))
                elif e.reps < e.rep_cap:
                    changes.append(AdaptationChange("reps", e.reps, e.reps + 1, e.exercise_id, e.name))
                elif e.rest_seconds is not None and e.rest_seconds > MIN_REST_SECONDS:
                    changes.append(AdaptationChange(
                        "rest_seconds", e.rest_seconds, max(MIN_REST_SECONDS, e.rest_seconds - 15),
                        e.exercise_id, e.name
                    ))
            if not changes:
                minutes = plan.duration_minutes
                changes = [AdaptationChange("duration", minutes, minutes + 10)]
            out.append(self._adaptation(
                plan, AdaptationType.INTENSITY_CHANGE, Priority.MEDIUM, 80,
                "Increase difficulty",
                "Add about 5% load (one rep on bodyweight work, shorter rest once reps are capped).",
                f"{metrics.completion_rate:g}% of sets completed over "
                f"{metrics.total_sessions} sessions.",
                changes,
            ))

        if (metrics.category == PlanCategory.CARDIO
                and metrics.completion_rate >= 95 and metrics.consistency >= 80):
            changes = [
                AdaptationChange(
                    "rest_seconds", e.rest_seconds, max(MIN_REST_SECONDS, e.rest_seconds - 15),
                    e.exercise_id, e.name
                )
                for e in exercises
                if e.rest_seconds is not None and e.rest_seconds > MIN_REST_SECONDS
            ]
            if changes:
                out.append(self._adaptation(
                    plan, AdaptationType.INTENSITY_CHANGE, Priority.LOW, 70,
                    "Increase cardio intensity",
                    "Cut rest between intervals by 15 seconds.",
                    f"{metrics.completion_rate:g}% completion at {metrics.consistency:g}% consistency.",
                    changes,
                ))
        return out

    def _frequency_change(self, metrics: PerformanceMetrics, plan: WeeklyPlan) -> List[Adaptation]:
        if metrics.total_sessions < 2:
            return []

        planned = plan.days_per_week
        actual = metrics.frequency

        if actual - planned > 1 and metrics.consistency > 100:
            new_days = min(MAX_PLANNED_DAYS, planned + 1)
            title = "Add a training day"
            reason = f"Training {actual:g} times a week against {planned} planned."
        elif planned - actual > 1 and metrics.consistency < 70:
            new_days = max(MIN_PLANNED_DAYS, planned - 1)
            title = "Drop a training day"
            reason = f"Only {actual:g} sessions a week against {planned} planned."
        else:
            return []

        if new_days == planned:
            return []
        return [self._adaptation(
            plan, AdaptationType.FREQUENCY_CHANGE, Priority.MEDIUM, 75,
            title,
            f"Plan {new_days} days per week instead of {planned}.",
            reason,
            [AdaptationChange("days_per_week", planned, new_days)],
            Impact.NEUTRAL,
        )]

    def _exercise_substitution(self, metrics: PerformanceMetrics, plan: WeeklyPlan) -> List[Adaptation]:
        if self.catalog is None:
            logger.debug("No catalog; skipping substitution rule")
            return []

        out = []
        in_plan = plan.exercise_names()
        for perf in metrics.exercises.values():
            planned = self._planned(plan, perf)
            if planned is None:
                continue
            if perf.completion_rate >= self.config.substitution_threshold or perf.times_performed < 3:
                continue
            alternatives = self.catalog.alternatives_for(
                planned.exercise_id, planned.name, exclude_names=in_plan
            )
            if not alternatives:
                logger.info(f"No substitute found for {planned.name}")
                continue
            alternative = alternatives[0]
            out.append(self._adaptation(
                plan, AdaptationType.EXERCISE_SUBSTITUTION, Priority.MEDIUM, 80,
                f"Swap {planned.name} for {alternative.name}",
                f"Replace {planned.name} with {alternative.name}.",
                f"Only {perf.completion_rate:g}% of sets completed across "
                f"{perf.times_performed} attempts.",
                [AdaptationChange("exercise", planned.exercise_id, alternative.id,
                                  planned.exercise_id, planned.name)],
            ))
        return out
