"""
Progression Engine

Internal Codename: FORGE
Rewrites a freshly assembled plan from logged history: progressive
overload on a positive trend, reset on a flat week, rep reduction on a
multi-week plateau.
"""

import copy
import logging
import math
from collections import defaultdict
from dataclasses import dataclass
from datetime import date
from typing import Dict, Iterable, List, Optional, Tuple

from ..config import EngineConfig
from ..models import ExerciseLog, PlannedExercise, SessionLog, WeeklyPlan
from .schemes import clamp_scheme

logger = logging.getLogger(__name__)

IsoWeek = Tuple[int, int]


def iso_week(d: date) -> IsoWeek:
    year, week, _ = d.isocalendar()
    return year, week


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def round_to_increment(value: float, increment: float = 2.5) -> float:
    """Nearest multiple of increment (halves round up)."""
    return round_half_up(value / increment) * increment


def ceil_to_increment(value: float, increment: float = 2.5) -> float:
    # Guard float noise so 100.0 doesn't ceil to 102.5
    return math.ceil(round(value / increment, 6)) * increment


@dataclass
class WeeklyPerformance:
    """Average completed-set performance for one exercise in one ISO week."""
    week: IsoWeek
    weight: float
    reps: float
    sets: float  # Completed sets per session that week


def find_log(session: SessionLog, exercise_id: Optional[str], name: Optional[str]) -> Optional[ExerciseLog]:
    """Exercise entry in a session, matched by id then by name."""
    for log in session.exercises:
        if exercise_id and log.exercise_id == exercise_id:
            return log
    if name:
        for log in session.exercises:
            if log.name.lower() == name.lower():
                return log
    return None


class ProgressionEngine:
    """
    Adjusts weights, reps and sets from training history.

    Never changes which exercises are in the plan or how days are laid out.
    """

    def __init__(self, config: Optional[EngineConfig] = None):
        self.config = config or EngineConfig()

    def weekly_series(
        self,
        exercise_id: Optional[str],
        name: Optional[str],
        history: Iterable[SessionLog]
    ) -> List[WeeklyPerformance]:
        """
        Per-ISO-week averages for one exercise, most recent week first.

        Only completed sets count. Weeks without a completed set are skipped.
        """
        weights: Dict[IsoWeek, List[float]] = defaultdict(list)
        reps: Dict[IsoWeek, List[float]] = defaultdict(list)
        sessions: Dict[IsoWeek, int] = defaultdict(int)

        for session in history:
            log = find_log(session, exercise_id, name)
            if log is None:
                continue
            completed = [s for s in log.sets if s.completed]
            if not completed:
                continue
            week = iso_week(session.date)
            sessions[week] += 1
            for s in completed:
                weights[week].append(s.weight)
                reps[week].append(s.reps)

        series = [
            WeeklyPerformance(
                week=week,
                weight=sum(weights[week]) / len(weights[week]),
                reps=sum(reps[week]) / len(reps[week]),
                sets=len(weights[week]) / sessions[week],
            )
            for week in sessions
        ]
        series.sort(key=lambda w: w.week, reverse=True)
        return series

    def progress_exercise(
        self,
        exercise: PlannedExercise,
        series: List[WeeklyPerformance]
    ) -> PlannedExercise:
        """
        Next-cycle scheme for one exercise.

        Args:
            exercise: Planned exercise (not modified)
            series: weekly_series() output for it

        Returns:
            New PlannedExercise
        """
        progressed = copy.deepcopy(exercise)
        if not series:
            logger.debug(f"No history for {exercise.name}, leaving scheme")
            return progressed

        cfg = self.config
        last = series[0]
        observed_sets = max(1, round_half_up(last.sets))
        observed_reps = max(1, round_half_up(last.reps))

        weight = round_to_increment(last.weight, cfg.weight_increment)
        if exercise.is_compound and last.reps >= 10:
            weight = round_to_increment(weight + cfg.compound_heavy_bump, cfg.weight_increment)

        sets, reps = observed_sets, observed_reps

        if len(series) > 1:
            prior = series[1]
            increased = last.weight - prior.weight >= cfg.trend_threshold

            if increased:
                if observed_sets < 4:
                    sets = min(4, observed_sets + 1)
                else:
                    reps = min(exercise.rep_cap, observed_reps + 1)
                # Never hand back less than was just lifted on an upward trend
                weight = max(weight, ceil_to_increment(last.weight, cfg.weight_increment))

            window_gain = series[0].weight - series[-1].weight
            if window_gain <= cfg.plateau_threshold and not increased:
                reps -= max(1, min(2, round_half_up(reps * 0.1)))

        progressed.weight = weight
        progressed.sets = sets
        progressed.reps = reps
        return clamp_scheme(progressed)

    def apply(self, plan: WeeklyPlan, history: Iterable[SessionLog]) -> WeeklyPlan:
        """
        Progress every exercise in a plan.

        Args:
            plan: Assembled plan (not modified)
            history: Full session history

        Returns:
            New WeeklyPlan with updated schemes
        """
        history = list(history)
        progressed = copy.deepcopy(plan)
        if not history:
            return progressed

        cache: Dict[Tuple[str, str], List[WeeklyPerformance]] = {}
        for day in progressed.days:
            for i, exercise in enumerate(day.exercises):
                key = (exercise.exercise_id, exercise.name.lower())
                if key not in cache:
                    cache[key] = self.weekly_series(exercise.exercise_id, exercise.name, history)
                day.exercises[i] = self.progress_exercise(exercise, cache[key])
        return progressed

    def needs_deload(self, history: Iterable[SessionLog]) -> bool:
        """
        Whether the next plan should carry one fewer exercise per day.

        Looks at the most recent ISO weeks of history: too many missed sets,
        or every well-tracked loaded exercise stuck on a plateau.
        """
        cfg = self.config
        history = list(history)
        if not history:
            return False

        weeks = sorted({iso_week(s.date) for s in history}, reverse=True)[:cfg.deload_window_weeks]
        window = [s for s in history if iso_week(s.date) in weeks]

        total_sets = 0
        missed_sets = 0
        for session in window:
            for log in session.exercises:
                total_sets += len(log.sets)
                missed_sets += sum(1 for s in log.sets if not s.completed)
        if total_sets and missed_sets / total_sets > cfg.deload_incomplete_ratio:
            logger.info(f"Deload: {missed_sets}/{total_sets} sets missed in last {len(weeks)} weeks")
            return True

        seen = {}
        for session in window:
            for log in session.exercises:
                seen.setdefault(log.exercise_id or log.name.lower(), log)

        plateaued = []
        for log in seen.values():
            series = self.weekly_series(log.exercise_id, log.name, window)
            if len(series) < 3 or all(w.weight == 0 for w in series):
                continue
            plateaued.append(series[0].weight - series[-1].weight <= cfg.plateau_threshold)

        if len(plateaued) >= 2 and all(plateaued):
            logger.info(f"Deload: {len(plateaued)} tracked exercises have plateaued")
            return True
        return False
