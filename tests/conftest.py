"""Shared fixtures: bundled catalog, requests, and session/plan builders."""

from datetime import date, datetime, timedelta, timezone

import pytest

from vitality.catalog import load_catalog
from vitality.config import EngineConfig
from vitality.models import (
    Category,
    DayWorkout,
    ExerciseLog,
    Goal,
    Level,
    PlannedExercise,
    PlanCategory,
    SessionLog,
    SetResult,
    TrainingRequest,
    WeeklyPlan,
)

MONDAY = date(2024, 3, 4)


@pytest.fixture(scope="session")
def catalog():
    return load_catalog()


@pytest.fixture
def config():
    return EngineConfig()


@pytest.fixture
def fixed_clock():
    stamp = datetime(2024, 3, 31, 12, 0, tzinfo=timezone.utc)
    return lambda: stamp


@pytest.fixture
def beginner_request():
    return TrainingRequest(goal=Goal.STRENGTH, level=Level.BEGINNER, days_per_week=3)


@pytest.fixture
def intermediate_request():
    return TrainingRequest(goal=Goal.MUSCLE_GAIN, level=Level.INTERMEDIATE, days_per_week=4)


def planned(exercise_id, name, sets=3, reps=8, weight=0.0, rest=90,
            category=Category.STRENGTH, groups=("chest", "triceps")):
    return PlannedExercise(
        exercise_id=exercise_id,
        name=name,
        sets=sets,
        reps=reps,
        weight=weight,
        rest_seconds=rest,
        category=category,
        movement_pattern="push",
        muscle_groups=list(groups),
        equipment=["bodyweight"] if not weight else ["barbell"],
        difficulty=Level.BEGINNER,
    )


def plan_with(*exercises, plan_id="plan-1", days_per_week=3, minutes=45,
              category=PlanCategory.STRENGTH, goal=Goal.STRENGTH):
    """One-day plan holding the given exercises (days_per_week is metadata)."""
    return WeeklyPlan(
        id=plan_id,
        name="Test Plan",
        level=Level.BEGINNER,
        goal=goal,
        days_per_week=days_per_week,
        days=[DayWorkout(0, "Monday", "Full Body", list(exercises), minutes)],
        duration_minutes=minutes,
        category=category,
    )


def session(day, plan_id="plan-1", exercises=(), completed=True, minutes=45.0):
    """
    Build a SessionLog.

    exercises: (exercise_id, name, [(reps, weight, completed), ...]) tuples
    """
    logs = tuple(
        ExerciseLog(
            exercise_id=exercise_id,
            name=name,
            sets=tuple(
                SetResult(set_number=i + 1, reps=reps, weight=weight, completed=done)
                for i, (reps, weight, done) in enumerate(sets)
            ),
        )
        for exercise_id, name, sets in exercises
    )
    return SessionLog(date=day, plan_id=plan_id, exercises=logs,
                      completed=completed, duration_minutes=minutes)


def weekly_sessions(exercise_id, name, weights, reps=8, sets=3, start=MONDAY, plan_id="plan-1"):
    """One session per ISO week, oldest first, every set completed."""
    return [
        session(start + timedelta(weeks=i), plan_id,
                [(exercise_id, name, [(reps, w, True)] * sets)])
        for i, w in enumerate(weights)
    ]


@pytest.fixture
def make_planned():
    return planned


@pytest.fixture
def make_plan():
    return plan_with


@pytest.fixture
def make_session():
    return session


@pytest.fixture
def make_weekly_sessions():
    return weekly_sessions
