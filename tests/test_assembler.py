import json
from datetime import date, timedelta

import pytest

from vitality.catalog import ExerciseCatalog
from vitality.models import Category, ExerciseDefinition, Goal, Level, TrainingRequest
from vitality.profile import ProfileResolver
from vitality.program.assembler import ProgramAssembler, normalize_request, plan_id_for
from vitality.program.splits import FULL_BODY

MONDAY = date(2024, 3, 4)


@pytest.fixture
def assembler(catalog):
    return ProgramAssembler(catalog)


def exercise_names(plan):
    return [e.name for day in plan.days for e in day.exercises]


def test_beginner_strength_three_days(assembler, beginner_request):
    plan = assembler.assemble(beginner_request)

    assert [d.focus for d in plan.days] == [FULL_BODY] * 3
    assert [d.weekday for d in plan.days] == [0, 2, 4]
    assert [d.day_name for d in plan.days] == ["Monday", "Wednesday", "Friday"]
    assert all(len(d.exercises) == 4 for d in plan.days)
    assert plan.days_per_week == 3
    assert plan.duration_minutes == 45


@pytest.mark.parametrize("goal", list(Goal))
@pytest.mark.parametrize("level", list(Level))
@pytest.mark.parametrize("days", [3, 4, 5, 7])
def test_generated_schemes_stay_in_range(assembler, goal, level, days):
    request = TrainingRequest(goal=goal, level=level, days_per_week=days)

    for plan in assembler.generate_variations(request, 2):
        assert len(plan.days) == days
        for day in plan.days:
            assert day.exercises
            for e in day.exercises:
                assert 1 <= e.sets <= 6
                assert 1 <= e.reps <= (10 if e.is_compound else 20)


def test_excluded_names_never_planned(assembler):
    excluded = {"Push-ups", "Plank", "Inverted Rows", "Squat"}
    request = TrainingRequest(goal=Goal.STRENGTH, level=Level.BEGINNER, days_per_week=5,
                              excluded_exercise_names={n.lower() for n in excluded})

    for plan in assembler.generate_variations(request, 3):
        assert not excluded & set(exercise_names(plan))


def test_knee_injury_removes_squats_and_lunges(catalog, assembler):
    request = ProfileResolver(catalog).resolve({
        "goal": "get stronger",
        "experience": "beginner",
        "frequency": "3",
        "injuries": "bad left knee",
    })

    assert {"Squat", "Lunges", "Bulgarian Split Squats"} <= request.excluded_exercise_names

    for plan in assembler.generate_variations(request, 3):
        names = exercise_names(plan)
        assert names
        for name in names:
            assert "squat" not in name.lower()
            assert "lunge" not in name.lower()


def test_variations_are_deterministic(assembler, intermediate_request, make_weekly_sessions):
    history = make_weekly_sessions("dumbbell-bench-press", "Dumbbell Bench Press", [20, 22.5, 25])

    first = assembler.generate_variations(intermediate_request, 3, history)
    second = assembler.generate_variations(intermediate_request, 3, history)

    assert json.dumps([p.to_dict() for p in first]) == json.dumps([p.to_dict() for p in second])


def test_variations_differ(assembler, intermediate_request):
    plans = assembler.generate_variations(intermediate_request, 3)
    selections = {frozenset(exercise_names(p)) for p in plans}

    assert len(selections) >= 2
    assert len({p.id for p in plans}) == 3
    assert [p.variation_index for p in plans] == [0, 1, 2]


def test_plan_id_depends_on_request_and_index(beginner_request, intermediate_request):
    assert plan_id_for(beginner_request, 0) == plan_id_for(beginner_request, 0)
    assert plan_id_for(beginner_request, 0) != plan_id_for(beginner_request, 1)
    assert plan_id_for(beginner_request, 0) != plan_id_for(intermediate_request, 0)


def test_progressed_plan_gets_its_own_id(assembler, beginner_request, make_weekly_sessions):
    fresh = assembler.assemble(beginner_request)
    first = fresh.days[0].exercises[0]
    history = make_weekly_sessions(first.exercise_id, first.name, [40, 42.5, 45], plan_id=fresh.id)

    progressed = assembler.assemble(beginner_request, history)

    assert progressed.id != fresh.id
    assert progressed.id == assembler.assemble(beginner_request, list(reversed(history))).id


def test_empty_pool_gives_safe_default_days():
    cardio_only = ExerciseCatalog([ExerciseDefinition(
        id="walk", name="Walk", category=Category.CARDIO, movement_pattern="locomotion",
        primary_muscle_group="cardiovascular",
    )])
    request = TrainingRequest(goal=Goal.STRENGTH, level=Level.BEGINNER, days_per_week=3)

    plan = ProgramAssembler(cardio_only).assemble(request)

    assert len(plan.days) == 3
    assert exercise_names(plan) == ["Push-ups"] * 3
    assert all(len(d.exercises) == 1 for d in plan.days)


def test_out_of_range_request_is_clamped(assembler):
    request = TrainingRequest(goal=Goal.STRENGTH, level=Level.BEGINNER, days_per_week=12,
                              preferred_session_minutes=500)

    plan = assembler.assemble(request)

    assert len(plan.days) == 7
    assert plan.duration_minutes == 180
    assert normalize_request(request).days_per_week == 7


def test_preferred_session_minutes(assembler):
    request = TrainingRequest(goal=Goal.STRENGTH, level=Level.ADVANCED, preferred_session_minutes=40)

    plan = assembler.assemble(request)

    assert plan.duration_minutes == 40
    assert all(d.duration_minutes == 40 for d in plan.days)


def test_deload_drops_one_exercise_per_day(assembler, beginner_request, make_session):
    # Two of every three sets missed, four weeks running
    history = [
        make_session(MONDAY + timedelta(weeks=i), "old-plan",
                [("push-ups", "Push-ups", [(8, 0, True), (3, 0, False), (2, 0, False)])])
        for i in range(4)
    ]

    plan = assembler.assemble(beginner_request, history)

    assert all(len(d.exercises) == 3 for d in plan.days)


def test_history_progresses_planned_exercises(catalog, make_weekly_sessions):
    assembler = ProgramAssembler(catalog)
    request = TrainingRequest(goal=Goal.STRENGTH, level=Level.BEGINNER, days_per_week=3)
    baseline = assembler.assemble(request)
    target = baseline.days[0].exercises[0]

    history = make_weekly_sessions(target.exercise_id, target.name, [40, 50], reps=8, sets=3)
    plan = assembler.assemble(request, history)

    progressed = plan.find_exercises(target.exercise_id, target.name)
    assert progressed
    assert all(e.weight >= 50 for e in progressed)
    assert all(e.sets == 4 for e in progressed)
