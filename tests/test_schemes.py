import pytest

from vitality.models import Goal, Level
from vitality.program.schemes import SetSchemeAssigner, clamp_scheme


@pytest.fixture
def assigner():
    return SetSchemeAssigner()


@pytest.mark.parametrize("level,sets,reps,rest", [
    (Level.BEGINNER, 3, 8, 90),
    (Level.INTERMEDIATE, 4, 6, 120),
    (Level.ADVANCED, 4, 5, 150),
])
def test_strength_goal_schemes(catalog, assigner, level, sets, reps, rest):
    planned = assigner.assign(catalog.get_by_name("Bench Press"), Goal.STRENGTH, level)

    assert (planned.sets, planned.reps, planned.rest_seconds) == (sets, reps, rest)


def test_muscle_gain_and_weight_loss_rest(catalog, assigner):
    curl = catalog.get_by_name("Dumbbell Curl")

    assert assigner.assign(curl, Goal.MUSCLE_GAIN, Level.BEGINNER).rest_seconds == 60
    weight_loss = assigner.assign(curl, Goal.WEIGHT_LOSS, Level.BEGINNER)
    assert (weight_loss.reps, weight_loss.rest_seconds) == (15, 45)


def test_compound_rep_cap_applies_last(catalog, assigner):
    push_ups = catalog.get_by_name("Push-ups")
    planned = assigner.assign(push_ups, Goal.WEIGHT_LOSS, Level.BEGINNER)

    assert planned.is_compound
    assert planned.reps == 10


def test_endurance_goal_strength_exercise_uses_fallback_table(catalog, assigner):
    planned = assigner.assign(catalog.get_by_name("Plank"), Goal.ENDURANCE, Level.ADVANCED)

    assert (planned.sets, planned.reps, planned.rest_seconds) == (4, 6, 90)


def test_cardio_is_one_set_of_minutes(catalog, assigner):
    walking = catalog.get_by_name("Brisk Walking")

    beginner = assigner.assign(walking, Goal.ENDURANCE, Level.BEGINNER)
    assert (beginner.sets, beginner.reps) == (1, 20)
    # Longer durations are held to the isolation cap
    assert assigner.assign(walking, Goal.ENDURANCE, Level.ADVANCED).reps == 20


def test_mobility_sets_scale_with_level(catalog, assigner):
    stretch = catalog.get_by_name("Child's Pose")

    sets = [assigner.assign(stretch, Goal.FLEXIBILITY, lv).sets for lv in Level]
    assert sets == [1, 2, 3]
    raw = [assigner.scheme_for(stretch, Goal.FLEXIBILITY, lv)[1] for lv in Level]
    assert raw == [30, 45, 60]


@pytest.mark.parametrize("goal", list(Goal))
@pytest.mark.parametrize("level", list(Level))
def test_every_catalog_scheme_is_in_range(catalog, assigner, goal, level):
    for exercise in catalog:
        planned = assigner.assign(exercise, goal, level)
        assert 1 <= planned.sets <= 6
        assert 1 <= planned.reps <= (10 if exercise.is_compound else 20)


def test_clamp_scheme(make_planned):
    compound = make_planned("x", "X", sets=9, reps=15, weight=-5)
    clamp_scheme(compound)
    assert (compound.sets, compound.reps, compound.weight) == (6, 10, 0.0)

    isolation = make_planned("y", "Y", sets=0, reps=25, groups=("biceps",))
    clamp_scheme(isolation)
    assert (isolation.sets, isolation.reps) == (1, 20)
