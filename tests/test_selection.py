import pytest

from vitality.catalog import ExerciseCatalog
from vitality.errors import EmptyPoolError
from vitality.models import Category, ExerciseDefinition, Goal, Level, TrainingRequest
from vitality.program.rng import SeededRandom
from vitality.program.selection import (
    SAFE_DEFAULTS,
    ExerciseSelector,
    build_pool,
    pool_filter,
    safe_default,
)
from vitality.program.splits import CARDIO, FULL_BODY, PUSH


def chest(exercise_id, region, difficulty=Level.BEGINNER):
    return ExerciseDefinition(
        id=exercise_id, name=exercise_id.title(), category=Category.STRENGTH,
        movement_pattern="push", primary_muscle_group="chest",
        secondary_muscle_groups=frozenset({"triceps"}), muscle_region=region,
        difficulty=difficulty,
    )


def test_regions_rotate_within_and_across_days():
    pool = [chest("c-upper", "upper"), chest("c-mid", "mid"),
            chest("c-lower", "lower"), chest("c-mid-2", "mid")]
    selector = ExerciseSelector()
    used = {}
    rng = SeededRandom(0)

    day_one = selector.select(pool, PUSH, used, 2, rng)
    day_two = selector.select(pool, PUSH, used, 2, rng)

    assert len({e.muscle_region for e in day_one}) == 2
    unused_after_day_one = {"upper", "mid", "lower"} - {e.muscle_region for e in day_one}
    assert day_two[0].muscle_region in unused_after_day_one
    assert used["chest"] == {"upper", "mid", "lower"}


def test_advanced_prefers_advanced_variations():
    pool = [chest("easy", "mid"), chest("medium", "upper", Level.INTERMEDIATE),
            chest("hard", "lower", Level.ADVANCED)]

    for index in range(5):
        picked = ExerciseSelector().select(pool, PUSH, {}, 1, SeededRandom(index), Level.ADVANCED)
        assert [e.id for e in picked] == ["hard"]


def test_budget_is_respected_and_never_zero(catalog, beginner_request):
    pool = build_pool(catalog, beginner_request)

    for budget in (0, 1, 3, 6):
        picked = ExerciseSelector().select(pool, FULL_BODY, {}, budget, SeededRandom(1))
        assert 1 <= len(picked) <= max(1, budget)
        assert len({e.id for e in picked}) == len(picked)


def test_no_eligible_exercise_falls_back():
    cardio_only = [ExerciseDefinition(
        id="walk", name="Walk", category=Category.CARDIO, movement_pattern="locomotion",
        primary_muscle_group="cardiovascular",
    )]

    picked = ExerciseSelector().select(cardio_only, PUSH, {}, 4, SeededRandom(0))

    assert [e.name for e in picked] == ["Push-ups"]


def test_cardio_focus_fills_cardio_bucket_first(catalog):
    request = TrainingRequest(goal=Goal.ENDURANCE, level=Level.INTERMEDIATE, days_per_week=3)
    pool = build_pool(catalog, request)

    picked = ExerciseSelector().select(pool, CARDIO, {}, 5, SeededRandom(0), Level.INTERMEDIATE)

    assert [e.category for e in picked[:3]] == [Category.CARDIO] * 3


def test_pool_filter_respects_level_and_secondary_goals():
    request = TrainingRequest(goal=Goal.STRENGTH, level=Level.INTERMEDIATE,
                              secondary_goals={Goal.ENDURANCE})
    exercise_filter = pool_filter(request)

    assert Category.CARDIO in exercise_filter.categories
    assert exercise_filter.difficulties == {Level.BEGINNER, Level.INTERMEDIATE}


def test_pool_is_filtered_by_difficulty_and_equipment(catalog):
    request = TrainingRequest(goal=Goal.STRENGTH, level=Level.BEGINNER,
                              equipment_available={"bodyweight"})
    pool = build_pool(catalog, request)

    assert pool
    assert all(e.difficulty == Level.BEGINNER for e in pool)
    assert all(e.equipment == frozenset({"bodyweight"}) for e in pool)


def test_empty_pool_raises(catalog):
    request = TrainingRequest(goal=Goal.STRENGTH, level=Level.BEGINNER,
                              excluded_exercise_names={e.name for e in catalog})

    with pytest.raises(EmptyPoolError):
        build_pool(catalog, request)


def test_safe_default_skips_excluded(catalog):
    assert safe_default(catalog).name == "Push-ups"
    assert safe_default(catalog, {"push-ups"}).name == "Plank"
    assert safe_default(None, {"Push-ups", "Plank"}).name == "Brisk Walking"


def test_safe_default_uses_catalog_definition():
    custom = ExerciseDefinition(id="pu-1", name="Push-ups", category=Category.STRENGTH,
                                movement_pattern="push", primary_muscle_group="chest")

    assert safe_default(ExerciseCatalog([custom])).id == "pu-1"
    assert safe_default(ExerciseCatalog([])) is SAFE_DEFAULTS[0]
