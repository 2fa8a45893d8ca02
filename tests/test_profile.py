import pytest

from vitality.biomechanics import injury_warnings
from vitality.models import Goal, Level
from vitality.profile import ProfileResolver


@pytest.fixture
def resolver(catalog):
    return ProfileResolver(catalog)


def test_full_intake(resolver):
    request = resolver.resolve({
        "goal": "Build muscle and improve my endurance",
        "experience": "I've been lifting for 2 years",
        "frequency": "4 days a week",
        "equipment": "dumbbells and a bench",
        "injuries": "none",
        "session_length": "1 hour",
        "exclusions": "Burpees, Lateral Raise",
    })

    assert request.goal == Goal.MUSCLE_GAIN
    assert request.secondary_goals == {Goal.ENDURANCE}
    assert request.level == Level.INTERMEDIATE
    assert request.days_per_week == 4
    assert request.equipment_available == {"dumbbell", "bench", "bodyweight"}
    assert request.preferred_session_minutes == 60
    assert request.excluded_exercise_names == {"Burpees", "Lateral Raise"}


def test_empty_answers_use_safe_defaults(resolver):
    request = resolver.resolve({})

    assert request.goal == Goal.STRENGTH
    assert request.level == Level.BEGINNER
    assert request.days_per_week == 3
    assert request.equipment_available is None
    assert request.preferred_session_minutes is None
    assert request.excluded_exercise_names == set()


def test_answer_key_aliases(resolver):
    request = resolver.resolve({"Goals": "flexibility", "Level": "advanced", "days": "five"})

    assert (request.goal, request.level, request.days_per_week) == (Goal.FLEXIBILITY, Level.ADVANCED, 5)


@pytest.mark.parametrize("text,goals", [
    ("get stronger", [Goal.STRENGTH]),
    ("lose weight then run a marathon", [Goal.WEIGHT_LOSS, Goal.ENDURANCE]),
    ("yoga and a bit of muscle", [Goal.FLEXIBILITY, Goal.MUSCLE_GAIN]),
    ("just feel good", [Goal.STRENGTH]),
])
def test_parse_goals(resolver, text, goals):
    assert resolver.parse_goals(text) == goals


@pytest.mark.parametrize("text,level", [
    ("complete beginner", Level.BEGINNER),
    ("I train regularly", Level.INTERMEDIATE),
    ("competitive athlete", Level.ADVANCED),
    ("5 years", Level.ADVANCED),
    ("about 1.5 yrs", Level.INTERMEDIATE),
    ("", Level.BEGINNER),
])
def test_parse_level(resolver, text, level):
    assert resolver.parse_level(text) == level


@pytest.mark.parametrize("text,days", [
    ("3", 3),
    ("twice a week", 3),
    ("10 days", 7),
    ("every day", 7),
    ("", 3),
])
def test_parse_frequency_is_clamped(resolver, text, days):
    assert resolver.parse_frequency(text) == days


@pytest.mark.parametrize("text,equipment", [
    ("", None),
    ("full gym", None),
    ("nothing, just me", {"bodyweight"}),
    ("kettlebell and a pull-up bar", {"kettlebell", "pull_up_bar", "bodyweight"}),
])
def test_parse_equipment(resolver, text, equipment):
    assert resolver.parse_equipment(text) == equipment


@pytest.mark.parametrize("text,minutes", [
    ("45 minutes", 45),
    ("half an hour", 30),
    ("1h 30m", 90),
    ("an hour", 60),
    ("5 min", 15),
    ("all day", None),
])
def test_parse_session_minutes(resolver, text, minutes):
    assert resolver.parse_session_minutes(text) == minutes


def test_shoulder_injury_excludes_overhead_pressing(resolver):
    excluded = resolver.excluded_for_injuries("my right shoulder is sore")

    assert "Overhead Press" in excluded
    assert "Plank" not in excluded


def test_injuries_without_catalog_exclude_nothing():
    assert ProfileResolver().excluded_for_injuries("bad knee") == set()


def test_injury_warnings_name_ruled_out_patterns(resolver, caplog):
    warnings = injury_warnings(["shoulder", "tail"])

    assert warnings["tail"] == []
    assert "carry" in warnings["shoulder"]
    assert warnings["shoulder"] == sorted(warnings["shoulder"])

    with caplog.at_level("INFO", logger="vitality.profile"):
        resolver.excluded_for_injuries("sore shoulder")
    assert "rule out" in caplog.text


def test_exclusion_list_parsing():
    assert ProfileResolver.parse_exclusions("none") == set()
    assert ProfileResolver.parse_exclusions("Burpees; Lunges and Squat") == {"Burpees", "Lunges", "Squat"}
