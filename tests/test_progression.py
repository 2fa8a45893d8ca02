from datetime import date, timedelta

import pytest

from vitality.program.progression import (
    ProgressionEngine,
    ceil_to_increment,
    round_to_increment,
)

MONDAY = date(2024, 3, 4)


@pytest.fixture
def engine(config):
    return ProgressionEngine(config)


def progressed(engine, exercise, history):
    series = engine.weekly_series(exercise.exercise_id, exercise.name, history)
    return engine.progress_exercise(exercise, series)


def test_rounding_helpers():
    assert round_to_increment(61.25) == 62.5
    assert round_to_increment(61.0) == 60.0
    assert ceil_to_increment(100.0) == 100.0
    assert ceil_to_increment(100.1) == 102.5


def test_weekly_series_counts_only_completed_sets(engine, make_session):
    history = [
        make_session(MONDAY, exercises=[("bench-press", "Bench Press",
                                         [(8, 60, True), (8, 60, True), (5, 70, False)])]),
        make_session(MONDAY + timedelta(days=2), exercises=[("bench-press", "Bench Press",
                                                             [(6, 70, True), (4, 70, False)])]),
        make_session(MONDAY + timedelta(weeks=1), exercises=[("bench-press", "Bench Press",
                                                              [(8, 50, False)])]),
    ]

    series = engine.weekly_series("bench-press", "Bench Press", history)

    # The second week had no completed set
    assert len(series) == 1
    week = series[0]
    assert week.weight == pytest.approx(190 / 3)
    assert week.reps == pytest.approx(22 / 3)
    assert week.sets == 1.5


def test_weekly_series_is_most_recent_first(engine, make_weekly_sessions):
    history = make_weekly_sessions("squat", "Squat", [80, 85, 90])

    series = engine.weekly_series("squat", "Squat", history)

    assert [w.weight for w in series] == [90, 85, 80]


def test_weekly_series_falls_back_to_name(engine, make_weekly_sessions):
    history = make_weekly_sessions("old-id", "Bench Press", [60])

    assert engine.weekly_series("bench-press", "bench press", history)


def test_upward_trend_adds_a_set(engine, make_planned, make_weekly_sessions):
    bench = make_planned("bench-press", "Bench Press", sets=3, reps=8, weight=60)
    history = make_weekly_sessions("bench-press", "Bench Press", [60, 65])

    result = progressed(engine, bench, history)

    assert (result.weight, result.sets, result.reps) == (65, 4, 8)
    assert bench.sets == 3


def test_upward_trend_at_four_sets_adds_a_rep(engine, make_planned, make_weekly_sessions):
    bench = make_planned("bench-press", "Bench Press", sets=4, reps=8, weight=60)
    history = make_weekly_sessions("bench-press", "Bench Press", [60, 65], sets=4)

    result = progressed(engine, bench, history)

    assert (result.sets, result.reps) == (4, 9)


@pytest.mark.parametrize("prior,last", [(55, 63), (60, 65), (40, 47.5), (100, 112.5)])
def test_upward_trend_never_lowers_weight(engine, make_planned, make_weekly_sessions, prior, last):
    bench = make_planned("bench-press", "Bench Press", weight=prior)
    history = make_weekly_sessions("bench-press", "Bench Press", [prior, last])

    assert progressed(engine, bench, history).weight >= last


def test_compound_at_ten_reps_gets_heavier(engine, make_planned, make_weekly_sessions):
    bench = make_planned("bench-press", "Bench Press", reps=10, weight=60)
    history = make_weekly_sessions("bench-press", "Bench Press", [60], reps=10)

    assert progressed(engine, bench, history).weight == 65


def test_isolation_at_twelve_reps_keeps_weight(engine, make_planned, make_weekly_sessions):
    curl = make_planned("dumbbell-curl", "Dumbbell Curl", reps=12, weight=12.5, groups=("biceps",))
    history = make_weekly_sessions("dumbbell-curl", "Dumbbell Curl", [12.5], reps=12)

    result = progressed(engine, curl, history)

    assert (result.weight, result.reps) == (12.5, 12)


def test_flat_week_resets_to_observed_and_trims_reps(engine, make_planned, make_weekly_sessions):
    bench = make_planned("bench-press", "Bench Press", sets=5, reps=5, weight=80)
    history = make_weekly_sessions("bench-press", "Bench Press", [60, 60, 60])

    result = progressed(engine, bench, history)

    assert (result.weight, result.sets, result.reps) == (60, 3, 7)


def test_bodyweight_plateau_reduces_reps(engine, make_planned, make_weekly_sessions):
    dead_bug = make_planned("dead-bug", "Dead Bug", reps=12, groups=("core",))
    history = make_weekly_sessions("dead-bug", "Dead Bug", [0, 0, 0], reps=12)

    result = progressed(engine, dead_bug, history)

    assert (result.weight, result.reps) == (0, 11)


def test_small_gain_counts_as_plateau(engine, make_planned, make_weekly_sessions):
    bench = make_planned("bench-press", "Bench Press", reps=10, weight=60)
    history = make_weekly_sessions("bench-press", "Bench Press", [60, 61, 62], reps=10)

    result = progressed(engine, bench, history)

    assert result.reps == 9
    # Heavy-rep bump still applies to the load
    assert result.weight == 67.5


def test_missing_history_leaves_scheme(engine, make_planned, caplog):
    bench = make_planned("bench-press", "Bench Press", sets=4, reps=6, weight=70)

    with caplog.at_level("DEBUG", logger="vitality.program.progression"):
        result = engine.progress_exercise(bench, [])

    assert result == bench
    assert result is not bench
    assert "No history for Bench Press" in caplog.text


def test_progressed_scheme_is_clamped(engine, make_planned, make_weekly_sessions):
    curl = make_planned("dumbbell-curl", "Dumbbell Curl", reps=20, weight=10, groups=("biceps",))
    history = make_weekly_sessions("dumbbell-curl", "Dumbbell Curl", [10, 15], reps=25, sets=8)

    result = progressed(engine, curl, history)

    assert (result.sets, result.reps) == (6, 20)


def test_apply_keeps_exercises_and_input(engine, make_plan, make_planned, make_weekly_sessions):
    plan = make_plan(
        make_planned("bench-press", "Bench Press", weight=60),
        make_planned("push-ups", "Push-ups"),
    )
    history = make_weekly_sessions("bench-press", "Bench Press", [60, 65])

    result = engine.apply(plan, history)

    assert [e.exercise_id for e in result.all_exercises()] == ["bench-press", "push-ups"]
    assert result.days[0].exercises[0].weight == 65
    assert result.days[0].exercises[1] == plan.days[0].exercises[1]
    assert plan.days[0].exercises[0].weight == 60


def test_apply_without_history_is_a_copy(engine, make_plan, make_planned):
    plan = make_plan(make_planned("bench-press", "Bench Press", weight=60))

    result = engine.apply(plan, [])

    assert result.to_dict() == plan.to_dict()
    assert result is not plan


def test_no_deload_without_history(engine):
    assert not engine.needs_deload([])


def test_deload_on_missed_sets(engine, make_session):
    history = [
        make_session(MONDAY + timedelta(weeks=i),
                     exercises=[("squat", "Squat", [(5, 100, True), (2, 100, False)])])
        for i in range(3)
    ]

    assert engine.needs_deload(history)


def test_missed_sets_outside_window_are_ignored(engine, make_session, make_weekly_sessions):
    old = [
        make_session(MONDAY - timedelta(weeks=10),
                     exercises=[("squat", "Squat", [(1, 100, False)] * 10)])
    ]
    recent = make_weekly_sessions("squat", "Squat", [100, 105, 110, 115])

    assert not engine.needs_deload(old + recent)


def test_deload_when_every_loaded_lift_plateaus(engine, make_session):
    history = [
        make_session(MONDAY + timedelta(weeks=i), exercises=[
            ("bench-press", "Bench Press", [(8, 60, True)] * 3),
            ("squat", "Squat", [(5, 100 + i * 0.5, True)] * 3),
        ])
        for i in range(3)
    ]

    assert engine.needs_deload(history)


def test_single_plateau_or_bodyweight_does_not_deload(engine, make_session):
    history = [
        make_session(MONDAY + timedelta(weeks=i), exercises=[
            ("bench-press", "Bench Press", [(8, 60, True)] * 3),
            ("push-ups", "Push-ups", [(10, 0, True)] * 3),
        ])
        for i in range(3)
    ]

    assert not engine.needs_deload(history)
