import asyncio
from datetime import date, timedelta

import pytest

from vitality.errors import VitalityError
from vitality.models import AdaptationType, Goal, Level
from vitality.service import ProgramService
from vitality.store import MemoryStore

MONDAY = date(2024, 3, 4)
TRAINING_DAYS = [MONDAY + timedelta(days=d) for d in (0, 2, 4, 7, 9, 11)]


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def service(store, catalog, config):
    return ProgramService(store, catalog, config, user_id="alice")


@pytest.fixture
def bench_plan(make_plan, make_planned):
    return make_plan(make_planned("bench-press", "Bench Press", weight=60))


def bench_sessions(make_session, completed, total=5):
    return [
        make_session(day, exercises=[("bench-press", "Bench Press",
                                      [(8, 60.0, i < done) for i in range(total)])])
        for day, done in zip(TRAINING_DAYS, completed)
    ]


async def log_all(service, sessions):
    for s in sessions:
        await service.log_session(s)


@pytest.mark.asyncio
async def test_profile_round_trip(service, store):
    answers = {"goal": "get stronger", "experience": "beginner", "frequency": "3"}

    request = await service.save_profile(answers)

    assert (request.goal, request.level, request.days_per_week) == (Goal.STRENGTH, Level.BEGINNER, 3)
    assert await store.load("user_alice_profile") == answers
    assert await service.load_request() == request


@pytest.mark.asyncio
async def test_no_profile_means_no_request(service):
    assert await service.load_request() is None
    context = await service.load_context()
    assert context.request(service.resolver) is None
    assert context.history == []
    assert context.active_plan is None


@pytest.mark.asyncio
async def test_variations_are_ordered_and_match_direct_assembly(service, intermediate_request):
    plans = await service.generate_plan_variations(intermediate_request, 4)

    assert [p.variation_index for p in plans] == [0, 1, 2, 3]
    direct = service.assembler.generate_variations(intermediate_request, 4, [])
    assert [p.to_dict() for p in plans] == [p.to_dict() for p in direct]


@pytest.mark.asyncio
async def test_default_variation_count(service, beginner_request):
    assert len(await service.generate_plan_variations(beginner_request)) == 3
    assert await service.generate_plan_variations(beginner_request, 0) == []


@pytest.mark.asyncio
async def test_select_plan_saves_once(service, store, bench_plan):
    await store.save("user_alice_pendingAdaptations", [{"id": "stale"}])

    await service.select_plan(bench_plan)
    await service.select_plan(bench_plan)

    assert (await service.load_active_plan()).id == "plan-1"
    assert [p.id for p in await service.saved_plans()] == ["plan-1"]
    assert await store.load("user_alice_pendingAdaptations") == []


@pytest.mark.asyncio
async def test_concurrent_logging_keeps_every_session(service, make_session):
    sessions = [make_session(MONDAY + timedelta(days=i)) for i in range(10)]

    counts = await asyncio.gather(*(service.log_session(s) for s in sessions))

    assert sorted(counts) == list(range(1, 11))
    assert len(await service.load_history()) == 10


@pytest.mark.asyncio
async def test_users_are_isolated(store, catalog, make_session):
    alice = ProgramService(store, catalog, user_id="alice")
    bob = ProgramService(store, catalog, user_id="bob")

    await alice.log_session(make_session(MONDAY))

    assert len(await alice.load_history()) == 1
    assert await bob.load_history() == []


@pytest.mark.asyncio
async def test_analyze_without_active_plan(service):
    assert await service.analyze_performance() == []


@pytest.mark.asyncio
async def test_analyze_then_apply(service, store, bench_plan, make_session):
    await service.select_plan(bench_plan)
    await log_all(service, bench_sessions(make_session, [4, 3, 3, 3]))

    adaptations = await service.analyze_performance()

    assert [a.type for a in adaptations] == [AdaptationType.INTENSITY_CHANGE]
    stored = await store.load("user_alice_pendingAdaptations")
    assert [a["id"] for a in stored] == [adaptations[0].id]

    plan = await service.apply_adaptation(adaptations[0].id)

    assert plan.days[0].exercises[0].weight == 55
    assert (await service.load_active_plan()).days[0].exercises[0].weight == 55
    assert await service.pending_adaptations() == []
    assert await store.load("user_alice_pendingAdaptations") == []


@pytest.mark.asyncio
async def test_pending_survives_a_new_service(store, catalog, config, bench_plan, make_session):
    first = ProgramService(store, catalog, config, user_id="alice")
    await first.select_plan(bench_plan)
    await log_all(first, bench_sessions(make_session, [4, 3, 3, 3]))
    adaptation = (await first.analyze_performance())[0]

    second = ProgramService(store, catalog, config, user_id="alice")
    pending = await second.pending_adaptations()

    assert [a.id for a in pending] == [adaptation.id]
    assert (await second.apply_adaptation(adaptation.id)).days[0].exercises[0].weight == 55


@pytest.mark.asyncio
async def test_concurrent_applies_keep_both_changes(service, bench_plan, make_session):
    await service.select_plan(bench_plan)
    await log_all(service, bench_sessions(make_session, [5] * 6))
    adaptations = await service.analyze_performance()
    overload = [a for a in adaptations if a.type == AdaptationType.PROGRESSIVE_OVERLOAD][0]
    volume = [a for a in adaptations if a.type == AdaptationType.VOLUME_ADJUSTMENT][0]

    await asyncio.gather(
        service.apply_adaptation(overload.id),
        service.apply_adaptation(volume.id),
    )

    bench = (await service.load_active_plan()).days[0].exercises[0]
    assert (bench.weight, bench.sets) == (62.5, 4)
    saved = (await service.saved_plans())[0].days[0].exercises[0]
    assert (saved.weight, saved.sets) == (62.5, 4)


@pytest.mark.asyncio
async def test_saved_plan_follows_applied_adaptation(service, bench_plan, make_plan, make_planned,
                                                     make_session):
    other = make_plan(make_planned("squat", "Squat", weight=80), plan_id="plan-2")
    await service.select_plan(other)
    await service.select_plan(bench_plan)
    await log_all(service, bench_sessions(make_session, [4, 3, 3, 3]))
    adaptation = (await service.analyze_performance())[0]

    await service.apply_adaptation(adaptation.id)

    saved = {p.id: p for p in await service.saved_plans()}
    assert saved["plan-1"].days[0].exercises[0].weight == 55
    assert [r.adaptation_id for r in saved["plan-1"].applied_adaptations] == [adaptation.id]
    assert saved["plan-2"].days[0].exercises[0].weight == 80


@pytest.mark.asyncio
async def test_applied_suggestion_is_not_offered_again(service, bench_plan, make_session):
    await service.select_plan(bench_plan)
    await log_all(service, bench_sessions(make_session, [5] * 6))
    adaptations = await service.analyze_performance()
    volume = [a for a in adaptations if a.type == AdaptationType.VOLUME_ADJUSTMENT][0]

    await service.apply_adaptation(volume.id)
    applied = (await service.load_active_plan()).applied_adaptations
    # Same three-set plan, but carrying the record of the applied suggestion
    bench_plan.applied_adaptations = applied
    again = await service.analyze_performance(plan=bench_plan)

    assert again
    assert not [a for a in again if a.type == AdaptationType.VOLUME_ADJUSTMENT]


@pytest.mark.asyncio
async def test_apply_all(service, bench_plan, make_session):
    assert await service.apply_all() is None

    await service.select_plan(bench_plan)
    await log_all(service, bench_sessions(make_session, [5] * 6))
    adaptations = await service.analyze_performance()

    plan = await service.apply_all()

    assert [r.adaptation_id for r in plan.applied_adaptations] == [a.id for a in adaptations]
    assert await service.pending_adaptations() == []


@pytest.mark.asyncio
async def test_unknown_adaptation_raises(service, bench_plan):
    await service.select_plan(bench_plan)

    with pytest.raises(VitalityError):
        await service.apply_adaptation("missing")


@pytest.mark.asyncio
async def test_dismiss(service, bench_plan, make_session):
    await service.select_plan(bench_plan)
    await log_all(service, bench_sessions(make_session, [4, 3, 3, 3]))
    adaptation = (await service.analyze_performance())[0]

    assert await service.dismiss_adaptation(adaptation.id)
    assert not await service.dismiss_adaptation(adaptation.id)
    assert await service.pending_adaptations() == []
    assert (await service.load_active_plan()).days[0].exercises[0].weight == 60
