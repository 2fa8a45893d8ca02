"""
Program Service

Consumer-facing operations over the engine and a key-value store:
generate variations, select a plan, log sessions, analyze, apply or
dismiss adaptations. All state lives in the store; the service only
holds the current AdaptationBoard for its caller.
"""

import asyncio
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .catalog import ExerciseCatalog
from .config import EngineConfig
from .errors import VitalityError
from .models import Adaptation, SessionLog, TrainingRequest, WeeklyPlan
from .profile import ProfileResolver
from .program.adaptation import AdaptationBoard, apply_adaptation, filter_applied
from .program.assembler import ProgramAssembler
from .program.performance import PerformanceAnalyzer
from .store import (
    ACTIVE_PLAN_KEY,
    HISTORY_KEY,
    PENDING_ADAPTATIONS_KEY,
    PROFILE_KEY,
    SAVED_PLANS_KEY,
    KeyValueStore,
    user_key,
)

logger = logging.getLogger(__name__)

NUM_WORKERS = 4


@dataclass
class ProgramContext:
    """Everything stored for one user, loaded in a single fan-out."""
    profile: Optional[Dict[str, Any]] = None
    history: List[SessionLog] = field(default_factory=list)
    active_plan: Optional[WeeklyPlan] = None
    pending: List[Adaptation] = field(default_factory=list)

    def request(self, resolver: ProfileResolver) -> Optional[TrainingRequest]:
        if not self.profile:
            return None
        return resolver.resolve(self.profile)


class ProgramService:
    """
    Orchestrates plan generation and adaptation for one user.

    Integrates:
    - ProfileResolver (stored intake answers -> TrainingRequest)
    - ProgramAssembler (plans and variations)
    - PerformanceAnalyzer (adaptations for the active plan)
    - KeyValueStore (profile, history, active plan, pending suggestions)
    """

    def __init__(
        self,
        store: KeyValueStore,
        catalog: ExerciseCatalog,
        config: Optional[EngineConfig] = None,
        user_id: str = "default"
    ):
        """
        Initialize the service.

        Args:
            store: Async key-value store
            catalog: Exercise catalog
            config: Engine constants
            user_id: Namespace for storage keys
        """
        self.store = store
        self.catalog = catalog
        self.config = config or EngineConfig()
        self.user_id = user_id
        self.resolver = ProfileResolver(catalog)
        self.assembler = ProgramAssembler(catalog, self.config)
        self.analyzer = PerformanceAnalyzer(catalog, self.config)
        self.board = AdaptationBoard()

    def key(self, base_key: str) -> str:
        return user_key(self.user_id, base_key)

    # =========================================================================
    # LOADING
    # =========================================================================

    async def load_context(self) -> ProgramContext:
        """Load profile, history, active plan and pending suggestions concurrently."""
        profile, history, active, pending = await asyncio.gather(
            self.store.load(self.key(PROFILE_KEY)),
            self.store.load(self.key(HISTORY_KEY)),
            self.store.load(self.key(ACTIVE_PLAN_KEY)),
            self.store.load(self.key(PENDING_ADAPTATIONS_KEY)),
        )
        context = ProgramContext(
            profile=profile,
            history=[SessionLog.from_dict(s) for s in history or []],
            active_plan=WeeklyPlan.from_dict(active) if active else None,
            pending=[Adaptation.from_dict(a) for a in pending or []],
        )
        logger.debug(
            f"Loaded context for {self.user_id}: {len(context.history)} sessions, "
            f"active plan {context.active_plan.id if context.active_plan else None}"
        )
        return context

    async def load_history(self) -> List[SessionLog]:
        raw = await self.store.load(self.key(HISTORY_KEY))
        return [SessionLog.from_dict(s) for s in raw or []]

    async def load_active_plan(self) -> Optional[WeeklyPlan]:
        raw = await self.store.load(self.key(ACTIVE_PLAN_KEY))
        return WeeklyPlan.from_dict(raw) if raw else None

    async def load_request(self) -> Optional[TrainingRequest]:
        """TrainingRequest from the stored intake answers, if any."""
        profile = await self.store.load(self.key(PROFILE_KEY))
        return self.resolver.resolve(profile) if profile else None

    async def save_profile(self, answers: Dict[str, str]) -> TrainingRequest:
        """
        Store raw intake answers and return the request they resolve to.

        Args:
            answers: Free-text answers keyed by question

        Returns:
            Resolved TrainingRequest
        """
        await self.store.save(self.key(PROFILE_KEY), dict(answers))
        request = self.resolver.resolve(answers)
        logger.info(f"Saved profile for {self.user_id}: {request.goal.value}/{request.level.value}")
        return request

    # =========================================================================
    # PLANS
    # =========================================================================

    def _build_variations(
        self,
        request: TrainingRequest,
        count: int,
        history: List[SessionLog]
    ) -> List[WeeklyPlan]:
        results: List[Optional[WeeklyPlan]] = [None] * count

        def assemble_with_index(idx: int):
            return idx, self.assembler.assemble(request, history, idx)

        with ThreadPoolExecutor(max_workers=NUM_WORKERS) as executor:
            futures = [executor.submit(assemble_with_index, i) for i in range(count)]
            for future in futures:
                idx, plan = future.result()
                results[idx] = plan

        return results

    async def generate_plan_variations(
        self,
        request: TrainingRequest,
        count: Optional[int] = None,
        history: Optional[List[SessionLog]] = None
    ) -> List[WeeklyPlan]:
        """
        Build independent plan variations, ordered by variation index.

        Args:
            request: Training request
            count: Number of variations (config default if omitted)
            history: Session logs (loaded from the store if omitted)

        Returns:
            List of WeeklyPlan, index i built with variation index i
        """
        count = self.config.default_variations if count is None else max(0, count)
        if history is None:
            history = await self.load_history()

        plans = await asyncio.to_thread(self._build_variations, request, count, list(history))
        logger.info(f"Generated {len(plans)} variations for {request.goal.value}/{request.level.value}")
        return plans

    async def select_plan(self, plan: WeeklyPlan) -> WeeklyPlan:
        """
        Make plan the active plan and add it to the saved plans.

        Suggestions computed for the previous plan are cleared.
        """
        data = plan.to_dict()

        def add_saved(saved: Optional[List[Dict[str, Any]]]) -> List[Dict[str, Any]]:
            saved = [p for p in saved or [] if p.get("id") != plan.id]
            saved.append(data)
            return saved

        await asyncio.gather(
            self.store.save(self.key(ACTIVE_PLAN_KEY), data),
            self.store.update(self.key(SAVED_PLANS_KEY), add_saved),
            self.store.save(self.key(PENDING_ADAPTATIONS_KEY), []),
        )
        self.board.clear()
        logger.info(f"Selected plan {plan.id} ({plan.name})")
        return plan

    async def saved_plans(self) -> List[WeeklyPlan]:
        raw = await self.store.load(self.key(SAVED_PLANS_KEY))
        return [WeeklyPlan.from_dict(p) for p in raw or []]

    # =========================================================================
    # HISTORY
    # =========================================================================

    async def log_session(self, session: SessionLog) -> int:
        """
        Append a session to the history.

        Returns:
            Number of sessions stored after the append
        """
        entry = session.to_dict()

        def append(history: Optional[List[Dict[str, Any]]]) -> List[Dict[str, Any]]:
            return list(history or []) + [entry]

        history = await self.store.update(self.key(HISTORY_KEY), append)
        logger.info(f"Logged session {session.date.isoformat()} for plan {session.plan_id}")
        return len(history)

    # =========================================================================
    # ADAPTATIONS
    # =========================================================================

    async def analyze_performance(
        self,
        history: Optional[List[SessionLog]] = None,
        plan: Optional[WeeklyPlan] = None
    ) -> List[Adaptation]:
        """
        Analyze the plan and refresh the pending suggestions.

        Suggestions already applied to the plan are dropped. The result
        replaces the board and the stored pending list.

        Args:
            history: Session logs (stored history if omitted)
            plan: Plan to analyze (active plan if omitted)

        Returns:
            Pending adaptations, possibly empty
        """
        if history is None or plan is None:
            context = await self.load_context()
            history = context.history if history is None else history
            plan = context.active_plan if plan is None else plan

        if plan is None:
            logger.warning(f"No active plan for {self.user_id}; nothing to analyze")
            self.board.clear()
            return []

        adaptations = filter_applied(self.analyzer.analyze(list(history), plan), plan)
        self.board.replace(adaptations)
        await self.store.save(
            self.key(PENDING_ADAPTATIONS_KEY), [a.to_dict() for a in adaptations]
        )
        logger.info(f"{len(adaptations)} adaptations pending for plan {plan.id}")
        return adaptations

    async def pending_adaptations(self) -> List[Adaptation]:
        """Current suggestions; reloads from the store when the board is empty."""
        if not len(self.board):
            raw = await self.store.load(self.key(PENDING_ADAPTATIONS_KEY))
            self.board.replace(Adaptation.from_dict(a) for a in raw or [])
        return self.board.pending()

    async def _discard_pending(self, adaptation_id: str):
        self.board.dismiss(adaptation_id)

        def remove(pending: Optional[List[Dict[str, Any]]]) -> List[Dict[str, Any]]:
            return [a for a in pending or [] if a.get("id") != adaptation_id]

        await self.store.update(self.key(PENDING_ADAPTATIONS_KEY), remove)

    async def apply_adaptation(self, adaptation_id: str) -> WeeklyPlan:
        """
        Apply a pending suggestion to the stored active plan and its saved copy.

        The read-modify-write of the plan is a single store.update, so two
        adaptations applied concurrently do not lose each other's changes.
        The suggestion is discarded afterwards, even when it no longer fit
        the plan.

        Args:
            adaptation_id: Id of a pending adaptation

        Returns:
            The updated active plan

        Raises:
            VitalityError: Unknown adaptation id or no active plan
        """
        await self.pending_adaptations()
        adaptation = self.board.get(adaptation_id)
        if adaptation is None:
            raise VitalityError(f"No pending adaptation with id {adaptation_id}")

        def apply(current: Optional[Dict[str, Any]]) -> Dict[str, Any]:
            if not current:
                raise VitalityError("No active plan to adapt")
            plan = WeeklyPlan.from_dict(current)
            return apply_adaptation(adaptation, plan, self.catalog).to_dict()

        updated = await self.store.update(self.key(ACTIVE_PLAN_KEY), apply)

        # Saved copy gets the same change applied to its own stored state
        def apply_saved(saved: Optional[List[Dict[str, Any]]]) -> List[Dict[str, Any]]:
            return [apply(p) if p.get("id") == updated["id"] else p for p in saved or []]

        await self.store.update(self.key(SAVED_PLANS_KEY), apply_saved)
        await self._discard_pending(adaptation_id)
        return WeeklyPlan.from_dict(updated)

    async def apply_all(self) -> Optional[WeeklyPlan]:
        """Apply every pending suggestion in order. None if nothing was pending."""
        plan = None
        for adaptation in await self.pending_adaptations():
            plan = await self.apply_adaptation(adaptation.id)
        return plan

    async def dismiss_adaptation(self, adaptation_id: str) -> bool:
        """
        Drop a pending suggestion without applying it.

        Returns:
            True if the suggestion was pending
        """
        await self.pending_adaptations()
        found = adaptation_id in self.board
        await self._discard_pending(adaptation_id)
        if found:
            logger.info(f"Dismissed adaptation {adaptation_id}")
        else:
            logger.warning(f"Adaptation {adaptation_id} was not pending")
        return found
