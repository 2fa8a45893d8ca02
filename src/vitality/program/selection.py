"""
Exercise Selection

Internal Codename: FORGE
Picks a bounded set of exercises for each training day.

Each day focus is a FocusStrategy: the categories it draws from and an
ordered list of (muscle group, quota) buckets. Within a bucket we prefer
muscle regions not yet trained this week, then regions not yet trained
today, then anything. Leftover slots are filled from the shuffled pool.
"""

import logging
from dataclasses import dataclass
from typing import Dict, FrozenSet, Iterable, List, Optional, Set, Tuple

from ..catalog import ExerciseCatalog, ExerciseFilter
from ..errors import EmptyPoolError
from ..models import Category, ExerciseDefinition, Goal, Level, TrainingRequest
from . import splits
from .rng import SeededRandom

logger = logging.getLogger(__name__)

# Shared across all days of one plan: muscle group -> regions already used
UsedRegions = Dict[str, Set[str]]


GOAL_CATEGORIES: Dict[Goal, FrozenSet[Category]] = {
    Goal.STRENGTH: frozenset({Category.STRENGTH, Category.FLEXIBILITY, Category.BALANCE}),
    Goal.MUSCLE_GAIN: frozenset({Category.STRENGTH, Category.FLEXIBILITY, Category.BALANCE}),
    Goal.WEIGHT_LOSS: frozenset({Category.STRENGTH, Category.FLEXIBILITY, Category.BALANCE}),
    Goal.ENDURANCE: frozenset({Category.CARDIO, Category.BALANCE}),
    Goal.FLEXIBILITY: frozenset({Category.FLEXIBILITY, Category.BALANCE}),
}

LEVEL_DIFFICULTIES: Dict[Level, FrozenSet[Level]] = {
    Level.BEGINNER: frozenset({Level.BEGINNER}),
    Level.INTERMEDIATE: frozenset({Level.BEGINNER, Level.INTERMEDIATE}),
    Level.ADVANCED: frozenset({Level.BEGINNER, Level.INTERMEDIATE, Level.ADVANCED}),
}

# Used only for advanced lifters: harder variations first within a bucket
ADVANCED_PRIORITY = {Level.ADVANCED: 0, Level.INTERMEDIATE: 1, Level.BEGINNER: 2}


@dataclass(frozen=True)
class FocusStrategy:
    """How to fill one kind of training day."""
    label: str
    categories: FrozenSet[Category]
    buckets: Tuple[Tuple[str, int], ...]

    @property
    def muscle_groups(self) -> Set[str]:
        return {group for group, _ in self.buckets}


_RESISTANCE = frozenset({Category.STRENGTH})
_MOBILITY = frozenset({Category.FLEXIBILITY, Category.BALANCE})

FOCUS_STRATEGIES: Dict[str, FocusStrategy] = {
    s.label: s for s in [
        FocusStrategy(splits.FULL_BODY, _RESISTANCE, (
            ("quadriceps", 1), ("chest", 1), ("back", 1),
            ("hamstrings", 1), ("shoulders", 1), ("core", 1),
        )),
        FocusStrategy(splits.UPPER_BODY, _RESISTANCE, (
            ("chest", 2), ("back", 2), ("shoulders", 1), ("biceps", 1), ("triceps", 1),
        )),
        FocusStrategy(splits.LOWER_BODY, _RESISTANCE, (
            ("quadriceps", 2), ("hamstrings", 1), ("glutes", 1), ("calves", 1), ("core", 1),
        )),
        FocusStrategy(splits.PUSH, _RESISTANCE, (
            ("chest", 2), ("shoulders", 2), ("triceps", 2),
        )),
        FocusStrategy(splits.PULL, _RESISTANCE, (
            ("back", 3), ("biceps", 2), ("shoulders", 1),
        )),
        FocusStrategy(splits.LEGS, _RESISTANCE, (
            ("quadriceps", 2), ("hamstrings", 2), ("glutes", 1), ("calves", 1),
        )),
        FocusStrategy(splits.CARDIO, frozenset({Category.CARDIO, Category.BALANCE, Category.STRENGTH}), (
            ("cardiovascular", 3), ("core", 1), ("stability", 1),
        )),
        FocusStrategy(splits.FLEXIBILITY, _MOBILITY, (
            ("hamstrings", 1), ("hips", 1), ("back", 1),
            ("shoulders", 1), ("chest", 1), ("stability", 1),
        )),
        FocusStrategy(splits.ACTIVE_RECOVERY, _MOBILITY, (
            ("hips", 1), ("back", 1), ("hamstrings", 1), ("stability", 1),
        )),
    ]
}


# Tried in order when a day would otherwise be empty
SAFE_DEFAULTS = (
    ExerciseDefinition(
        id="push-ups", name="Push-ups", category=Category.STRENGTH,
        movement_pattern="push", primary_muscle_group="chest",
        secondary_muscle_groups=frozenset({"triceps", "shoulders"}),
        muscle_region="mid", difficulty=Level.BEGINNER,
    ),
    ExerciseDefinition(
        id="plank", name="Plank", category=Category.STRENGTH,
        movement_pattern="anti_rotation", primary_muscle_group="core",
        muscle_region="deep", difficulty=Level.BEGINNER,
    ),
    ExerciseDefinition(
        id="brisk-walking", name="Brisk Walking", category=Category.CARDIO,
        movement_pattern="locomotion", primary_muscle_group="cardiovascular",
        muscle_region="low_impact", difficulty=Level.BEGINNER,
    ),
)


def safe_default(
    catalog: Optional[ExerciseCatalog] = None,
    excluded_names: Iterable[str] = ()
) -> ExerciseDefinition:
    """
    The bodyweight exercise a day falls back to when nothing else fits.

    Prefers the catalog's own definition of the same exercise so ids line
    up with logged history.
    """
    excluded = {n.lower() for n in excluded_names}
    for candidate in SAFE_DEFAULTS:
        if candidate.name.lower() in excluded:
            continue
        if catalog is not None:
            return catalog.get_by_name(candidate.name) or candidate
        return candidate
    logger.warning("Every safe default is excluded; using Push-ups anyway")
    return SAFE_DEFAULTS[0]


def pool_filter(request: TrainingRequest) -> ExerciseFilter:
    categories = set(GOAL_CATEGORIES[request.goal])
    for secondary in request.secondary_goals:
        categories |= GOAL_CATEGORIES[secondary]
    return ExerciseFilter(
        categories=categories,
        difficulties=set(LEVEL_DIFFICULTIES[request.level]),
        equipment_available=request.equipment_available,
        excluded_names=set(request.excluded_exercise_names),
    )


def build_pool(catalog: ExerciseCatalog, request: TrainingRequest) -> List[ExerciseDefinition]:
    """
    Restrict the catalog by goal category, difficulty, equipment and exclusions.

    Raises:
        EmptyPoolError: nothing survives the filters
    """
    pool = catalog.list_exercises(pool_filter(request))
    if not pool:
        raise EmptyPoolError(
            f"No exercises for goal={request.goal.value} level={request.level.value} "
            f"equipment={sorted(request.equipment_available or [])}"
        )
    return pool


class ExerciseSelector:
    """
    Chooses each day's exercises using per-focus bucket strategies.

    The used-regions map is owned by the caller and threaded through every
    day of the week so regions rotate across sessions.
    """

    def __init__(
        self,
        strategies: Optional[Dict[str, FocusStrategy]] = None,
        fallback: Optional[ExerciseDefinition] = None
    ):
        self.strategies = strategies or FOCUS_STRATEGIES
        self.fallback = fallback or SAFE_DEFAULTS[0]

    def strategy_for(self, focus: str) -> FocusStrategy:
        strategy = self.strategies.get(focus)
        if strategy is None:
            logger.warning(f"No strategy for focus '{focus}', using {splits.FULL_BODY}")
            strategy = self.strategies[splits.FULL_BODY]
        return strategy

    def select(
        self,
        pool: List[ExerciseDefinition],
        focus: str,
        used_regions: UsedRegions,
        budget: int,
        rng: SeededRandom,
        level: Level = Level.BEGINNER
    ) -> List[ExerciseDefinition]:
        """
        Select the exercises for one day.

        Args:
            pool: Filtered catalog for this request
            focus: Day focus label
            used_regions: Week-level region usage, updated in place
            budget: Maximum exercises for the day
            rng: Seeded generator for this plan variation
            level: Trainee level (advanced prefers advanced variations)

        Returns:
            Between 1 and budget exercises
        """
        strategy = self.strategy_for(focus)
        budget = max(1, budget)

        try:
            eligible = self._eligible(pool, strategy)
        except EmptyPoolError as e:
            logger.warning(f"{e}; using {self.fallback.name}")
            self._mark(self.fallback, used_regions, {})
            return [self.fallback]

        order = rng.shuffle(eligible)
        position = {e.id: i for i, e in enumerate(order)}
        selected: List[ExerciseDefinition] = []
        today: UsedRegions = {}

        def rank(e: ExerciseDefinition) -> int:
            return ADVANCED_PRIORITY[e.difficulty] if level == Level.ADVANCED else 0

        for group, quota in strategy.buckets:
            candidates = [e for e in order if e.primary_muscle_group == group]
            for _ in range(quota):
                if len(selected) >= budget:
                    break
                remaining = [e for e in candidates if e not in selected]
                if not remaining:
                    break
                pick = min(remaining, key=lambda e: (
                    self._region_tier(e, used_regions, today), rank(e), position[e.id]
                ))
                selected.append(pick)
                self._mark(pick, used_regions, today)

        # Leftover slots: focus groups first, then fresh regions, then shuffle order
        while len(selected) < budget:
            remaining = [e for e in order if e not in selected]
            if not remaining:
                break
            pick = min(remaining, key=lambda e: (
                e.primary_muscle_group not in strategy.muscle_groups,
                e.muscle_region in today.get(e.primary_muscle_group, ()),
                position[e.id],
            ))
            selected.append(pick)
            self._mark(pick, used_regions, today)

        return selected

    def _eligible(self, pool: List[ExerciseDefinition], strategy: FocusStrategy) -> List[ExerciseDefinition]:
        eligible = [e for e in pool if e.category in strategy.categories]
        if not eligible:
            raise EmptyPoolError(f"No eligible exercises for '{strategy.label}'")
        return eligible

    @staticmethod
    def _region_tier(e: ExerciseDefinition, used_regions: UsedRegions, today: UsedRegions) -> int:
        group = e.primary_muscle_group
        if e.muscle_region not in used_regions.get(group, set()):
            return 0
        if e.muscle_region not in today.get(group, set()):
            return 1
        return 2

    @staticmethod
    def _mark(e: ExerciseDefinition, used_regions: UsedRegions, today: UsedRegions):
        used_regions.setdefault(e.primary_muscle_group, set()).add(e.muscle_region)
        today.setdefault(e.primary_muscle_group, set()).add(e.muscle_region)
