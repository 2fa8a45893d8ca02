"""
Exercise Catalog

Read-only, queryable set of exercise definitions. Loaded once from the
bundled YAML dataset, a custom YAML file, or the Neo4j graph.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Optional, Set

import yaml

from .models import Category, ExerciseDefinition, Level

logger = logging.getLogger(__name__)

BUNDLED_CATALOG = Path(__file__).parent / "data" / "exercises.yaml"


@dataclass
class ExerciseFilter:
    """Criteria for list_exercises. None means "don't filter on this"."""
    categories: Optional[Set[Category]] = None
    muscle_groups: Optional[Set[str]] = None
    difficulties: Optional[Set[Level]] = None
    equipment_available: Optional[Set[str]] = None  # None = everything available
    excluded_names: Set[str] = field(default_factory=set)

    def matches(self, exercise: ExerciseDefinition) -> bool:
        if self.categories is not None and exercise.category not in self.categories:
            return False
        if self.muscle_groups is not None and exercise.primary_muscle_group not in self.muscle_groups:
            return False
        if self.difficulties is not None and exercise.difficulty not in self.difficulties:
            return False
        if self.equipment_available is not None:
            usable = {e.lower() for e in self.equipment_available} | {"bodyweight"}
            if not exercise.equipment <= usable:
                return False
        if self.excluded_names:
            excluded = {n.lower() for n in self.excluded_names}
            if exercise.name.lower() in excluded:
                return False
        return True


class ExerciseCatalog:
    """
    In-memory exercise catalog.

    Order of the source is preserved so every query is deterministic.
    """

    def __init__(self, exercises: Iterable[ExerciseDefinition]):
        self._exercises = tuple(exercises)
        self._by_id: Dict[str, ExerciseDefinition] = {}
        self._by_name: Dict[str, ExerciseDefinition] = {}
        for exercise in self._exercises:
            if exercise.id in self._by_id:
                logger.warning(f"Duplicate exercise id {exercise.id}, keeping first")
                continue
            self._by_id[exercise.id] = exercise
            self._by_name.setdefault(exercise.name.lower(), exercise)

    def __len__(self) -> int:
        return len(self._exercises)

    def __iter__(self) -> Iterator[ExerciseDefinition]:
        return iter(self._exercises)

    def list_exercises(self, exercise_filter: Optional[ExerciseFilter] = None) -> List[ExerciseDefinition]:
        if exercise_filter is None:
            return list(self._exercises)
        return [e for e in self._exercises if exercise_filter.matches(e)]

    def get_by_name(self, name: str) -> Optional[ExerciseDefinition]:
        if not name:
            return None
        return self._by_name.get(name.strip().lower())

    def get_by_id(self, exercise_id: str) -> Optional[ExerciseDefinition]:
        return self._by_id.get(exercise_id)

    def muscle_groups(self) -> List[str]:
        return sorted({e.primary_muscle_group for e in self._exercises})

    def alternatives_for(
        self,
        exercise_id: Optional[str],
        name: Optional[str] = None,
        exclude_names: Optional[Set[str]] = None
    ) -> List[ExerciseDefinition]:
        """
        Candidate replacements for an exercise.

        Declared alternatives come first (in declared order), then other
        exercises for the same primary muscle group and category, easiest
        first.

        Args:
            exercise_id: Catalog id of the exercise to replace
            name: Fallback lookup by name
            exclude_names: Names that must not be proposed (e.g. already planned)

        Returns:
            Ordered list of ExerciseDefinition
        """
        source = self.get_by_id(exercise_id) if exercise_id else None
        if source is None and name:
            source = self.get_by_name(name)
        if source is None:
            return []

        excluded = {n.lower() for n in (exclude_names or set())}
        excluded.add(source.name.lower())

        candidates: List[ExerciseDefinition] = []
        for alt_id in source.alternatives:
            alt = self.get_by_id(alt_id)
            if alt is not None and alt.name.lower() not in excluded and alt not in candidates:
                candidates.append(alt)

        difficulty_rank = {Level.BEGINNER: 0, Level.INTERMEDIATE: 1, Level.ADVANCED: 2}
        similar = [
            e for e in self._exercises
            if e.primary_muscle_group == source.primary_muscle_group
            and e.category == source.category
            and e.name.lower() not in excluded
            and e not in candidates
        ]
        similar.sort(key=lambda e: difficulty_rank[e.difficulty])
        return candidates + similar


def load_catalog(path: Optional[str] = None) -> ExerciseCatalog:
    """
    Load a catalog from YAML.

    Args:
        path: YAML file with a top-level ``exercises`` list. Defaults to
              the bundled dataset.

    Returns:
        ExerciseCatalog
    """
    catalog_path = Path(path) if path else BUNDLED_CATALOG
    with open(catalog_path) as f:
        data = yaml.safe_load(f) or {}

    rows = data.get("exercises", []) if isinstance(data, dict) else data
    exercises = [ExerciseDefinition.from_dict(row) for row in rows]
    logger.debug(f"Loaded {len(exercises)} exercises from {catalog_path}")
    return ExerciseCatalog(exercises)


def load_catalog_from_graph(graph) -> ExerciseCatalog:
    """Load the catalog from Exercise nodes via an ExerciseGraph."""
    rows = graph.fetch_exercises()
    exercises = [ExerciseDefinition.from_dict(row) for row in rows]
    logger.info(f"Loaded {len(exercises)} exercises from graph")
    return ExerciseCatalog(exercises)


def catalog_from_settings(settings) -> ExerciseCatalog:
    """
    Load the catalog the settings point at.

    catalog_source 'neo4j' reads the graph; anything else reads YAML
    (catalog_path, or the bundled dataset).
    """
    if settings.catalog_source == "neo4j":
        from .graph import ExerciseGraph

        with ExerciseGraph.from_settings(settings) as graph:
            return load_catalog_from_graph(graph)
    return load_catalog(settings.catalog_path)
