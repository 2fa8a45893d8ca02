"""
Set Scheme Assignment

Sets, reps and rest per exercise from goal, level and exercise category.
For cardio the reps field carries minutes; for flexibility and balance it
carries hold seconds.
"""

from typing import Dict, Tuple

from ..models import (
    Category, ExerciseDefinition, Goal, Level, MAX_SETS, MIN_SETS, PlannedExercise,
)


class SchemeTable:
    """Lookup tables for prescribed volume."""

    # goal -> level -> (reps, rest_seconds)
    STRENGTH_CATEGORY = {
        Goal.STRENGTH: {
            Level.BEGINNER: (8, 90),
            Level.INTERMEDIATE: (6, 120),
            Level.ADVANCED: (5, 150),
        },
        Goal.MUSCLE_GAIN: {
            Level.BEGINNER: (10, 60),
            Level.INTERMEDIATE: (10, 60),
            Level.ADVANCED: (8, 60),
        },
        Goal.WEIGHT_LOSS: {
            Level.BEGINNER: (15, 45),
            Level.INTERMEDIATE: (12, 45),
            Level.ADVANCED: (12, 45),
        },
    }

    # Endurance/flexibility goals that still end up with a resistance exercise
    OTHER_STRENGTH = {
        Level.BEGINNER: (10, 90),
        Level.INTERMEDIATE: (8, 90),
        Level.ADVANCED: (6, 90),
    }

    STRENGTH_SETS = {Level.BEGINNER: 3, Level.INTERMEDIATE: 4, Level.ADVANCED: 4}

    CARDIO_MINUTES = {Level.BEGINNER: 20, Level.INTERMEDIATE: 30, Level.ADVANCED: 45}
    CARDIO_REST = 60

    MOBILITY_SETS = {Level.BEGINNER: 1, Level.INTERMEDIATE: 2, Level.ADVANCED: 3}
    MOBILITY_HOLD = {Level.BEGINNER: 30, Level.INTERMEDIATE: 45, Level.ADVANCED: 60}
    MOBILITY_REST = 30


def clamp_scheme(exercise: PlannedExercise) -> PlannedExercise:
    """
    Enforce 1 <= sets <= 6 and the rep cap (10 compound, 20 isolation).

    Mutates and returns the given exercise.
    """
    exercise.sets = max(MIN_SETS, min(MAX_SETS, int(exercise.sets)))
    exercise.reps = max(1, min(exercise.rep_cap, int(exercise.reps)))
    if exercise.weight < 0:
        exercise.weight = 0.0
    return exercise


class SetSchemeAssigner:
    """Turns a selected exercise into a PlannedExercise with its scheme."""

    def scheme_for(
        self,
        exercise: ExerciseDefinition,
        goal: Goal,
        level: Level
    ) -> Tuple[int, int, int]:
        """
        Raw (sets, reps, rest_seconds) before clamping.

        Args:
            exercise: Catalog definition
            goal: Primary goal
            level: Trainee level

        Returns:
            Tuple of sets, reps, rest seconds
        """
        if exercise.category == Category.CARDIO:
            return 1, SchemeTable.CARDIO_MINUTES[level], SchemeTable.CARDIO_REST

        if exercise.category in (Category.FLEXIBILITY, Category.BALANCE):
            return (
                SchemeTable.MOBILITY_SETS[level],
                SchemeTable.MOBILITY_HOLD[level],
                SchemeTable.MOBILITY_REST,
            )

        by_level: Dict[Level, Tuple[int, int]] = SchemeTable.STRENGTH_CATEGORY.get(
            goal, SchemeTable.OTHER_STRENGTH
        )
        reps, rest = by_level[level]
        return SchemeTable.STRENGTH_SETS[level], reps, rest

    def assign(self, exercise: ExerciseDefinition, goal: Goal, level: Level) -> PlannedExercise:
        sets, reps, rest = self.scheme_for(exercise, goal, level)
        planned = PlannedExercise.from_definition(exercise, sets, reps, rest)
        return clamp_scheme(planned)
