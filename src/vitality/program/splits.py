"""
Split Planning

Maps a goal and weekly frequency to the ordered day focuses and the
calendar weekdays they land on.
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Tuple

from ..models import Goal, MAX_DAYS_PER_WEEK, MIN_DAYS_PER_WEEK, WEEKDAY_NAMES

logger = logging.getLogger(__name__)


FULL_BODY = "Full Body"
UPPER_BODY = "Upper Body"
LOWER_BODY = "Lower Body"
PUSH = "Push"
PULL = "Pull"
LEGS = "Legs"
ACTIVE_RECOVERY = "Active Recovery"
CARDIO = "Cardio & Endurance"
FLEXIBILITY = "Flexibility & Mobility"


# 0 = Monday. Spread so rest days fall between sessions where possible.
TRAINING_WEEKDAYS: Dict[int, List[int]] = {
    3: [0, 2, 4],           # Mon, Wed, Fri
    4: [0, 1, 3, 4],        # Mon, Tue, Thu, Fri
    5: [0, 1, 3, 4, 6],     # Mon, Tue, Thu, Fri, Sun
    6: [0, 1, 2, 3, 4, 5],
    7: [0, 1, 2, 3, 4, 5, 6],
}

# Strength, muscle gain and weight loss share these. Weight loss keeps the
# lifting split; nutrition is the lever, not extra cardio.
RESISTANCE_SPLITS: Dict[int, Tuple[str, List[str]]] = {
    3: ("Full Body", [FULL_BODY] * 3),
    4: ("Upper/Lower", [UPPER_BODY, LOWER_BODY, UPPER_BODY, LOWER_BODY]),
    5: ("Push/Pull/Legs", [PUSH, PULL, LEGS, PUSH, PULL]),
    6: ("Push/Pull/Legs", [PUSH, PULL, LEGS, PUSH, PULL, LEGS]),
    7: ("Push/Pull/Legs", [PUSH, PULL, LEGS, PUSH, PULL, LEGS, ACTIVE_RECOVERY]),
}

RESISTANCE_GOALS = {Goal.STRENGTH, Goal.MUSCLE_GAIN, Goal.WEIGHT_LOSS}


@dataclass(frozen=True)
class Split:
    """Weekly arrangement of training days."""
    name: str
    focuses: Tuple[str, ...]
    weekdays: Tuple[int, ...]

    @property
    def day_names(self) -> List[str]:
        return [WEEKDAY_NAMES[d] for d in self.weekdays]


def clamp_days(days_per_week: int) -> int:
    return max(MIN_DAYS_PER_WEEK, min(MAX_DAYS_PER_WEEK, int(days_per_week)))


class SplitPlanner:
    """Fixed lookup of split structures by goal and day count."""

    def plan(self, goal: Goal, days_per_week: int) -> Split:
        """
        Build the split for a week.

        Args:
            goal: Primary training goal
            days_per_week: Training days; clamped into 3-7

        Returns:
            Split with exactly days_per_week focuses and weekdays
        """
        days = clamp_days(days_per_week)
        if days != days_per_week:
            logger.warning(f"days_per_week={days_per_week} outside 3-7, using {days}")

        weekdays = tuple(TRAINING_WEEKDAYS[days])

        if goal == Goal.ENDURANCE:
            return Split("Endurance", (CARDIO,) * days, weekdays)
        if goal == Goal.FLEXIBILITY:
            return Split("Mobility", (FLEXIBILITY,) * days, weekdays)

        name, focuses = RESISTANCE_SPLITS[days]
        return Split(name, tuple(focuses), weekdays)
