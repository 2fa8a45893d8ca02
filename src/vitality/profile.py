"""
Profile Resolution

Turns free-text intake answers into a structured TrainingRequest.
Best-effort keyword heuristics: unrecognised answers fall back to safe
defaults rather than failing.
"""

import logging
import re
from typing import Dict, List, Optional, Set

from .biomechanics import detect_injury_sites, injury_warnings, is_contraindicated
from .catalog import ExerciseCatalog
from .models import Goal, Level, MAX_DAYS_PER_WEEK, MIN_DAYS_PER_WEEK, TrainingRequest

logger = logging.getLogger(__name__)


GOAL_KEYWORDS = {
    Goal.STRENGTH: ["strength", "strong", "powerlift", "lift heavier", "1rm"],
    Goal.MUSCLE_GAIN: ["muscle", "bulk", "hypertroph", "mass", "bigger", "tone", "build"],
    Goal.WEIGHT_LOSS: ["weight loss", "lose weight", "lose fat", "fat", "lean", "slim", "shred"],
    Goal.ENDURANCE: ["endurance", "cardio", "stamina", "marathon", "running", "conditioning"],
    Goal.FLEXIBILITY: ["flexib", "mobility", "stretch", "yoga", "limber"],
}

LEVEL_KEYWORDS = [
    (Level.ADVANCED, ["advanced", "expert", "competitive", "athlete", "experienced"]),
    (Level.INTERMEDIATE, ["intermediate", "some experience", "moderate", "regularly", "on and off"]),
    (Level.BEGINNER, ["beginner", "novice", "never", "new to", "just starting", "first time"]),
]

NUMBER_WORDS = {
    "one": 1, "once": 1, "two": 2, "twice": 2, "three": 3, "four": 4,
    "five": 5, "six": 6, "seven": 7, "daily": 7, "every day": 7,
}

FULL_GYM_WORDS = ["gym", "full", "everything", "all equipment", "anything"]
NO_EQUIPMENT_WORDS = ["none", "nothing", "no equipment", "bodyweight", "body weight", "just me"]

EQUIPMENT_KEYWORDS = {
    "dumbbell": ["dumbbell", "dumbell"],
    "barbell": ["barbell", "squat rack", "power rack"],
    "bench": ["bench"],
    "kettlebell": ["kettlebell"],
    "resistance_band": ["band"],
    "pull_up_bar": ["pull-up bar", "pullup bar", "pull up bar", "chin-up bar"],
    "cable": ["cable"],
    "machine": ["machine"],
    "cardio_machine": ["treadmill", "bike", "rower", "elliptical"],
    "jump_rope": ["jump rope", "skipping rope"],
    "box": ["plyo box", "box"],
    "dip_station": ["dip station", "parallel bars"],
    "ab_wheel": ["ab wheel"],
    "pool": ["pool"],
}

MIN_SESSION_MINUTES = 15
MAX_SESSION_MINUTES = 180

# Accepted aliases for answer keys
ANSWER_KEYS = {
    "goal": ["goal", "goals", "primary_goal"],
    "experience": ["experience", "level", "fitness_level"],
    "frequency": ["frequency", "days", "days_per_week"],
    "equipment": ["equipment", "equipment_available"],
    "injuries": ["injuries", "injury", "limitations"],
    "session_length": ["session_length", "duration", "minutes"],
    "exclusions": ["exclusions", "exclude", "dislikes"],
}


def _keyword_positions(text: str, keywords: List[str]) -> Optional[int]:
    """Earliest position of any keyword at a word start, or None."""
    positions = [
        m.start() for k in keywords
        for m in [re.search(r'\b' + re.escape(k), text)] if m
    ]
    return min(positions) if positions else None


class ProfileResolver:
    """Converts intake answers to a TrainingRequest."""

    def __init__(self, catalog: Optional[ExerciseCatalog] = None):
        """
        Args:
            catalog: Needed to turn injuries into excluded exercise names
        """
        self.catalog = catalog

    def resolve(self, answers: Dict[str, str]) -> TrainingRequest:
        """
        Parse intake answers.

        Args:
            answers: Free-text answers keyed by question (goal, experience,
                     frequency, equipment, injuries, session_length, exclusions)

        Returns:
            TrainingRequest with every field inside its valid range
        """
        normalized = self._normalize_keys(answers)

        goals = self.parse_goals(normalized.get("goal", ""))
        excluded = self.excluded_for_injuries(normalized.get("injuries", ""))
        excluded |= self.parse_exclusions(normalized.get("exclusions", ""))

        return TrainingRequest(
            goal=goals[0],
            level=self.parse_level(normalized.get("experience", "")),
            days_per_week=self.parse_frequency(normalized.get("frequency", "")),
            excluded_exercise_names=excluded,
            secondary_goals=set(goals[1:]),
            preferred_session_minutes=self.parse_session_minutes(normalized.get("session_length", "")),
            equipment_available=self.parse_equipment(normalized.get("equipment", "")),
        )

    @staticmethod
    def _normalize_keys(answers: Dict[str, str]) -> Dict[str, str]:
        result = {}
        lowered = {str(k).lower(): v for k, v in (answers or {}).items()}
        for canonical, aliases in ANSWER_KEYS.items():
            for alias in aliases:
                if lowered.get(alias) is not None:
                    result[canonical] = str(lowered[alias])
                    break
        return result

    def parse_goals(self, text: str) -> List[Goal]:
        """All goals mentioned, in order of first mention. Never empty."""
        text = (text or "").lower()
        found = []
        for goal, keywords in GOAL_KEYWORDS.items():
            position = _keyword_positions(text, keywords)
            if position is not None:
                found.append((position, goal))
        found.sort(key=lambda item: item[0])
        goals = [goal for _, goal in found]
        if not goals:
            if text.strip():
                logger.info(f"No goal recognised in '{text}', defaulting to strength")
            return [Goal.STRENGTH]
        return goals

    def parse_level(self, text: str) -> Level:
        text = (text or "").lower()
        for level, keywords in LEVEL_KEYWORDS:
            if _keyword_positions(text, keywords) is not None:
                return level

        years = re.search(r'(\d+(?:\.\d+)?)\s*(?:\+\s*)?(?:years?|yrs?)', text)
        if years:
            value = float(years.group(1))
            if value >= 3:
                return Level.ADVANCED
            if value >= 1:
                return Level.INTERMEDIATE
        return Level.BEGINNER

    def parse_frequency(self, text: str) -> int:
        text = (text or "").lower()
        days = None

        digits = re.search(r'\d+', text)
        if digits:
            days = int(digits.group(0))
        else:
            for word, value in NUMBER_WORDS.items():
                if re.search(r'\b' + re.escape(word) + r'\b', text):
                    days = value
                    break

        if days is None:
            return MIN_DAYS_PER_WEEK

        clamped = max(MIN_DAYS_PER_WEEK, min(MAX_DAYS_PER_WEEK, days))
        if clamped != days:
            logger.warning(f"Frequency {days} outside {MIN_DAYS_PER_WEEK}-{MAX_DAYS_PER_WEEK}, using {clamped}")
        return clamped

    def parse_equipment(self, text: str) -> Optional[Set[str]]:
        """
        Equipment tags. None means a full gym; bodyweight is always usable.
        """
        text = (text or "").lower().strip()
        if not text:
            return None

        tags = {
            tag for tag, keywords in EQUIPMENT_KEYWORDS.items()
            if _keyword_positions(text, keywords) is not None
        }
        if not tags:
            if _keyword_positions(text, NO_EQUIPMENT_WORDS) is not None:
                return {"bodyweight"}
            if _keyword_positions(text, FULL_GYM_WORDS) is not None:
                return None
        tags.add("bodyweight")
        return tags

    def parse_session_minutes(self, text: str) -> Optional[int]:
        text = (text or "").lower()
        if not text.strip():
            return None

        minutes = None
        if "half an hour" in text or "half hour" in text:
            minutes = 30
        else:
            hours = re.search(r'(\d+(?:\.\d+)?)\s*(?:hours?|hrs?|h\b)', text)
            mins = re.search(r'(\d+)\s*(?:minutes?|mins?|m\b)', text)
            if hours:
                minutes = int(float(hours.group(1)) * 60)
                if mins:
                    minutes += int(mins.group(1))
            elif mins:
                minutes = int(mins.group(1))
            elif re.search(r'\ban hour\b', text):
                minutes = 60
            else:
                bare = re.search(r'\d+', text)
                if bare:
                    minutes = int(bare.group(0))

        if minutes is None:
            return None
        return max(MIN_SESSION_MINUTES, min(MAX_SESSION_MINUTES, minutes))

    def excluded_for_injuries(self, text: str) -> Set[str]:
        """Catalog exercise names that load an injured area."""
        sites = detect_injury_sites(text)
        if not sites:
            return set()
        if self.catalog is None:
            logger.warning(f"Injuries {sites} reported but no catalog to exclude from")
            return set()

        excluded = {
            e.name for e in self.catalog
            if is_contraindicated(e.name, e.movement_pattern, sites)
        }
        logger.info(f"Injuries {sites} rule out {injury_warnings(sites)}: {len(excluded)} exercises excluded")
        return excluded

    @staticmethod
    def parse_exclusions(text: str) -> Set[str]:
        text = (text or "").strip()
        if not text or text.lower() in ("none", "no", "n/a"):
            return set()
        parts = re.split(r'[,;\n]|\band\b', text)
        return {p.strip() for p in parts if p.strip()}
