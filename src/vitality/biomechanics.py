"""
Biomechanical Data Model

Defines movement patterns, joint actions, and injury contraindications
used to keep injured joints out of generated plans.
"""

from typing import Dict, Iterable, List, Set
from enum import Enum


class JointAction(Enum):
    """Joint actions and movements."""
    # Sagittal plane
    FLEXION = "flexion"
    EXTENSION = "extension"
    DORSIFLEXION = "dorsiflexion"
    PLANTARFLEXION = "plantarflexion"

    # Frontal plane
    ABDUCTION = "abduction"
    ADDUCTION = "adduction"
    ELEVATION = "elevation"

    # Transverse plane
    INTERNAL_ROTATION = "internal_rotation"
    EXTERNAL_ROTATION = "external_rotation"
    HORIZONTAL_ADDUCTION = "horizontal_adduction"

    # Special
    PROTRACTION = "protraction"
    RETRACTION = "retraction"


class MovementPattern(Enum):
    """Fundamental movement patterns."""
    SQUAT = "squat"
    HINGE = "hinge"
    LUNGE = "lunge"
    PUSH = "push"
    PULL = "pull"
    CARRY = "carry"
    ROTATION = "rotation"
    ANTI_ROTATION = "anti_rotation"
    LOCOMOTION = "locomotion"
    ISOLATION = "isolation"
    STRETCH = "stretch"
    BALANCE = "balance"


# Name fragments to movement patterns, for exercises without a tagged pattern
EXERCISE_MOVEMENT_PATTERNS = {
    "squat": [MovementPattern.SQUAT],
    "goblet squat": [MovementPattern.SQUAT],
    "bulgarian split squat": [MovementPattern.LUNGE, MovementPattern.SQUAT],
    "deadlift": [MovementPattern.HINGE],
    "good morning": [MovementPattern.HINGE],
    "hip thrust": [MovementPattern.HINGE],
    "lunge": [MovementPattern.LUNGE],
    "step-up": [MovementPattern.LUNGE],
    "bench press": [MovementPattern.PUSH],
    "overhead press": [MovementPattern.PUSH],
    "push-up": [MovementPattern.PUSH],
    "dip": [MovementPattern.PUSH],
    "pull-up": [MovementPattern.PULL],
    "row": [MovementPattern.PULL],
    "pulldown": [MovementPattern.PULL],
    "carry": [MovementPattern.CARRY, MovementPattern.LOCOMOTION],
    "plank": [MovementPattern.ANTI_ROTATION],
    "dead bug": [MovementPattern.ANTI_ROTATION],
    "russian twist": [MovementPattern.ROTATION],
    "running": [MovementPattern.LOCOMOTION],
    "jog": [MovementPattern.LOCOMOTION],
    "stretch": [MovementPattern.STRETCH],
}


MOVEMENT_JOINT_ACTIONS = {
    MovementPattern.SQUAT: {
        "hip": [JointAction.FLEXION, JointAction.EXTENSION],
        "knee": [JointAction.FLEXION, JointAction.EXTENSION],
        "ankle": [JointAction.DORSIFLEXION, JointAction.PLANTARFLEXION],
    },
    MovementPattern.HINGE: {
        "hip": [JointAction.FLEXION, JointAction.EXTENSION],
        "spine": [JointAction.EXTENSION],  # Maintaining neutral
    },
    MovementPattern.LUNGE: {
        "hip": [JointAction.FLEXION, JointAction.EXTENSION],
        "knee": [JointAction.FLEXION, JointAction.EXTENSION],
        "ankle": [JointAction.DORSIFLEXION],
    },
    MovementPattern.PUSH: {
        "shoulder": [JointAction.FLEXION, JointAction.HORIZONTAL_ADDUCTION],
        "elbow": [JointAction.EXTENSION],
        "scapula": [JointAction.PROTRACTION],
    },
    MovementPattern.PULL: {
        "shoulder": [JointAction.EXTENSION, JointAction.ADDUCTION],
        "elbow": [JointAction.FLEXION],
        "scapula": [JointAction.RETRACTION],
    },
    MovementPattern.CARRY: {
        "shoulder": [JointAction.ELEVATION],
        "scapula": [JointAction.ELEVATION],
    },
    MovementPattern.ROTATION: {
        "spine": [JointAction.INTERNAL_ROTATION, JointAction.EXTERNAL_ROTATION],
    },
    MovementPattern.LOCOMOTION: {
        "knee": [JointAction.EXTENSION],
        "ankle": [JointAction.PLANTARFLEXION],
    },
}


# Body part mentioned in the intake -> which joint actions to keep out of the plan.
# avoid_keywords catches exercises whose pattern alone doesn't show the risk.
INJURY_CONTRAINDICATIONS = {
    "knee": {
        "joint": "knee",
        "avoid_actions": [JointAction.FLEXION],  # Loaded deep flexion
        "avoid_keywords": ["squat", "lunge", "step-up", "leg extension", "jump", "pistol"],
    },
    "shoulder": {
        "joint": "shoulder",
        "avoid_actions": [JointAction.ELEVATION],
        "avoid_keywords": ["overhead", "shoulder press", "military press", "upright row",
                           "handstand", "arnold press"],
    },
    "back": {
        "joint": "spine",
        "avoid_actions": [JointAction.INTERNAL_ROTATION, JointAction.EXTERNAL_ROTATION],
        "avoid_keywords": ["deadlift", "good morning", "bent-over", "back extension"],
    },
    "wrist": {
        "joint": "wrist",
        "avoid_actions": [],
        "avoid_keywords": ["front squat", "handstand", "burpee", "clean"],
    },
    "ankle": {
        "joint": "ankle",
        "avoid_actions": [JointAction.DORSIFLEXION, JointAction.PLANTARFLEXION],
        "avoid_keywords": ["jump", "running", "jog", "skipping", "calf raise", "box"],
    },
    "hip": {
        "joint": "hip",
        "avoid_actions": [JointAction.FLEXION],
        "avoid_keywords": ["hip thrust", "mountain climber"],
    },
    "elbow": {
        "joint": "elbow",
        "avoid_actions": [],  # Resisted extension only, matched by name
        "avoid_keywords": ["skull crusher", "dip", "tricep extension", "close-grip"],
    },
    "neck": {
        "joint": "neck",
        "avoid_actions": [],
        "avoid_keywords": ["shrug", "behind the neck", "headstand", "neck"],
    },
}

# Free-text phrases that point at a body part in INJURY_CONTRAINDICATIONS
INJURY_SYNONYMS = {
    "knee": ["knee", "acl", "mcl", "meniscus", "patella"],
    "shoulder": ["shoulder", "rotator cuff", "impingement"],
    "back": ["back", "spine", "lumbar", "herniated", "sciatica"],
    "wrist": ["wrist", "carpal"],
    "ankle": ["ankle", "achilles"],
    "hip": ["hip"],
    "elbow": ["elbow", "tennis elbow", "golfer"],
    "neck": ["neck", "cervical"],
}


def get_movement_patterns_for_exercise(exercise_name: str) -> List[MovementPattern]:
    """
    Get movement patterns for an exercise based on name matching.

    Args:
        exercise_name: Exercise name

    Returns:
        List of MovementPattern enums
    """
    exercise_lower = exercise_name.lower()

    if exercise_lower in EXERCISE_MOVEMENT_PATTERNS:
        return list(EXERCISE_MOVEMENT_PATTERNS[exercise_lower])

    patterns = []
    for key, value in EXERCISE_MOVEMENT_PATTERNS.items():
        if key in exercise_lower:
            for pattern in value:
                if pattern not in patterns:
                    patterns.append(pattern)

    return patterns


def resolve_patterns(movement_pattern: str, exercise_name: str) -> List[MovementPattern]:
    """Tagged pattern plus anything implied by the name."""
    patterns = []
    try:
        patterns.append(MovementPattern(movement_pattern))
    except ValueError:
        pass
    for pattern in get_movement_patterns_for_exercise(exercise_name):
        if pattern not in patterns:
            patterns.append(pattern)
    return patterns


def forbidden_patterns(body_part: str) -> Set[MovementPattern]:
    """
    Movement patterns that load a contraindicated joint action.

    Args:
        body_part: Key of INJURY_CONTRAINDICATIONS

    Returns:
        Set of MovementPattern enums to avoid
    """
    contraindication = INJURY_CONTRAINDICATIONS.get(body_part)
    if not contraindication:
        return set()

    joint = contraindication["joint"]
    avoid_actions = set(contraindication["avoid_actions"])

    forbidden = set()
    for pattern, joint_actions in MOVEMENT_JOINT_ACTIONS.items():
        if avoid_actions & set(joint_actions.get(joint, [])):
            forbidden.add(pattern)
    return forbidden


def detect_injury_sites(text: str) -> List[str]:
    """Body parts mentioned in free-text injury notes, in table order."""
    if not text:
        return []
    text_lower = text.lower()
    if text_lower.strip() in ("none", "no", "n/a", "nope"):
        return []
    return [
        body_part for body_part, synonyms in INJURY_SYNONYMS.items()
        if any(s in text_lower for s in synonyms)
    ]


def is_contraindicated(
    exercise_name: str,
    movement_pattern: str,
    body_parts: Iterable[str]
) -> bool:
    """
    Check whether an exercise should be kept away from the given injuries.

    Args:
        exercise_name: Exercise name
        movement_pattern: Tagged movement pattern value
        body_parts: Injured body parts (keys of INJURY_CONTRAINDICATIONS)

    Returns:
        True if the exercise stresses an injured area
    """
    name_lower = exercise_name.lower()
    patterns = set(resolve_patterns(movement_pattern, exercise_name))

    for body_part in body_parts:
        if patterns & forbidden_patterns(body_part):
            return True
        keywords = INJURY_CONTRAINDICATIONS.get(body_part, {}).get("avoid_keywords", [])
        if any(k in name_lower for k in keywords):
            return True
    return False


def injury_warnings(body_parts: Iterable[str]) -> Dict[str, List[str]]:
    """Human-readable summary of what each injury rules out."""
    return {
        body_part: sorted(p.value for p in forbidden_patterns(body_part))
        for body_part in body_parts
    }
