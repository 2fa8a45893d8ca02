"""
Error taxonomy for the program engine.

None of these are meant to reach callers of the public operations: each
is raised and recovered at the seam where it occurs (safe default,
clamp, no-op) and logged.
"""


class VitalityError(Exception):
    """Base class for engine errors."""


class EmptyPoolError(VitalityError):
    """No exercises remain after filtering the catalog."""


class MalformedRequestError(VitalityError, ValueError):
    """A training request field is out of range or unparseable."""

    def __init__(self, field: str, value, message: str = ""):
        self.field = field
        self.value = value
        super().__init__(message or f"Invalid {field}: {value!r}")


class AdaptationApplyConflict(VitalityError):
    """An adaptation refers to an exercise or field that is no longer in the plan."""

    def __init__(self, adaptation_id: str, message: str = ""):
        self.adaptation_id = adaptation_id
        super().__init__(message or f"Adaptation {adaptation_id} does not match the current plan")
