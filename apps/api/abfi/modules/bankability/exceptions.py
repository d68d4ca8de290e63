"""Bankability exceptions."""

from typing import Any


class BankabilityError(Exception):
    """Base exception for all bankability errors."""

    def __init__(self, message: str, **context: Any) -> None:
        self.message = message
        self.context = context
        super().__init__(message)


class PillarScoreOutOfRangeError(BankabilityError):
    """A pillar score is missing a numeric value or lies outside [0, 100]."""

    def __init__(self, pillar: str, value: Any) -> None:
        self.pillar = pillar
        self.value = value
        super().__init__(
            f"Pillar score '{pillar}' must be an integer between 0 and 100, got {value!r}",
            pillar=pillar,
            value=value,
        )


class CompositeScoreOutOfRangeError(BankabilityError):
    """A composite score outside [0, 100] cannot be classified."""

    def __init__(self, value: Any) -> None:
        self.value = value
        super().__init__(
            f"Composite score must be an integer between 0 and 100, got {value!r}",
            value=value,
        )


class InvalidWeightTableError(BankabilityError):
    """Weight table does not cover the five pillars or does not sum to 1.0."""


class InvalidCapacityError(BankabilityError):
    """Nameplate capacity must be positive to compute coverage percentages."""

    def __init__(self, capacity: Any) -> None:
        self.capacity = capacity
        super().__init__(
            f"Nameplate capacity must be greater than zero, got {capacity!r}",
            capacity=capacity,
        )


class IncompleteAssessmentError(BankabilityError):
    """An assessment was submitted before every pillar was scored."""

    def __init__(self, missing: list[str]) -> None:
        self.missing = missing
        super().__init__(
            f"Please provide scores for all criteria (missing: {', '.join(missing)})",
            missing=missing,
        )


class InvalidStatusTransitionError(BankabilityError):
    """Review action is not allowed from the assessment's current status."""

    def __init__(self, current: str, action: str) -> None:
        self.current = current
        self.action = action
        super().__init__(
            f"Cannot {action} an assessment with status '{current}'",
            current=current,
            action=action,
        )


class ReviewNotesRequiredError(BankabilityError):
    """A review action that needs a written reason was given none."""

    def __init__(self, action: str) -> None:
        self.action = action
        super().__init__(
            f"A reason is required to {action} an assessment",
            action=action,
        )


class InconsistentAssessmentError(BankabilityError):
    """A record's derived fields disagree with its pillar scores."""

    def __init__(self, field: str, expected: Any, actual: Any) -> None:
        self.field = field
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Assessment {field} {actual!r} does not match its pillar scores (expected {expected!r})",
            field=field,
            expected=expected,
            actual=actual,
        )
