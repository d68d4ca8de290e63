"""Service layer for bankability assessments.

Builds assessment records from submitted forms and applies assessor review
actions. Records are returned to the caller for persistence; nothing here
stores them.
"""

import random
from collections.abc import Mapping
from datetime import datetime, timezone

import structlog

from abfi.core.config import settings
from abfi.modules.bankability.engine import (
    aggregate_supply_position,
    classify_rating,
    compute_composite,
    validate_pillar_score,
)
from abfi.modules.bankability.enums import AssessmentStatus, Pillar, ReviewAction
from abfi.modules.bankability.exceptions import (
    BankabilityError,
    IncompleteAssessmentError,
    InconsistentAssessmentError,
    InvalidStatusTransitionError,
    PillarScoreOutOfRangeError,
    ReviewNotesRequiredError,
)
from abfi.modules.bankability.pillars import (
    build_concentration_data,
    build_supply_position,
    calculate_bankability_scores,
    supplier_hhi,
    weighted_average_grower_qualification,
    weighted_average_term,
)
from abfi.modules.bankability.schemas import (
    AssessmentRecord,
    AssessmentSubmission,
    PillarScores,
    ScoreAdjustment,
    ScoreChange,
    ScoreProjectRequest,
    ScoreProjectResponse,
)

logger = structlog.get_logger()

DEFAULT_APPROVAL_NOTE = "Assessment approved without modifications"

# action -> (allowed source statuses, target status)
_TRANSITIONS: dict[ReviewAction, tuple[frozenset[AssessmentStatus], AssessmentStatus]] = {
    ReviewAction.SUBMIT: (frozenset({AssessmentStatus.DRAFT}), AssessmentStatus.SUBMITTED),
    ReviewAction.START_REVIEW: (
        frozenset({AssessmentStatus.SUBMITTED}),
        AssessmentStatus.UNDER_REVIEW,
    ),
    ReviewAction.APPROVE: (
        frozenset({AssessmentStatus.UNDER_REVIEW}),
        AssessmentStatus.APPROVED,
    ),
    ReviewAction.REJECT: (
        frozenset({AssessmentStatus.UNDER_REVIEW}),
        AssessmentStatus.REJECTED,
    ),
    ReviewAction.REOPEN: (frozenset({AssessmentStatus.REJECTED}), AssessmentStatus.DRAFT),
}

_PILLAR_RECORD_FIELDS: dict[Pillar, str] = {p: f"{p.value}_score" for p in Pillar}


def split_lines(text: str | None) -> list[str] | None:
    """Newline-delimited form text -> stripped non-empty lines (None if empty)."""
    if not text:
        return None
    lines = [line.strip() for line in text.splitlines() if line.strip()]
    return lines or None


def generate_assessment_number(
    year: int | None = None,
    rng: random.Random | None = None,
    prefix: str | None = None,
) -> str:
    """e.g. ``ABFI-BANK-2025-04821``."""
    year = year or datetime.now(timezone.utc).year
    rng = rng or random.Random()
    prefix = prefix or settings.ASSESSMENT_NUMBER_PREFIX
    return f"{prefix}-{year}-{rng.randrange(100_000):05d}"


def build_assessment(
    submission: AssessmentSubmission,
    assessment_number: str | None = None,
) -> AssessmentRecord:
    """Turn a submitted assessment form into a record for persistence."""
    missing = submission.pillars.missing()
    if missing:
        raise IncompleteAssessmentError(missing)

    pillars = PillarScores(**submission.pillars.model_dump())
    composite = compute_composite(pillars)
    band = classify_rating(composite)
    supply = aggregate_supply_position(submission.agreements, submission.nameplate_capacity)
    assessment_date = submission.assessment_date or datetime.now(timezone.utc)

    record = AssessmentRecord(
        assessment_number=assessment_number
        or generate_assessment_number(year=assessment_date.year),
        project_id=submission.project_id,
        assessment_date=assessment_date,
        **{_PILLAR_RECORD_FIELDS[p]: pillars.get(p) for p in Pillar},
        composite_score=composite,
        rating=band.rating,
        rating_description=band.description,
        **supply.model_dump(),
        strengths=split_lines(submission.strengths),
        monitoring_items=split_lines(submission.monitoring_items),
        status=AssessmentStatus.DRAFT if submission.as_draft else AssessmentStatus.SUBMITTED,
    )

    logger.info(
        "bankability_assessment_built",
        project_id=submission.project_id,
        assessment_number=record.assessment_number,
        composite_score=composite,
        rating=band.rating.value,
        status=record.status.value,
    )
    return record


def verify_derived_scores(record: AssessmentRecord) -> None:
    """Check composite and rating against the record's own pillar scores."""
    composite = compute_composite(record.pillar_scores())
    if record.composite_score != composite:
        raise InconsistentAssessmentError("composite_score", composite, record.composite_score)
    band = classify_rating(composite)
    if record.rating != band.rating:
        raise InconsistentAssessmentError("rating", band.rating.value, record.rating.value)
    if record.rating_description != band.description:
        raise InconsistentAssessmentError(
            "rating_description", band.description, record.rating_description
        )


def _adjust_scores(
    record: AssessmentRecord,
    overrides: Mapping[Pillar | str, int] | None,
    reason: str | None,
    now: datetime,
) -> AssessmentRecord:
    if record.status != AssessmentStatus.UNDER_REVIEW:
        raise InvalidStatusTransitionError(record.status.value, ReviewAction.ADJUST_SCORES.value)
    if not overrides:
        raise BankabilityError("No score adjustments supplied")

    current = record.pillar_scores()
    updates: dict[Pillar, int] = {}
    for key, value in overrides.items():
        try:
            pillar = Pillar(key)
        except ValueError:
            raise PillarScoreOutOfRangeError(str(key), value) from None
        updates[pillar] = validate_pillar_score(pillar, value)

    changes = [
        ScoreChange(pillar=p, previous_score=current.get(p), new_score=score)
        for p, score in updates.items()
        if current.get(p) != score
    ]
    if not changes:
        logger.info(
            "bankability_scores_unchanged",
            assessment_number=record.assessment_number,
            pillars=[p.value for p in updates],
        )
        return record

    adjusted = current.model_copy(update={p.value: s for p, s in updates.items()})
    composite = compute_composite(adjusted)
    band = classify_rating(composite)

    adjustment = ScoreAdjustment(
        changes=changes,
        reason=reason,
        previous_composite=record.composite_score,
        new_composite=composite,
        adjusted_at=now,
    )

    logger.info(
        "bankability_scores_adjusted",
        assessment_number=record.assessment_number,
        pillars=[c.pillar.value for c in changes],
        previous_composite=record.composite_score,
        new_composite=composite,
        rating=band.rating.value,
    )

    return record.model_copy(
        update={
            **{_PILLAR_RECORD_FIELDS[p]: s for p, s in updates.items()},
            "composite_score": composite,
            "rating": band.rating,
            "rating_description": band.description,
            "score_adjustments": [*record.score_adjustments, adjustment],
        }
    )


def apply_review(
    record: AssessmentRecord,
    action: ReviewAction,
    *,
    notes: str | None = None,
    overrides: Mapping[Pillar | str, int] | None = None,
    reason: str | None = None,
    now: datetime | None = None,
) -> AssessmentRecord:
    """Apply one assessor workflow action, returning a new record."""
    now = now or datetime.now(timezone.utc)
    action = ReviewAction(action)
    verify_derived_scores(record)

    if action == ReviewAction.ADJUST_SCORES:
        return _adjust_scores(record, overrides, reason, now)

    allowed, target = _TRANSITIONS[action]
    if record.status not in allowed:
        raise InvalidStatusTransitionError(record.status.value, action.value)
    if action == ReviewAction.REJECT and not (notes and notes.strip()):
        raise ReviewNotesRequiredError(action.value)

    update: dict = {"status": target}
    if action == ReviewAction.APPROVE:
        update["reviewer_notes"] = notes or DEFAULT_APPROVAL_NOTE
    elif notes is not None:
        update["reviewer_notes"] = notes

    logger.info(
        "bankability_assessment_status_changed",
        assessment_number=record.assessment_number,
        action=action.value,
        from_status=record.status.value,
        to_status=target.value,
    )
    return record.model_copy(update=update)


def score_project(request: ScoreProjectRequest) -> ScoreProjectResponse:
    """Derive all five pillar scores from a project's agreements and operations."""
    position = build_supply_position(
        request.agreements, request.nameplate_capacity, request.debt_tenor
    )
    concentration = build_concentration_data(request.agreements, request.climate_zones)
    scores = calculate_bankability_scores(position, concentration, request.operational)
    total_volume = sum(concentration.supplier_volumes.values())

    logger.info(
        "bankability_project_scored",
        agreements=len(request.agreements),
        composite_score=scores.composite_score,
        rating=scores.rating.value,
    )

    return ScoreProjectResponse(
        **scores.model_dump(),
        supply=aggregate_supply_position(request.agreements, request.nameplate_capacity),
        supplier_hhi=supplier_hhi(concentration.supplier_volumes, total_volume),
        weighted_average_term=weighted_average_term(request.agreements),
        weighted_average_grower_qualification=weighted_average_grower_qualification(
            request.agreements
        ),
    )
