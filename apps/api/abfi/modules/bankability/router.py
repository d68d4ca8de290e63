"""Bankability API router.

Stateless scoring endpoints: every response is computed from the request
body. Assessment records are returned for the caller to persist.
"""

from fastapi import APIRouter, status

from abfi.modules.bankability import service
from abfi.modules.bankability.criteria import PILLARS, RATING_BANDS
from abfi.modules.bankability.engine import (
    aggregate_supply_position,
    classify_rating,
    compute_composite,
)
from abfi.modules.bankability.schemas import (
    AssessmentRecord,
    AssessmentSubmission,
    CompositeResponse,
    PillarScores,
    PillarWeightResponse,
    RatingBandResponse,
    ReviewRequest,
    ScoreProjectRequest,
    ScoreProjectResponse,
    SupplyMetrics,
    SupplyPositionRequest,
)

router = APIRouter(prefix="/bankability", tags=["bankability"])


# ── Reference tables ────────────────────────────────────────────────────────


@router.get("/rating-bands", response_model=list[RatingBandResponse])
async def list_rating_bands():
    return [
        RatingBandResponse(rating=b.rating, min_score=b.min_score, description=b.description)
        for b in RATING_BANDS
    ]


@router.get("/weights", response_model=list[PillarWeightResponse])
async def list_weights():
    return [
        PillarWeightResponse(pillar=p.id, name=p.name, weight=p.weight, description=p.description)
        for p in PILLARS
    ]


# ── Scoring ─────────────────────────────────────────────────────────────────


@router.post("/composite", response_model=CompositeResponse)
async def composite_score(body: PillarScores):
    """Composite score and rating for five assessor-entered pillar scores."""
    composite = compute_composite(body)
    band = classify_rating(composite)
    return CompositeResponse(
        composite_score=composite,
        rating=band.rating,
        rating_description=band.description,
    )


@router.get("/rating/{composite}", response_model=RatingBandResponse)
async def rating_for_score(composite: int):
    band = classify_rating(composite)
    return RatingBandResponse(
        rating=band.rating, min_score=band.min_score, description=band.description
    )


@router.post("/supply-position", response_model=SupplyMetrics)
async def supply_position(body: SupplyPositionRequest):
    """Tier volumes and coverage percentages against nameplate capacity."""
    return aggregate_supply_position(body.agreements, body.nameplate_capacity)


@router.post("/score", response_model=ScoreProjectResponse)
async def score_project(body: ScoreProjectRequest):
    """Derive the five pillar scores from agreement and operational data."""
    return service.score_project(body)


# ── Assessments ─────────────────────────────────────────────────────────────


@router.post(
    "/assessments",
    response_model=AssessmentRecord,
    status_code=status.HTTP_201_CREATED,
)
async def create_assessment(body: AssessmentSubmission):
    """Build a submitted (or draft) assessment record from the form payload."""
    return service.build_assessment(body)


@router.post("/assessments/review", response_model=AssessmentRecord)
async def review_assessment(body: ReviewRequest):
    """Apply an assessor action (start review, approve, reject, adjust scores)."""
    return service.apply_review(
        body.record,
        body.action,
        notes=body.notes,
        overrides=body.overrides,
        reason=body.reason,
    )
