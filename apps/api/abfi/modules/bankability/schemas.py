"""Bankability Pydantic schemas.

Field names are snake_case in Python and camelCase on the wire, matching the
column names of the persisted assessment record (``tier1Volume``,
``compositeScore``, ...).
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from abfi.modules.bankability.enums import (
    AssessmentStatus,
    ContingencyPlanning,
    Pillar,
    PlatformIntegration,
    PricingMechanism,
    QASystemStatus,
    Rating,
    ReviewAction,
    Tier,
)


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class FrozenCamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, frozen=True
    )


# ── Pillar scores ────────────────────────────────────────────────────────────


class PillarScores(FrozenCamelModel):
    """Five assessed pillar scores, each an integer in [0, 100]."""

    volume_security: int = Field(ge=0, le=100)
    counterparty_quality: int = Field(ge=0, le=100)
    contract_structure: int = Field(ge=0, le=100)
    concentration_risk: int = Field(ge=0, le=100)
    operational_readiness: int = Field(ge=0, le=100)

    def get(self, pillar: Pillar) -> int:
        return getattr(self, pillar.value)


class PillarInputs(CamelModel):
    """Pillar scores as entered on the assessment form; ``None`` = not yet scored."""

    volume_security: int | None = Field(default=None, ge=0, le=100)
    counterparty_quality: int | None = Field(default=None, ge=0, le=100)
    contract_structure: int | None = Field(default=None, ge=0, le=100)
    concentration_risk: int | None = Field(default=None, ge=0, le=100)
    operational_readiness: int | None = Field(default=None, ge=0, le=100)

    def missing(self) -> list[str]:
        return [p.value for p in Pillar if getattr(self, p.value) is None]


# ── Rating ───────────────────────────────────────────────────────────────────


class RatingBandResponse(CamelModel):
    rating: Rating
    min_score: int
    description: str


class PillarWeightResponse(CamelModel):
    pillar: Pillar
    name: str
    weight: float
    description: str


class CompositeResponse(CamelModel):
    composite_score: int
    rating: Rating
    rating_description: str


# ── Supply position ──────────────────────────────────────────────────────────


class Agreement(FrozenCamelModel):
    """A supply agreement as returned by the project agreements API."""

    tier: Tier
    annual_volume: float | None = Field(default=None, ge=0)


class SupplyMetrics(CamelModel):
    tier1_volume: float = 0
    tier1_percent: int = 0
    tier2_volume: float = 0
    tier2_percent: int = 0
    options_volume: float = 0
    options_percent: int = 0
    rofr_volume: float = 0
    rofr_percent: int = 0
    total_agreements: int = 0


class SupplyPositionRequest(CamelModel):
    agreements: list[Agreement] = Field(default_factory=list)
    nameplate_capacity: float


# ── Detailed pillar scoring ──────────────────────────────────────────────────


class ScoringAgreement(Agreement):
    """Supply agreement with the contract terms used to derive pillar scores."""

    annual_volume: float = Field(default=0, ge=0)
    term_years: float = Field(default=0, ge=0)
    pricing_mechanism: PricingMechanism = PricingMechanism.OTHER
    lender_step_in_rights: bool = False
    early_termination_notice_days: int = Field(default=0, ge=0)
    lender_consent_required: bool = False
    force_majeure_volume_reduction_cap: float | None = None
    grower_qualification: int = Field(default=4, ge=1, le=4)  # GQ1 (best) .. GQ4
    bank_guarantee_percent: float | None = None
    supplier_id: int


class SupplyPosition(CamelModel):
    nameplate_capacity: float
    tier1_volume: float = 0
    tier2_volume: float = 0
    options_volume: float = 0
    rofr_volume: float = 0
    debt_tenor: float  # years
    agreements: list[ScoringAgreement] = Field(default_factory=list)


class ConcentrationData(CamelModel):
    supplier_volumes: dict[int, float] = Field(default_factory=dict)
    climate_zones: int = Field(default=1, ge=0)
    # Derived from supplier_volumes when omitted
    total_volume: float | None = None
    largest_supplier_volume: float | None = None


class OperationalData(CamelModel):
    logistics_contracted: bool = False
    logistics_tested: bool = False
    qa_system_status: QASystemStatus = QASystemStatus.PLANNING
    abfi_integration: PlatformIntegration = PlatformIntegration.NONE
    contingency_plans: ContingencyPlanning = ContingencyPlanning.NONE


class BankabilityScores(CamelModel):
    pillars: PillarScores
    composite_score: int
    rating: Rating
    rating_description: str


class ScoreProjectRequest(CamelModel):
    nameplate_capacity: float
    debt_tenor: float
    climate_zones: int = Field(default=1, ge=0)
    agreements: list[ScoringAgreement] = Field(default_factory=list)
    operational: OperationalData = Field(default_factory=OperationalData)


class ScoreProjectResponse(BankabilityScores):
    supply: SupplyMetrics
    supplier_hhi: int
    weighted_average_term: float
    weighted_average_grower_qualification: float


# ── Assessment records ───────────────────────────────────────────────────────


class AssessmentSubmission(CamelModel):
    project_id: int
    nameplate_capacity: float
    pillars: PillarInputs
    agreements: list[Agreement] = Field(default_factory=list)
    strengths: str | None = None  # one per line
    monitoring_items: str | None = None  # one per line
    assessment_date: datetime | None = None
    as_draft: bool = False


class ScoreChange(FrozenCamelModel):
    pillar: Pillar
    previous_score: int
    new_score: int


class ScoreAdjustment(FrozenCamelModel):
    changes: list[ScoreChange]
    reason: str | None = None
    previous_composite: int
    new_composite: int
    adjusted_at: datetime


class AssessmentRecord(FrozenCamelModel):
    """A bankability assessment ready to be written by the persistence layer."""

    assessment_number: str
    project_id: int
    assessment_date: datetime
    volume_security_score: int = Field(ge=0, le=100)
    counterparty_quality_score: int = Field(ge=0, le=100)
    contract_structure_score: int = Field(ge=0, le=100)
    concentration_risk_score: int = Field(ge=0, le=100)
    operational_readiness_score: int = Field(ge=0, le=100)
    composite_score: int = Field(ge=0, le=100)
    rating: Rating
    rating_description: str
    tier1_volume: float = 0
    tier1_percent: int = 0
    tier2_volume: float = 0
    tier2_percent: int = 0
    options_volume: float = 0
    options_percent: int = 0
    rofr_volume: float = 0
    rofr_percent: int = 0
    total_agreements: int = 0
    strengths: list[str] | None = None
    monitoring_items: list[str] | None = None
    status: AssessmentStatus = AssessmentStatus.SUBMITTED
    reviewer_notes: str | None = None
    score_adjustments: list[ScoreAdjustment] = Field(default_factory=list)

    def pillar_scores(self) -> PillarScores:
        return PillarScores(
            volume_security=self.volume_security_score,
            counterparty_quality=self.counterparty_quality_score,
            contract_structure=self.contract_structure_score,
            concentration_risk=self.concentration_risk_score,
            operational_readiness=self.operational_readiness_score,
        )


class ReviewRequest(CamelModel):
    record: AssessmentRecord
    action: ReviewAction
    notes: str | None = None
    overrides: dict[Pillar, int] | None = None
    reason: str | None = None
