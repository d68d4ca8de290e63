"""Bankability criteria: the five weighted pillars and the rating scale."""

from dataclasses import dataclass
from types import MappingProxyType

from abfi.modules.bankability.enums import Pillar, Rating


@dataclass(frozen=True)
class PillarDefinition:
    """A scored dimension of a bankability assessment."""

    id: Pillar
    name: str
    weight: float
    description: str


@dataclass(frozen=True)
class RatingBand:
    """A letter rating with its inclusive lower bound on the composite score."""

    rating: Rating
    min_score: int
    description: str


# ── Pillars ──────────────────────────────────────────────────────────────────

PILLARS: tuple[PillarDefinition, ...] = (
    PillarDefinition(
        id=Pillar.VOLUME_SECURITY,
        name="Volume Security",
        weight=0.30,
        description="Contracted primary and secondary supply against nameplate capacity, and contract terms against debt tenor.",
    ),
    PillarDefinition(
        id=Pillar.COUNTERPARTY_QUALITY,
        name="Counterparty Quality",
        weight=0.25,
        description="Grower qualifications, financial strength, track record and security packages.",
    ),
    PillarDefinition(
        id=Pillar.CONTRACT_STRUCTURE,
        name="Contract Structure",
        weight=0.20,
        description="Pricing mechanisms, termination protection, force majeure caps and lender step-in rights.",
    ),
    PillarDefinition(
        id=Pillar.CONCENTRATION_RISK,
        name="Concentration Risk",
        weight=0.15,
        description="Supplier concentration (HHI), top supplier exposure and geographic diversity.",
    ),
    PillarDefinition(
        id=Pillar.OPERATIONAL_READINESS,
        name="Operational Readiness",
        weight=0.10,
        description="Logistics, quality assurance, platform integration and contingency planning.",
    ),
)

PILLARS_BY_ID: MappingProxyType = MappingProxyType({p.id: p for p in PILLARS})

WEIGHT_TABLE: MappingProxyType = MappingProxyType({p.id: p.weight for p in PILLARS})


# ── Rating scale (descending) ────────────────────────────────────────────────

RATING_BANDS: tuple[RatingBand, ...] = (
    RatingBand(Rating.AAA, 90, "Exceptional bankability"),
    RatingBand(Rating.AA, 85, "Very strong bankability"),
    RatingBand(Rating.A, 80, "Strong bankability"),
    RatingBand(Rating.BBB, 70, "Good bankability"),
    RatingBand(Rating.BB, 60, "Adequate bankability"),
    RatingBand(Rating.B, 50, "Marginal bankability"),
    RatingBand(Rating.CCC, 0, "Weak bankability"),
)

RATING_BANDS_BY_RATING: MappingProxyType = MappingProxyType(
    {band.rating: band for band in RATING_BANDS}
)

MIN_SCORE = 0
MAX_SCORE = 100
