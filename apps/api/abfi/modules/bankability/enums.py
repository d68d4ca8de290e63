"""Enumerations for the bankability module."""

import enum


# ── Scoring ──────────────────────────────────────────────────────────────────


class Pillar(str, enum.Enum):
    VOLUME_SECURITY = "volume_security"
    COUNTERPARTY_QUALITY = "counterparty_quality"
    CONTRACT_STRUCTURE = "contract_structure"
    CONCENTRATION_RISK = "concentration_risk"
    OPERATIONAL_READINESS = "operational_readiness"


class Rating(str, enum.Enum):
    AAA = "AAA"
    AA = "AA"
    A = "A"
    BBB = "BBB"
    BB = "BB"
    B = "B"
    CCC = "CCC"


# ── Supply agreements ────────────────────────────────────────────────────────


class Tier(str, enum.Enum):
    TIER1 = "tier1"
    TIER2 = "tier2"
    OPTION = "option"
    ROFR = "rofr"


class PricingMechanism(str, enum.Enum):
    FIXED = "fixed"
    FIXED_WITH_ESCALATION = "fixed_with_escalation"
    INDEX_WITH_FLOOR_CEILING = "index_with_floor_ceiling"
    INDEX_LINKED = "index_linked"
    SPOT_REFERENCE = "spot_reference"
    OTHER = "other"


# ── Operational readiness ────────────────────────────────────────────────────


class QASystemStatus(str, enum.Enum):
    OPERATIONAL = "operational"
    IMPLEMENTATION = "implementation"
    DESIGNED = "designed"
    PLANNING = "planning"


class PlatformIntegration(str, enum.Enum):
    FULL = "full"
    PARTIAL = "partial"
    MANUAL = "manual"
    NONE = "none"


class ContingencyPlanning(str, enum.Enum):
    COMPREHENSIVE = "comprehensive"
    BASIC = "basic"
    LIMITED = "limited"
    NONE = "none"


# ── Assessment workflow ──────────────────────────────────────────────────────


class AssessmentStatus(str, enum.Enum):
    DRAFT = "draft"
    SUBMITTED = "submitted"
    UNDER_REVIEW = "under_review"
    APPROVED = "approved"
    REJECTED = "rejected"


class ReviewAction(str, enum.Enum):
    SUBMIT = "submit"
    START_REVIEW = "start_review"
    APPROVE = "approve"
    REJECT = "reject"
    REOPEN = "reopen"
    ADJUST_SCORES = "adjust_scores"
