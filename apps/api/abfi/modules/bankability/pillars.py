"""Pillar score derivation from supply-agreement and project data.

Each calculator returns a float in [0, 100] built from banded sub-scores.
``calculate_bankability_scores`` rounds them into ``PillarScores`` and runs
the same composite and rating logic as assessor-entered scores.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence

from abfi.modules.bankability.engine import (
    aggregate_supply_position,
    classify_rating,
    compute_composite,
    round_half_up,
    round_one_decimal,
)
from abfi.modules.bankability.enums import (
    ContingencyPlanning,
    PlatformIntegration,
    PricingMechanism,
    QASystemStatus,
    Tier,
)
from abfi.modules.bankability.exceptions import InvalidCapacityError
from abfi.modules.bankability.schemas import (
    BankabilityScores,
    ConcentrationData,
    OperationalData,
    PillarScores,
    ScoringAgreement,
    SupplyPosition,
)

# (threshold, score) pairs, checked top-down with ">="
_PRIMARY_COVERAGE_BANDS = ((125, 100), (120, 90), (115, 75), (110, 60), (105, 40), (100, 20))
_SECONDARY_COVERAGE_BANDS = ((35, 100), (30, 90), (25, 75), (20, 60), (15, 40), (10, 20))

_PRICING_SCORES = {
    PricingMechanism.FIXED: 100,
    PricingMechanism.FIXED_WITH_ESCALATION: 100,
    PricingMechanism.INDEX_WITH_FLOOR_CEILING: 85,
    PricingMechanism.INDEX_LINKED: 70,
    PricingMechanism.SPOT_REFERENCE: 20,
}
_DEFAULT_PRICING_SCORE = 50

_QA_SCORES = {
    QASystemStatus.OPERATIONAL: 100,
    QASystemStatus.IMPLEMENTATION: 75,
    QASystemStatus.DESIGNED: 50,
    QASystemStatus.PLANNING: 25,
}
_INTEGRATION_SCORES = {
    PlatformIntegration.FULL: 100,
    PlatformIntegration.PARTIAL: 75,
    PlatformIntegration.MANUAL: 50,
    PlatformIntegration.NONE: 25,
}
_CONTINGENCY_SCORES = {
    ContingencyPlanning.COMPREHENSIVE: 100,
    ContingencyPlanning.BASIC: 70,
    ContingencyPlanning.LIMITED: 40,
    ContingencyPlanning.NONE: 20,
}

MIN_TIER1_GUARANTEE_PCT = 10
MIN_TIER2_GUARANTEE_PCT = 5


def _band(value: float, bands: Sequence[tuple[float, int]], default: int = 0) -> int:
    for threshold, score in bands:
        if value >= threshold:
            return score
    return default


def _total_volume(agreements: Sequence[ScoringAgreement]) -> float:
    return sum(a.annual_volume for a in agreements)


def _volume_weighted(values: Sequence[float], agreements: Sequence[ScoringAgreement]) -> float | None:
    """Volume-weighted mean of per-agreement values; None when no volume."""
    total = _total_volume(agreements)
    if total <= 0:
        return None
    return sum(v * a.annual_volume for v, a in zip(values, agreements)) / total


# ── Helpers ──────────────────────────────────────────────────────────────────


def supplier_hhi(supplier_volumes: Mapping[int, float], total_volume: float) -> int:
    """Herfindahl-Hirschman index of supplier market shares (0-10000)."""
    return round_half_up(_hhi(supplier_volumes, total_volume))


def _hhi(supplier_volumes: Mapping[int, float], total_volume: float) -> float:
    if total_volume <= 0:
        return 10_000.0
    return sum((volume / total_volume * 100) ** 2 for volume in supplier_volumes.values())


def weighted_average_term(agreements: Sequence[ScoringAgreement]) -> float:
    avg = _volume_weighted([a.term_years for a in agreements], agreements)
    return round_one_decimal(avg) if avg is not None else 0.0


def weighted_average_grower_qualification(agreements: Sequence[ScoringAgreement]) -> float:
    avg = _volume_weighted([a.grower_qualification for a in agreements], agreements)
    return round_one_decimal(avg) if avg is not None else 0.0


def build_supply_position(
    agreements: Iterable[ScoringAgreement],
    nameplate_capacity: float,
    debt_tenor: float,
) -> SupplyPosition:
    """Assemble a SupplyPosition with tier volumes summed from the agreements."""
    agreements = list(agreements)
    if not nameplate_capacity > 0:
        raise InvalidCapacityError(nameplate_capacity)
    metrics = aggregate_supply_position(agreements, nameplate_capacity)
    return SupplyPosition(
        nameplate_capacity=nameplate_capacity,
        tier1_volume=metrics.tier1_volume,
        tier2_volume=metrics.tier2_volume,
        options_volume=metrics.options_volume,
        rofr_volume=metrics.rofr_volume,
        debt_tenor=debt_tenor,
        agreements=agreements,
    )


def build_concentration_data(
    agreements: Iterable[ScoringAgreement], climate_zones: int
) -> ConcentrationData:
    supplier_volumes: dict[int, float] = {}
    for agreement in agreements:
        supplier_volumes[agreement.supplier_id] = (
            supplier_volumes.get(agreement.supplier_id, 0) + agreement.annual_volume
        )
    return ConcentrationData(supplier_volumes=supplier_volumes, climate_zones=climate_zones)


# ── Volume security (30%) ────────────────────────────────────────────────────


def _term_alignment_score(
    agreements: Sequence[ScoringAgreement], debt_tenor: float, primary_volume: float
) -> int:
    if all(a.term_years >= debt_tenor + 3 for a in agreements):
        return 100
    if all(a.term_years >= debt_tenor for a in agreements):
        return 80
    avg_term = _volume_weighted([a.term_years for a in agreements], agreements)
    if avg_term is not None and avg_term >= debt_tenor:
        return 60
    if any(
        a.term_years < debt_tenor and a.annual_volume < primary_volume * 0.2
        for a in agreements
    ):
        return 40
    return 0


def volume_security_score(position: SupplyPosition) -> float:
    capacity = position.nameplate_capacity
    if not capacity > 0:
        raise InvalidCapacityError(capacity)

    primary_volume = position.tier1_volume + position.tier2_volume
    primary_score = _band(primary_volume / capacity * 100, _PRIMARY_COVERAGE_BANDS)

    secondary_volume = position.options_volume + position.rofr_volume
    secondary_score = _band(secondary_volume / capacity * 100, _SECONDARY_COVERAGE_BANDS)

    term_score = _term_alignment_score(position.agreements, position.debt_tenor, primary_volume)

    return primary_score * 0.5 + secondary_score * 0.3 + term_score * 0.2


# ── Counterparty quality (25%) ───────────────────────────────────────────────


def counterparty_quality_score(agreements: Sequence[ScoringAgreement]) -> float:
    if not agreements:
        return 0.0

    # Lower GQ is better: GQ1 = 1 ... GQ4 = 4
    avg_gq = _volume_weighted([a.grower_qualification for a in agreements], agreements)
    if avg_gq is None:
        avg_gq_score = 40
    elif avg_gq <= 1.5:
        avg_gq_score = 100
    elif avg_gq <= 2.0:
        avg_gq_score = 85
    elif avg_gq <= 2.5:
        avg_gq_score = 70
    elif avg_gq <= 3.0:
        avg_gq_score = 55
    else:
        avg_gq_score = 40

    tier1 = [a for a in agreements if a.tier == Tier.TIER1]
    strong_tier1 = [a for a in tier1 if a.grower_qualification <= 2]
    if all(a.grower_qualification == 1 for a in tier1):
        tier1_score = 100
    elif len(strong_tier1) == len(tier1):
        tier1_score = 85
    elif len(strong_tier1) > len(tier1) / 2:
        tier1_score = 70
    else:
        tier1_score = 50

    secured = sum(
        1
        for a in agreements
        if (a.tier == Tier.TIER1 and (a.bank_guarantee_percent or 0) >= MIN_TIER1_GUARANTEE_PCT)
        or (a.tier == Tier.TIER2 and (a.bank_guarantee_percent or 0) >= MIN_TIER2_GUARANTEE_PCT)
    )
    secured_pct = secured / len(agreements) * 100
    if secured_pct == 100:
        security_score = 100
    elif secured_pct > 90:
        security_score = 80
    elif secured_pct > 80:
        security_score = 60
    else:
        security_score = 40

    return avg_gq_score * 0.4 + tier1_score * 0.35 + security_score * 0.25


# ── Contract structure (20%) ─────────────────────────────────────────────────


def _termination_score(agreement: ScoringAgreement) -> int:
    notice = agreement.early_termination_notice_days
    if agreement.lender_consent_required and notice >= 720:
        return 100
    if agreement.lender_consent_required and notice >= 360:
        return 85
    if notice >= 360:
        return 70
    if notice >= 180:
        return 50
    return 30


def _force_majeure_score(agreement: ScoringAgreement) -> int:
    cap = agreement.force_majeure_volume_reduction_cap
    if cap is None:
        return 25
    if cap <= 30:
        return 100
    if cap <= 50:
        return 75
    return 50


def contract_structure_score(agreements: Sequence[ScoringAgreement]) -> float:
    """Volume-weighted contract terms; agreements with no volume score 0."""
    if not agreements:
        return 0.0

    pricing = _volume_weighted(
        [_PRICING_SCORES.get(a.pricing_mechanism, _DEFAULT_PRICING_SCORE) for a in agreements],
        agreements,
    ) or 0.0
    termination = _volume_weighted([_termination_score(a) for a in agreements], agreements) or 0.0
    force_majeure = _volume_weighted([_force_majeure_score(a) for a in agreements], agreements) or 0.0

    step_in_pct = sum(1 for a in agreements if a.lender_step_in_rights) / len(agreements) * 100
    if step_in_pct == 100:
        step_in_score = 100
    elif step_in_pct >= 80:
        step_in_score = 70
    else:
        step_in_score = 40

    return pricing * 0.3 + termination * 0.3 + force_majeure * 0.2 + step_in_score * 0.2


# ── Concentration risk (15%) ─────────────────────────────────────────────────


def concentration_risk_score(data: ConcentrationData) -> float:
    volumes = data.supplier_volumes
    total = data.total_volume if data.total_volume is not None else sum(volumes.values())
    largest = (
        data.largest_supplier_volume
        if data.largest_supplier_volume is not None
        else max(volumes.values(), default=0)
    )

    # No contracted volume at all is treated as fully concentrated
    hhi = _hhi(volumes, total)
    largest_pct = largest / total * 100 if total > 0 else 100.0

    if hhi < 1000:
        hhi_score = 100
    elif hhi < 1500:
        hhi_score = 80
    elif hhi < 2000:
        hhi_score = 60
    elif hhi < 2500:
        hhi_score = 40
    else:
        hhi_score = 20

    if largest_pct < 15:
        top_score = 100
    elif largest_pct < 20:
        top_score = 80
    elif largest_pct < 25:
        top_score = 60
    elif largest_pct < 30:
        top_score = 40
    else:
        top_score = 20

    if data.climate_zones >= 4:
        geo_score = 100
    elif data.climate_zones == 3:
        geo_score = 80
    elif data.climate_zones == 2:
        geo_score = 60
    else:
        geo_score = 40

    # Worst single event is assumed to hit the largest supplier's volume
    if largest_pct <= 20:
        event_score = 100
    elif largest_pct <= 30:
        event_score = 70
    elif largest_pct <= 40:
        event_score = 50
    else:
        event_score = 25

    return hhi_score * 0.3 + top_score * 0.25 + geo_score * 0.25 + event_score * 0.2


# ── Operational readiness (10%) ──────────────────────────────────────────────


def operational_readiness_score(data: OperationalData) -> float:
    if data.logistics_contracted and data.logistics_tested:
        logistics_score = 100
    elif data.logistics_contracted:
        logistics_score = 80
    else:
        logistics_score = 60

    return (
        logistics_score * 0.3
        + _QA_SCORES[data.qa_system_status] * 0.3
        + _INTEGRATION_SCORES[data.abfi_integration] * 0.2
        + _CONTINGENCY_SCORES[data.contingency_plans] * 0.2
    )


# ── All pillars ──────────────────────────────────────────────────────────────


def calculate_bankability_scores(
    position: SupplyPosition,
    concentration: ConcentrationData,
    operational: OperationalData,
) -> BankabilityScores:
    pillars = PillarScores(
        volume_security=round_half_up(volume_security_score(position)),
        counterparty_quality=round_half_up(counterparty_quality_score(position.agreements)),
        contract_structure=round_half_up(contract_structure_score(position.agreements)),
        concentration_risk=round_half_up(concentration_risk_score(concentration)),
        operational_readiness=round_half_up(operational_readiness_score(operational)),
    )
    composite = compute_composite(pillars)
    band = classify_rating(composite)
    return BankabilityScores(
        pillars=pillars,
        composite_score=composite,
        rating=band.rating,
        rating_description=band.description,
    )
