"""Bankability score aggregation: composite score, rating, supply position.

Pure and deterministic; no I/O, no shared state. Safe to call on every request.
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Mapping
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from abfi.modules.bankability.criteria import (
    MAX_SCORE,
    MIN_SCORE,
    RATING_BANDS,
    WEIGHT_TABLE,
    RatingBand,
)
from abfi.modules.bankability.enums import Pillar, Tier
from abfi.modules.bankability.exceptions import (
    CompositeScoreOutOfRangeError,
    InvalidCapacityError,
    InvalidWeightTableError,
    PillarScoreOutOfRangeError,
)
from abfi.modules.bankability.schemas import Agreement, PillarScores, SupplyMetrics

WEIGHT_TOLERANCE = 1e-9

_TIER_FIELDS: dict[Tier, str] = {
    Tier.TIER1: "tier1",
    Tier.TIER2: "tier2",
    Tier.OPTION: "options",
    Tier.ROFR: "rofr",
}


def round_half_up(value: float | Decimal) -> int:
    """Round to the nearest integer, halves away from zero (73.5 -> 74)."""
    return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def round_one_decimal(value: float | Decimal) -> float:
    return float(Decimal(str(value)).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


def _is_score(value: Any) -> bool:
    return (
        isinstance(value, int)
        and not isinstance(value, bool)
        and MIN_SCORE <= value <= MAX_SCORE
    )


def validate_pillar_score(pillar: Pillar | str, value: Any) -> int:
    name = pillar.value if isinstance(pillar, Pillar) else str(pillar)
    if not _is_score(value):
        raise PillarScoreOutOfRangeError(name, value)
    return value


def _pillar_values(pillars: PillarScores | Mapping[Any, Any]) -> dict[Pillar, int]:
    if isinstance(pillars, PillarScores):
        return {p: pillars.get(p) for p in Pillar}

    normalised: dict[Pillar, Any] = {}
    for key, value in pillars.items():
        try:
            normalised[Pillar(key)] = value
        except ValueError:
            raise PillarScoreOutOfRangeError(str(key), value) from None
    return {p: validate_pillar_score(p, normalised.get(p)) for p in Pillar}


def _weight_values(weights: Mapping[Any, float]) -> dict[Pillar, Decimal]:
    try:
        resolved = {Pillar(k): w for k, w in weights.items()}
    except ValueError as exc:
        raise InvalidWeightTableError(f"Unknown pillar in weight table: {exc}") from exc

    missing = [p.value for p in Pillar if p not in resolved]
    if missing:
        raise InvalidWeightTableError(
            f"Weight table is missing pillars: {', '.join(missing)}", missing=missing
        )

    for pillar, weight in resolved.items():
        if (
            isinstance(weight, bool)
            or not isinstance(weight, (int, float))
            or not math.isfinite(weight)
            or weight < 0
        ):
            raise InvalidWeightTableError(
                f"Weight for '{pillar.value}' must be a finite number >= 0, got {weight!r}",
                pillar=pillar.value,
                weight=weight,
            )

    total = math.fsum(float(w) for w in resolved.values())
    if abs(total - 1.0) > WEIGHT_TOLERANCE:
        raise InvalidWeightTableError(
            f"Pillar weights must sum to 1.0, got {total}", total=total
        )
    return {p: Decimal(str(w)) for p, w in resolved.items()}


def compute_composite(
    pillars: PillarScores | Mapping[Any, Any],
    weights: Mapping[Any, float] = WEIGHT_TABLE,
) -> int:
    """Weighted sum of the five pillar scores, rounded half-up to an integer.

    An all-zero assessment returns 0 like any other; telling "not yet scored"
    apart is the caller's job (see ``PillarInputs``).
    """
    values = _pillar_values(pillars)
    weight_values = _weight_values(weights)
    total = sum(Decimal(values[p]) * weight_values[p] for p in Pillar)
    return round_half_up(total)


def classify_rating(composite: int) -> RatingBand:
    """Map a composite score to its rating band. Lower bounds are inclusive."""
    if not _is_score(composite):
        raise CompositeScoreOutOfRangeError(composite)
    for band in RATING_BANDS:
        if composite >= band.min_score:
            return band
    # Unreachable: the last band starts at MIN_SCORE
    return RATING_BANDS[-1]


def aggregate_supply_position(
    agreements: Iterable[Agreement],
    nameplate_capacity: float,
) -> SupplyMetrics:
    """Sum agreement volumes per tier and express them against capacity.

    Percentages are volume / capacity * 100 exactly as the project records
    store them (volumes in tonnes, capacity as recorded on the project); they
    are not capped at 100.
    """
    agreements = list(agreements)
    if not agreements:
        return SupplyMetrics()

    if nameplate_capacity is None or not nameplate_capacity > 0:
        raise InvalidCapacityError(nameplate_capacity)

    volumes: dict[Tier, Decimal] = {tier: Decimal(0) for tier in Tier}
    for agreement in agreements:
        volume = agreement.annual_volume or 0
        volumes[Tier(agreement.tier)] += Decimal(str(volume))

    capacity = Decimal(str(nameplate_capacity))
    fields: dict[str, Any] = {"total_agreements": len(agreements)}
    for tier, prefix in _TIER_FIELDS.items():
        fields[f"{prefix}_volume"] = float(volumes[tier])
        fields[f"{prefix}_percent"] = round_half_up(volumes[tier] / capacity * 100)
    return SupplyMetrics(**fields)
