"""Shared test fixtures for the ABFI API test suite."""

from collections.abc import AsyncGenerator
from datetime import datetime, timezone

import pytest
from httpx import ASGITransport, AsyncClient

from abfi.main import app
from abfi.modules.bankability.enums import Tier
from abfi.modules.bankability.schemas import (
    Agreement,
    AssessmentSubmission,
    PillarInputs,
    PillarScores,
)


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
async def client() -> AsyncGenerator[AsyncClient]:
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac


# ── Sample data fixtures ──────────────────────────────────────────────────

SAMPLE_PROJECT_ID = 42
SAMPLE_CAPACITY = 150
SAMPLE_DATE = datetime(2025, 3, 14, tzinfo=timezone.utc)

SAMPLE_PILLARS = {
    "volume_security": 80,
    "counterparty_quality": 70,
    "contract_structure": 90,
    "concentration_risk": 60,
    "operational_readiness": 50,
}


@pytest.fixture
def sample_pillars() -> PillarScores:
    """Pillars with a composite of 73.5, rounded to 74 (BBB)."""
    return PillarScores(**SAMPLE_PILLARS)


@pytest.fixture
def sample_agreements() -> list[Agreement]:
    return [
        Agreement(tier=Tier.TIER1, annual_volume=95_000),
        Agreement(tier=Tier.TIER2, annual_volume=25_000),
    ]


@pytest.fixture
def sample_submission(sample_agreements: list[Agreement]) -> AssessmentSubmission:
    return AssessmentSubmission(
        project_id=SAMPLE_PROJECT_ID,
        nameplate_capacity=SAMPLE_CAPACITY,
        pillars=PillarInputs(**SAMPLE_PILLARS),
        agreements=sample_agreements,
        strengths="- Strong Tier 1 coverage at 95%\n\n- Diverse supplier base with low HHI\n",
        monitoring_items="Track contract renewals due in 2026",
        assessment_date=SAMPLE_DATE,
    )
