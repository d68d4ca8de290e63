"""Tests for assessment building, the assessor review workflow and project scoring."""

import random
import re
from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from abfi.modules.bankability import service
from abfi.modules.bankability.enums import (
    AssessmentStatus,
    ContingencyPlanning,
    Pillar,
    PlatformIntegration,
    QASystemStatus,
    Rating,
    ReviewAction,
    Tier,
)
from abfi.modules.bankability.exceptions import (
    BankabilityError,
    IncompleteAssessmentError,
    InconsistentAssessmentError,
    InvalidCapacityError,
    InvalidStatusTransitionError,
    PillarScoreOutOfRangeError,
    ReviewNotesRequiredError,
)
from abfi.modules.bankability.schemas import (
    AssessmentRecord,
    AssessmentSubmission,
    OperationalData,
    PillarInputs,
    ScoreProjectRequest,
    ScoringAgreement,
)

REVIEW_TIME = datetime(2025, 4, 1, 9, 30, tzinfo=timezone.utc)


def _record(submission: AssessmentSubmission, status: AssessmentStatus) -> AssessmentRecord:
    record = service.build_assessment(submission, assessment_number="ABFI-BANK-2025-00001")
    return record.model_copy(update={"status": status})


# ── Form helpers ────────────────────────────────────────────────────────────


class TestSplitLines:
    def test_splits_and_strips(self):
        assert service.split_lines("- a\n\n  b  \r\nc") == ["- a", "b", "c"]

    @pytest.mark.parametrize("text", [None, "", "  \n\n "])
    def test_empty_input_is_none(self, text):
        assert service.split_lines(text) is None


class TestAssessmentNumber:
    def test_format(self):
        number = service.generate_assessment_number(year=2025, rng=random.Random(7))
        assert re.fullmatch(r"ABFI-BANK-2025-\d{5}", number)

    def test_deterministic_with_seeded_rng(self):
        first = service.generate_assessment_number(year=2025, rng=random.Random(1))
        second = service.generate_assessment_number(year=2025, rng=random.Random(1))
        assert first == second

    def test_custom_prefix(self):
        number = service.generate_assessment_number(year=2024, prefix="TEST")
        assert number.startswith("TEST-2024-")

    def test_defaults_to_current_year(self):
        number = service.generate_assessment_number()
        assert number.split("-")[2] == str(datetime.now(timezone.utc).year)


# ── build_assessment ────────────────────────────────────────────────────────


class TestBuildAssessment:
    def test_submitted_record(self, sample_submission):
        record = service.build_assessment(sample_submission)

        assert record.project_id == sample_submission.project_id
        assert record.assessment_date == sample_submission.assessment_date
        assert record.assessment_number.startswith("ABFI-BANK-2025-")
        assert record.volume_security_score == 80
        assert record.operational_readiness_score == 50
        assert record.composite_score == 74
        assert record.rating == Rating.BBB
        assert record.rating_description == "Good bankability"
        assert record.tier1_volume == 95_000
        assert record.tier1_percent == 63_333
        assert record.tier2_percent == 16_667
        assert record.total_agreements == 2
        assert record.status == AssessmentStatus.SUBMITTED
        assert record.score_adjustments == []

    def test_free_text_lists(self, sample_submission):
        record = service.build_assessment(sample_submission)
        assert record.strengths == [
            "- Strong Tier 1 coverage at 95%",
            "- Diverse supplier base with low HHI",
        ]
        assert record.monitoring_items == ["Track contract renewals due in 2026"]

    def test_persisted_field_names(self, sample_submission):
        data = service.build_assessment(sample_submission).model_dump(by_alias=True)
        for key in (
            "assessmentNumber",
            "volumeSecurityScore",
            "compositeScore",
            "ratingDescription",
            "tier1Percent",
            "optionsVolume",
            "rofrPercent",
            "totalAgreements",
            "monitoringItems",
            "status",
        ):
            assert key in data

    def test_explicit_assessment_number(self, sample_submission):
        record = service.build_assessment(sample_submission, assessment_number="ABFI-BANK-2025-12345")
        assert record.assessment_number == "ABFI-BANK-2025-12345"

    def test_draft(self, sample_submission):
        draft = sample_submission.model_copy(update={"as_draft": True})
        assert service.build_assessment(draft).status == AssessmentStatus.DRAFT

    def test_missing_pillars_rejected(self, sample_submission):
        partial = sample_submission.model_copy(
            update={"pillars": PillarInputs(volume_security=80, counterparty_quality=70)}
        )
        with pytest.raises(IncompleteAssessmentError) as exc_info:
            service.build_assessment(partial)
        assert exc_info.value.missing == [
            "contract_structure",
            "concentration_risk",
            "operational_readiness",
        ]

    def test_explicit_all_zero_is_a_real_assessment(self, sample_submission):
        zeros = sample_submission.model_copy(
            update={"pillars": PillarInputs(**{p.value: 0 for p in Pillar})}
        )
        record = service.build_assessment(zeros)
        assert record.composite_score == 0
        assert record.rating == Rating.CCC

    def test_no_agreements(self, sample_submission):
        empty = sample_submission.model_copy(update={"agreements": [], "nameplate_capacity": 0})
        record = service.build_assessment(empty)
        assert record.total_agreements == 0
        assert record.tier1_percent == 0

    def test_zero_capacity_with_agreements(self, sample_submission):
        bad = sample_submission.model_copy(update={"nameplate_capacity": 0})
        with pytest.raises(InvalidCapacityError):
            service.build_assessment(bad)


# ── apply_review ────────────────────────────────────────────────────────────


class TestReviewWorkflow:
    def test_submit_draft(self, sample_submission):
        record = _record(sample_submission, AssessmentStatus.DRAFT)
        updated = service.apply_review(record, ReviewAction.SUBMIT)
        assert updated.status == AssessmentStatus.SUBMITTED

    def test_start_review(self, sample_submission):
        record = _record(sample_submission, AssessmentStatus.SUBMITTED)
        updated = service.apply_review(record, ReviewAction.START_REVIEW)
        assert updated.status == AssessmentStatus.UNDER_REVIEW
        assert record.status == AssessmentStatus.SUBMITTED

    def test_approve_default_note(self, sample_submission):
        record = _record(sample_submission, AssessmentStatus.UNDER_REVIEW)
        updated = service.apply_review(record, ReviewAction.APPROVE)
        assert updated.status == AssessmentStatus.APPROVED
        assert updated.reviewer_notes == service.DEFAULT_APPROVAL_NOTE

    def test_reject_with_notes(self, sample_submission):
        record = _record(sample_submission, AssessmentStatus.UNDER_REVIEW)
        updated = service.apply_review(record, ReviewAction.REJECT, notes="Tier 2 terms unverified")
        assert updated.status == AssessmentStatus.REJECTED
        assert updated.reviewer_notes == "Tier 2 terms unverified"

    @pytest.mark.parametrize("notes", [None, "", "   \n"])
    def test_reject_requires_notes(self, sample_submission, notes):
        record = _record(sample_submission, AssessmentStatus.UNDER_REVIEW)
        with pytest.raises(ReviewNotesRequiredError) as exc_info:
            service.apply_review(record, ReviewAction.REJECT, notes=notes)
        assert exc_info.value.action == "reject"

    def test_reopen_rejected(self, sample_submission):
        record = _record(sample_submission, AssessmentStatus.REJECTED)
        assert service.apply_review(record, "reopen").status == AssessmentStatus.DRAFT

    @pytest.mark.parametrize(
        "status,action",
        [
            (AssessmentStatus.SUBMITTED, ReviewAction.APPROVE),
            (AssessmentStatus.DRAFT, ReviewAction.START_REVIEW),
            (AssessmentStatus.APPROVED, ReviewAction.REJECT),
            (AssessmentStatus.APPROVED, ReviewAction.SUBMIT),
            (AssessmentStatus.UNDER_REVIEW, ReviewAction.REOPEN),
        ],
    )
    def test_invalid_transitions(self, sample_submission, status, action):
        record = _record(sample_submission, status)
        with pytest.raises(InvalidStatusTransitionError) as exc_info:
            service.apply_review(record, action)
        assert exc_info.value.current == status.value

    def test_adjust_scores_recomputes_rating(self, sample_submission):
        record = _record(sample_submission, AssessmentStatus.UNDER_REVIEW)

        updated = service.apply_review(
            record,
            ReviewAction.ADJUST_SCORES,
            overrides={Pillar.VOLUME_SECURITY: 100},
            reason="Additional tier 1 agreement verified",
            now=REVIEW_TIME,
        )

        # 30 + 17.5 + 18 + 9 + 5
        assert updated.volume_security_score == 100
        assert updated.composite_score == 80
        assert updated.rating == Rating.A
        assert updated.rating_description == "Strong bankability"
        assert updated.status == AssessmentStatus.UNDER_REVIEW

        [adjustment] = updated.score_adjustments
        assert adjustment.reason == "Additional tier 1 agreement verified"
        assert adjustment.previous_composite == 74
        assert adjustment.new_composite == 80
        assert adjustment.adjusted_at == REVIEW_TIME
        [change] = adjustment.changes
        assert change.pillar == Pillar.VOLUME_SECURITY
        assert change.previous_score == 80
        assert change.new_score == 100

        assert record.composite_score == 74

    def test_adjust_accepts_string_keys(self, sample_submission):
        record = _record(sample_submission, AssessmentStatus.UNDER_REVIEW)
        updated = service.apply_review(
            record, ReviewAction.ADJUST_SCORES, overrides={"operational_readiness": 0}
        )
        # 73.5 - 5
        assert updated.composite_score == 69
        assert updated.rating == Rating.BB

    def test_adjust_to_same_score_records_nothing(self, sample_submission):
        record = _record(sample_submission, AssessmentStatus.UNDER_REVIEW)
        updated = service.apply_review(
            record, ReviewAction.ADJUST_SCORES, overrides={Pillar.VOLUME_SECURITY: 80}
        )
        assert updated.score_adjustments == []
        assert updated.composite_score == 74

    def test_adjust_requires_under_review(self, sample_submission):
        record = _record(sample_submission, AssessmentStatus.SUBMITTED)
        with pytest.raises(InvalidStatusTransitionError):
            service.apply_review(
                record, ReviewAction.ADJUST_SCORES, overrides={Pillar.VOLUME_SECURITY: 90}
            )

    def test_adjust_requires_overrides(self, sample_submission):
        record = _record(sample_submission, AssessmentStatus.UNDER_REVIEW)
        with pytest.raises(BankabilityError):
            service.apply_review(record, ReviewAction.ADJUST_SCORES, overrides={})

    @pytest.mark.parametrize("overrides", [{"volume_security": 120}, {"liquidity": 50}])
    def test_adjust_rejects_invalid_overrides(self, sample_submission, overrides):
        record = _record(sample_submission, AssessmentStatus.UNDER_REVIEW)
        with pytest.raises(PillarScoreOutOfRangeError):
            service.apply_review(record, ReviewAction.ADJUST_SCORES, overrides=overrides)


# ── Record consistency ──────────────────────────────────────────────────────


class TestDerivedScoreConsistency:
    def test_consistent_record_passes(self, sample_submission):
        service.verify_derived_scores(service.build_assessment(sample_submission))

    @pytest.mark.parametrize(
        "update,field",
        [
            ({"composite_score": 99}, "composite_score"),
            ({"rating": Rating.AAA}, "rating"),
            ({"rating_description": "Exceptional bankability"}, "rating_description"),
            ({"volume_security_score": 100}, "composite_score"),
        ],
    )
    def test_tampered_record_rejected_by_review(self, sample_submission, update, field):
        record = _record(sample_submission, AssessmentStatus.UNDER_REVIEW).model_copy(
            update=update
        )
        with pytest.raises(InconsistentAssessmentError) as exc_info:
            service.apply_review(record, ReviewAction.APPROVE)
        assert exc_info.value.field == field

    def test_composite_bounded_on_validation(self, sample_submission):
        data = service.build_assessment(sample_submission).model_dump(by_alias=True)
        data["compositeScore"] = 999
        with pytest.raises(ValidationError):
            AssessmentRecord.model_validate(data)


# ── score_project ───────────────────────────────────────────────────────────


class TestScoreProject:
    def test_scores_from_agreements(self):
        agreements = [
            ScoringAgreement(
                tier=Tier.TIER1,
                annual_volume=12.5,
                term_years=15,
                pricing_mechanism="fixed",
                lender_step_in_rights=True,
                early_termination_notice_days=720,
                lender_consent_required=True,
                force_majeure_volume_reduction_cap=20,
                grower_qualification=1,
                bank_guarantee_percent=10,
                supplier_id=i,
            )
            for i in range(1, 11)
        ] + [
            ScoringAgreement(
                tier=Tier.OPTION,
                annual_volume=20,
                term_years=15,
                pricing_mechanism="fixed",
                lender_step_in_rights=True,
                early_termination_notice_days=720,
                lender_consent_required=True,
                force_majeure_volume_reduction_cap=20,
                grower_qualification=1,
                supplier_id=i,
            )
            for i in (11, 12)
        ]
        request = ScoreProjectRequest(
            nameplate_capacity=100,
            debt_tenor=10,
            climate_zones=4,
            agreements=agreements,
            operational=OperationalData(
                logistics_contracted=True,
                logistics_tested=True,
                qa_system_status=QASystemStatus.OPERATIONAL,
                abfi_integration=PlatformIntegration.FULL,
                contingency_plans=ContingencyPlanning.COMPREHENSIVE,
            ),
        )

        result = service.score_project(request)

        assert result.composite_score == 98
        assert result.rating == Rating.AAA
        assert result.supply.tier1_percent == 125
        assert result.supply.options_percent == 40
        assert result.supply.total_agreements == 12
        assert result.supplier_hhi == 868
        assert result.weighted_average_term == 15.0
        assert result.weighted_average_grower_qualification == 1.0

    def test_zero_capacity(self):
        with pytest.raises(InvalidCapacityError):
            service.score_project(ScoreProjectRequest(nameplate_capacity=0, debt_tenor=10))
