"""Unit tests for the deal stage state machine"""

import pytest
from dataclasses import replace
from datetime import datetime, timezone
from decimal import Decimal
from mca_underwriter.domain.enums import DealStage, Decision, PaperGrade
from mca_underwriter.domain.exceptions import InvalidDecisionError, InvalidTransitionError
from mca_underwriter.domain.models import DecisionPayload
from mca_underwriter.domain.policy import DEFAULT_POLICY
from mca_underwriter.domain.stages import (
    STAGE_TRANSITIONS,
    decision_message,
    plan_decision,
    plan_opening,
    plan_stage_change,
)

NOW = datetime(2024, 3, 1, 15, 30, tzinfo=timezone.utc)


def approval_payload(**overrides) -> DecisionPayload:
    values = dict(
        paper_grade=PaperGrade.B,
        risk_score=68,
        approved_amount=Decimal("40000"),
        factor_rate=Decimal("1.30"),
        term_days=120,
        notes="Strong deposits",
    )
    values.update(overrides)
    return DecisionPayload(**values)


def test_every_stage_has_a_transition_entry():
    assert set(STAGE_TRANSITIONS) == set(DealStage)
    assert STAGE_TRANSITIONS[DealStage.FUNDED] == set()


def test_plan_approval_sets_terms():
    transition = plan_decision(DealStage.IN_UNDERWRITING, Decision.APPROVE, approval_payload(), "uw-7", now=NOW)

    assert transition.from_stage == DealStage.IN_UNDERWRITING
    assert transition.to_stage == DealStage.APPROVED
    updates = transition.deal_updates
    assert updates["stage"] == DealStage.APPROVED
    assert updates["decision_date"] == NOW
    assert updates["underwriter_id"] == "uw-7"
    assert updates["payback_amount"] == Decimal("52000.00")
    assert updates["daily_payment"] == Decimal("433.33")
    assert updates["weekly_payment"] == Decimal("2166.67")
    assert transition.history_note == "APPROVE: Strong deposits"
    assert "**Underwriting Decision: APPROVED**" in transition.comment
    assert "Approved Amount: $40,000.00" in transition.comment


def test_weekly_payment_follows_policy_payment_days():
    six_day_week = replace(DEFAULT_POLICY, version="test", payment_days_per_week=6)

    updates = plan_decision(
        DealStage.IN_UNDERWRITING, Decision.APPROVE, approval_payload(), "uw-7", now=NOW, policy=six_day_week
    ).deal_updates

    assert updates["daily_payment"] == Decimal("433.33")
    assert updates["weekly_payment"] == Decimal("2600.00")


def test_caller_supplied_payments_are_kept():
    payload = approval_payload(daily_payment=Decimal("450"), weekly_payment=Decimal("2250"), payback_amount=Decimal("54000"))

    updates = plan_decision(DealStage.IN_UNDERWRITING, Decision.COUNTER, payload, "uw-7", now=NOW).deal_updates

    assert updates["daily_payment"] == Decimal("450.00")
    assert updates["payback_amount"] == Decimal("54000.00")


def test_counter_lands_in_approved_with_counter_comment():
    transition = plan_decision(DealStage.IN_UNDERWRITING, Decision.COUNTER, approval_payload(), "uw-7", now=NOW)

    assert transition.to_stage == DealStage.APPROVED
    assert "COUNTER OFFER" in transition.comment


def test_plan_decline_records_reasons():
    payload = DecisionPayload(decline_reasons=["Too many NSFs", "  "])

    transition = plan_decision(DealStage.NEW_LEAD, Decision.DECLINE, payload, "uw-7", now=NOW)

    assert transition.to_stage == DealStage.DECLINED
    assert transition.deal_updates["decline_reasons"] == ["Too many NSFs"]
    assert "approved_amount" not in transition.deal_updates
    assert transition.history_note == "DECLINE: No notes provided"
    assert "- Too many NSFs" in transition.comment


def test_decline_without_reasons_is_rejected():
    with pytest.raises(InvalidDecisionError):
        plan_decision(DealStage.IN_UNDERWRITING, Decision.DECLINE, DecisionPayload(), "uw-7")


@pytest.mark.parametrize("missing", ["paper_grade", "risk_score", "approved_amount", "factor_rate", "term_days"])
def test_approval_requires_terms(missing):
    with pytest.raises(InvalidDecisionError) as exc:
        plan_decision(DealStage.IN_UNDERWRITING, Decision.APPROVE, approval_payload(**{missing: None}), "uw-7")
    assert missing in str(exc.value)


def test_approval_rejects_non_positive_amount():
    with pytest.raises(InvalidDecisionError):
        plan_decision(DealStage.IN_UNDERWRITING, Decision.APPROVE, approval_payload(approved_amount=Decimal("0")), "uw-7")


def test_decision_on_terminal_stage_is_permitted_by_default():
    transition = plan_decision(DealStage.FUNDED, Decision.APPROVE, approval_payload(), "uw-7", now=NOW)
    assert transition.from_stage == DealStage.FUNDED
    assert transition.to_stage == DealStage.APPROVED


def test_forward_only_rejects_terminal_stage():
    with pytest.raises(InvalidTransitionError) as exc:
        plan_decision(DealStage.FUNDED, Decision.APPROVE, approval_payload(), "uw-7", enforce_forward=True)
    assert exc.value.current_stage == DealStage.FUNDED
    assert exc.value.target_stage == DealStage.APPROVED


def test_stage_change_to_funded_stamps_funded_at():
    transition = plan_stage_change(DealStage.CONTRACT_SIGNED, DealStage.FUNDED, "ops-2", now=NOW)

    assert transition.deal_updates == {"stage": DealStage.FUNDED, "stage_changed_at": NOW, "funded_at": NOW}
    assert transition.comment == "Stage changed from CONTRACT_SIGNED to FUNDED"


def test_stage_change_to_declined_stamps_decision_date():
    transition = plan_stage_change(DealStage.DOCS_REQUESTED, DealStage.DECLINED, "ops-2", note="Ghosted", now=NOW)

    assert transition.deal_updates["decision_date"] == NOW
    assert transition.history_note == "Ghosted"
    assert transition.comment.endswith("Notes: Ghosted")


def test_stage_change_outside_map_is_rejected():
    with pytest.raises(InvalidTransitionError):
        plan_stage_change(DealStage.NEW_LEAD, DealStage.FUNDED, "ops-2")


def test_funded_deals_cannot_move():
    for target in DealStage:
        with pytest.raises(InvalidTransitionError):
            plan_stage_change(DealStage.FUNDED, target, "ops-2")


def test_same_stage_is_rejected():
    with pytest.raises(InvalidTransitionError):
        plan_stage_change(DealStage.APPROVED, DealStage.APPROVED, "ops-2")


def test_dead_deal_can_be_reopened():
    transition = plan_stage_change(DealStage.DEAD, DealStage.NEW_LEAD, "ops-2", now=NOW)
    assert transition.to_stage == DealStage.NEW_LEAD


def test_opening_transition():
    transition = plan_opening("broker-portal", now=NOW)

    assert transition.from_stage is None
    assert transition.to_stage == DealStage.NEW_LEAD
    assert transition.deal_updates == {"stage": DealStage.NEW_LEAD, "stage_changed_at": NOW}


def test_decision_messages():
    assert decision_message(Decision.APPROVE) == "Deal approved successfully"
    assert decision_message(Decision.COUNTER) == "Deal countered successfully"
    assert decision_message(Decision.DECLINE) == "Deal declined successfully"
