"""Deal stage state machine - validates transitions and plans their side effects.

Planning is pure: a StageTransition describes the deal field updates, the
history row and the audit comment. The repository applies all three in a
single unit of work.
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Dict, Optional, Set

from mca_underwriter.domain.enums import DealStage, Decision
from mca_underwriter.domain.exceptions import InvalidDecisionError, InvalidTransitionError
from mca_underwriter.domain.models import DecisionPayload, StageTransition
from mca_underwriter.domain.policy import DEFAULT_POLICY, PolicyTable
from mca_underwriter.utils.money import round_money, to_decimal

S = DealStage

TERMINAL_STAGES: Set[DealStage] = {S.FUNDED, S.DECLINED, S.DEAD}

# ---------------------------------------------------------------------------
# Manual pipeline moves: from_stage -> allowed target stages
# ---------------------------------------------------------------------------

STAGE_TRANSITIONS: Dict[DealStage, Set[DealStage]] = {
    S.NEW_LEAD: {S.DOCS_REQUESTED, S.DECLINED, S.DEAD},
    S.DOCS_REQUESTED: {S.DOCS_RECEIVED, S.DECLINED, S.DEAD},
    S.DOCS_RECEIVED: {S.IN_UNDERWRITING, S.DOCS_REQUESTED, S.DECLINED, S.DEAD},
    S.IN_UNDERWRITING: {S.APPROVED, S.DECLINED, S.DEAD},
    S.APPROVED: {S.CONTRACT_SENT, S.DECLINED, S.DEAD},
    S.CONTRACT_SENT: {S.CONTRACT_SIGNED, S.DECLINED, S.DEAD},
    S.CONTRACT_SIGNED: {S.FUNDED, S.DECLINED, S.DEAD},
    S.FUNDED: set(),
    # Declined and dead deals may be reopened as fresh leads
    S.DECLINED: {S.NEW_LEAD},
    S.DEAD: {S.NEW_LEAD},
}

DECISION_TARGETS: Dict[Decision, DealStage] = {
    Decision.APPROVE: S.APPROVED,
    Decision.COUNTER: S.APPROVED,
    Decision.DECLINE: S.DECLINED,
}

DECISION_VERBS: Dict[Decision, str] = {
    Decision.APPROVE: "approved",
    Decision.COUNTER: "countered",
    Decision.DECLINE: "declined",
}

APPROVAL_REQUIRED_FIELDS = ("paper_grade", "risk_score", "approved_amount", "factor_rate", "term_days")


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _format_amount(amount: Optional[Decimal]) -> str:
    return f"${to_decimal(amount):,.2f}" if amount is not None else "N/A"


def format_decision_comment(decision: Decision, payload: DecisionPayload) -> str:
    """Human-readable audit note summarizing a decision"""
    notes = f"\n\nNotes: {payload.notes}" if payload.notes else ""

    if decision in (Decision.APPROVE, Decision.COUNTER):
        title = "COUNTER OFFER" if decision == Decision.COUNTER else "APPROVED"
        grade = payload.paper_grade.value if payload.paper_grade else "N/A"
        score = payload.risk_score if payload.risk_score is not None else "N/A"
        term = f"{payload.term_days} days" if payload.term_days else "N/A"
        return (
            f"**Underwriting Decision: {title}**\n\n"
            f"Paper Grade: {grade}\n"
            f"Risk Score: {score}\n"
            f"Approved Amount: {_format_amount(payload.approved_amount)}\n"
            f"Factor Rate: {payload.factor_rate if payload.factor_rate is not None else 'N/A'}\n"
            f"Term: {term}"
            f"{notes}"
        )

    reasons = "\n".join(f"- {reason}" for reason in payload.decline_reasons) or "No reasons provided"
    return f"**Underwriting Decision: DECLINED**\n\nReasons:\n{reasons}{notes}"


def validate_decision(decision: Decision, payload: DecisionPayload) -> None:
    """
    Fail fast on an incomplete payload, before anything is mutated.

    APPROVE/COUNTER need grade, score, amount, rate and term. DECLINE needs
    at least one reason.
    """
    if decision in (Decision.APPROVE, Decision.COUNTER):
        missing = [name for name in APPROVAL_REQUIRED_FIELDS if getattr(payload, name) is None]
        if missing:
            raise InvalidDecisionError(f"{decision.value} requires: {', '.join(missing)}")
        if to_decimal(payload.approved_amount) <= 0:
            raise InvalidDecisionError("approved_amount must be positive")
        if to_decimal(payload.factor_rate) <= 0:
            raise InvalidDecisionError("factor_rate must be positive")
        if payload.term_days <= 0:
            raise InvalidDecisionError("term_days must be positive")
        if not 0 <= payload.risk_score <= 100:
            raise InvalidDecisionError("risk_score must be between 0 and 100")
    elif decision == Decision.DECLINE:
        if not [reason for reason in payload.decline_reasons if reason and reason.strip()]:
            raise InvalidDecisionError("DECLINE requires at least one decline reason")
    else:
        raise InvalidDecisionError(f"Unknown decision: {decision}")


def _approval_terms(payload: DecisionPayload, policy: PolicyTable) -> dict:
    """Approved terms, deriving payback and payments the caller left out"""
    amount = to_decimal(payload.approved_amount)
    factor_rate = to_decimal(payload.factor_rate)

    payback = (
        to_decimal(payload.payback_amount) if payload.payback_amount is not None else amount * factor_rate
    )
    daily = (
        to_decimal(payload.daily_payment) if payload.daily_payment is not None else payback / payload.term_days
    )
    weekly = (
        to_decimal(payload.weekly_payment)
        if payload.weekly_payment is not None
        else daily * policy.payment_days_per_week
    )

    return {
        "paper_grade": payload.paper_grade,
        "risk_score": payload.risk_score,
        "approved_amount": round_money(amount),
        "factor_rate": factor_rate,
        "term_days": payload.term_days,
        "payback_amount": round_money(payback),
        "daily_payment": round_money(daily),
        "weekly_payment": round_money(weekly),
    }


def plan_decision(
    current_stage: DealStage,
    decision: Decision,
    payload: DecisionPayload,
    actor: str,
    now: Optional[datetime] = None,
    enforce_forward: bool = False,
    policy: PolicyTable = DEFAULT_POLICY,
) -> StageTransition:
    """
    Plan the transition for an underwriting decision.

    Decisions are accepted from any stage, terminal ones included, unless
    enforce_forward is set.

    Raises:
        InvalidDecisionError: payload incomplete for the decision type
        InvalidTransitionError: enforce_forward and the deal is terminal
    """
    validate_decision(decision, payload)

    target = DECISION_TARGETS[decision]
    if enforce_forward and current_stage in TERMINAL_STAGES:
        raise InvalidTransitionError(current_stage, target, "deal is in a terminal stage")

    now = now or _now()
    updates = {
        "stage": target,
        "stage_changed_at": now,
        "decision_date": now,
        "decision_notes": payload.notes,
        "underwriter_id": actor,
    }
    if decision in (Decision.APPROVE, Decision.COUNTER):
        updates.update(_approval_terms(payload, policy))
    else:
        updates["decline_reasons"] = [reason for reason in payload.decline_reasons if reason and reason.strip()]

    return StageTransition(
        from_stage=current_stage,
        to_stage=target,
        actor=actor,
        occurred_at=now,
        deal_updates=updates,
        history_note=f"{decision.value}: {payload.notes or 'No notes provided'}",
        comment=format_decision_comment(decision, payload),
    )


def validate_stage_change(current_stage: DealStage, target_stage: DealStage) -> None:
    if current_stage == target_stage:
        raise InvalidTransitionError(current_stage, target_stage, "deal is already in this stage")
    if target_stage not in STAGE_TRANSITIONS[current_stage]:
        allowed = ", ".join(sorted(s.value for s in STAGE_TRANSITIONS[current_stage])) or "none"
        raise InvalidTransitionError(current_stage, target_stage, f"allowed targets: {allowed}")


def plan_stage_change(
    current_stage: DealStage,
    target_stage: DealStage,
    actor: str,
    note: Optional[str] = None,
    now: Optional[datetime] = None,
) -> StageTransition:
    """
    Plan a manual pipeline move (docs requested, contract sent, funded, ...).

    Raises:
        InvalidTransitionError: target not reachable from the current stage
    """
    validate_stage_change(current_stage, target_stage)

    now = now or _now()
    updates = {"stage": target_stage, "stage_changed_at": now}
    if target_stage in (S.APPROVED, S.DECLINED):
        updates["decision_date"] = now
    if target_stage == S.FUNDED:
        updates["funded_at"] = now

    comment = f"Stage changed from {current_stage.value} to {target_stage.value}"
    if note:
        comment += f"\n\nNotes: {note}"

    return StageTransition(
        from_stage=current_stage,
        to_stage=target_stage,
        actor=actor,
        occurred_at=now,
        deal_updates=updates,
        history_note=note,
        comment=comment,
    )


def plan_opening(actor: str, note: Optional[str] = None, now: Optional[datetime] = None) -> StageTransition:
    """Opening transition for a new deal: no prior stage, lands in NEW_LEAD"""
    now = now or _now()
    return StageTransition(
        from_stage=None,
        to_stage=S.NEW_LEAD,
        actor=actor,
        occurred_at=now,
        deal_updates={"stage": S.NEW_LEAD, "stage_changed_at": now},
        history_note=note,
        comment=f"Deal opened as {S.NEW_LEAD.value}",
    )


def decision_message(decision: Decision) -> str:
    return f"Deal {DECISION_VERBS[decision]} successfully"
