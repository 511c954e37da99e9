"""Integration tests for deal persistence and the audit trail"""

import pytest
import uuid
from decimal import Decimal
from mca_underwriter.domain.enums import DealStage, Decision, PaperGrade
from mca_underwriter.domain.exceptions import ConcurrencyConflictError, DealNotFoundError
from mca_underwriter.domain.models import DecisionPayload
from mca_underwriter.domain.stages import plan_decision, plan_stage_change
from mca_underwriter.infrastructure.database import mappers
from mca_underwriter.infrastructure.database.repositories import DealRepository


def test_create_deal_writes_opening_history(db, create_deal):
    deal = create_deal()
    repo = DealRepository(db)

    history = repo.get_stage_history(deal.id)

    assert deal.stage == DealStage.NEW_LEAD
    assert deal.version == 1
    assert len(history) == 1
    assert history[0].sequence == 1
    assert history[0].from_stage is None
    assert history[0].to_stage == DealStage.NEW_LEAD
    assert history[0].changed_by == "broker-portal"


def test_apply_transition_updates_deal_history_and_comment(db, create_deal):
    deal = create_deal()
    repo = DealRepository(db)
    payload = DecisionPayload(
        paper_grade=PaperGrade.B,
        risk_score=66,
        approved_amount=Decimal("45000"),
        factor_rate=Decimal("1.30"),
        term_days=120,
    )

    repo.apply_transition(deal, plan_decision(deal.stage, Decision.APPROVE, payload, "uw-1"))
    db.commit()

    db.refresh(deal)
    assert deal.stage == DealStage.APPROVED
    assert deal.approved_amount == Decimal("45000.00")
    assert deal.version == 2
    assert [h.sequence for h in repo.get_stage_history(deal.id)] == [1, 2]
    comments = repo.get_comments(deal.id)
    assert "**Underwriting Decision: APPROVED**" in comments[-1].content


def test_latest_history_matches_stage_over_a_lifecycle(db, create_deal):
    """Latest history row always matches the deal stage"""
    deal = create_deal()
    repo = DealRepository(db)

    for target in (DealStage.DOCS_REQUESTED, DealStage.DOCS_RECEIVED, DealStage.IN_UNDERWRITING, DealStage.DEAD):
        repo.apply_transition(deal, plan_stage_change(deal.stage, target, "ops-1"))
        db.commit()

        history = repo.get_stage_history(deal.id)
        assert history[-1].to_stage == deal.stage
        assert history[-1].from_stage == history[-2].to_stage

    assert len(repo.get_stage_history(deal.id)) == 5
    assert len(repo.get_comments(deal.id)) == 5


def test_expected_version_mismatch_is_rejected(db, create_deal):
    deal = create_deal()
    repo = DealRepository(db)

    with pytest.raises(ConcurrencyConflictError):
        repo.apply_transition(
            deal, plan_stage_change(deal.stage, DealStage.DOCS_REQUESTED, "ops-1"), expected_version=3
        )

    db.rollback()
    assert deal.stage == DealStage.NEW_LEAD
    assert len(repo.get_stage_history(deal.id)) == 1


def test_concurrent_writer_loses(db, session_factory, create_deal):
    """Second writer holding a stale copy gets a conflict and persists nothing"""
    deal = create_deal()
    other = session_factory()
    try:
        repo_a = DealRepository(db)
        repo_b = DealRepository(other)
        stale = repo_b.get_deal_or_raise(deal.id)

        repo_a.apply_transition(deal, plan_stage_change(deal.stage, DealStage.DOCS_REQUESTED, "ops-a"))
        db.commit()

        with pytest.raises(ConcurrencyConflictError):
            repo_b.apply_transition(stale, plan_stage_change(stale.stage, DealStage.DEAD, "ops-b"))
        other.rollback()
    finally:
        other.close()

    db.refresh(deal)
    history = DealRepository(db).get_stage_history(deal.id)
    assert deal.stage == DealStage.DOCS_REQUESTED
    assert [h.changed_by for h in history] == ["broker-portal", "ops-a"]


def test_get_deal_or_raise(db):
    with pytest.raises(DealNotFoundError):
        DealRepository(db).get_deal_or_raise(uuid.uuid4())


def test_mappers_build_snapshots(db, create_deal):
    deal = create_deal(broker_commission_rate="0.08")

    merchant = mappers.merchant_snapshot(deal.merchant)
    owners = mappers.owner_snapshots(deal.merchant)
    bank = mappers.bank_analysis_snapshot(deal.bank_analysis)

    assert merchant.monthly_revenue == Decimal("75000")
    assert owners[0].fico_score == 720
    assert owners[0].is_primary is True
    assert bank.months_analyzed == 3
    assert bank.detected_mca_payments == []
    assert mappers.broker_commission_rate(deal, 0.10) == Decimal("0.08")
    assert mappers.deal_snapshot(deal).requested_amount == Decimal("50000")


def test_house_commission_without_broker(db, create_deal):
    deal = create_deal()
    assert mappers.broker_commission_rate(deal, 0.10) == Decimal("0.1")
