"""Data access layer for deals and their audit trail"""

import uuid
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from mca_underwriter.domain.exceptions import ConcurrencyConflictError, DealNotFoundError
from mca_underwriter.domain.models import StageTransition
from mca_underwriter.domain.stages import plan_opening
from mca_underwriter.infrastructure.database.models import Deal, DealComment, DealStageHistory


class DealRepository:
    """Repository for deals; the only writer of stage, terms and history"""

    def __init__(self, db: Session):
        self.db = db

    def get_deal(self, deal_id: uuid.UUID) -> Optional[Deal]:
        return self.db.query(Deal).filter(Deal.id == deal_id).first()

    def get_deal_or_raise(self, deal_id: uuid.UUID) -> Deal:
        deal = self.get_deal(deal_id)
        if deal is None:
            raise DealNotFoundError(str(deal_id))
        return deal

    def create_deal(
        self,
        merchant_id: uuid.UUID,
        requested_amount: Decimal,
        actor: str,
        source: Optional[str] = None,
        broker_id: Optional[uuid.UUID] = None,
        existing_positions: int = 0,
        stacking_detected: bool = False,
    ) -> Deal:
        """Insert a deal together with its opening NEW_LEAD history row"""
        transition = plan_opening(actor)
        deal = Deal(
            id=uuid.uuid4(),
            merchant_id=merchant_id,
            broker_id=broker_id,
            source=source,
            requested_amount=requested_amount,
            existing_positions=existing_positions,
            stacking_detected=stacking_detected,
            **transition.deal_updates,
        )
        self.db.add(deal)
        self._append_audit(deal, transition, sequence=1)
        self.db.flush()
        return deal

    def apply_transition(
        self,
        deal: Deal,
        transition: StageTransition,
        expected_version: Optional[int] = None,
    ) -> Deal:
        """
        Apply a planned transition as one unit of work.

        The deal UPDATE is guarded by its version column, and history rows are
        unique per (deal, sequence), so a concurrent writer that committed
        first makes this flush fail. The caller commits on success and rolls
        back on error; nothing is partially persisted either way.

        Raises:
            ConcurrencyConflictError: stale expected_version or lost race
        """
        # A failed flush expires the instance, so the id is read up front
        deal_id = str(deal.id)
        if expected_version is not None and deal.version != expected_version:
            raise ConcurrencyConflictError(
                deal_id, f"expected version {expected_version}, found {deal.version}"
            )

        sequence = self._next_sequence(deal.id)
        try:
            for field, value in transition.deal_updates.items():
                setattr(deal, field, value)
            self._append_audit(deal, transition, sequence=sequence)
            self.db.flush()
        except (StaleDataError, IntegrityError) as e:
            raise ConcurrencyConflictError(deal_id) from e
        return deal

    def _next_sequence(self, deal_id: uuid.UUID) -> int:
        current = (
            self.db.query(func.max(DealStageHistory.sequence))
            .filter(DealStageHistory.deal_id == deal_id)
            .scalar()
        )
        return (current or 0) + 1

    def _append_audit(self, deal: Deal, transition: StageTransition, sequence: int) -> None:
        self.db.add(
            DealStageHistory(
                deal_id=deal.id,
                sequence=sequence,
                from_stage=transition.from_stage,
                to_stage=transition.to_stage,
                changed_by=transition.actor,
                changed_at=transition.occurred_at,
                notes=transition.history_note,
            )
        )
        self.db.add(
            DealComment(
                deal_id=deal.id,
                author_id=transition.actor,
                content=transition.comment,
                is_internal=True,
                created_at=transition.occurred_at,
            )
        )

    def get_stage_history(self, deal_id: uuid.UUID) -> List[DealStageHistory]:
        """History oldest first"""
        return (
            self.db.query(DealStageHistory)
            .filter(DealStageHistory.deal_id == deal_id)
            .order_by(DealStageHistory.sequence.asc())
            .all()
        )

    def get_comments(self, deal_id: uuid.UUID) -> List[DealComment]:
        return (
            self.db.query(DealComment)
            .filter(DealComment.deal_id == deal_id)
            .order_by(DealComment.created_at.asc())
            .all()
        )
