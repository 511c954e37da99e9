"""POST /v1/underwriting/decision - record an underwriting decision on a deal"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from mca_underwriter.api.dependencies import get_actor_id, get_request_id, parse_deal_id
from mca_underwriter.api.v1.schemas import DealSchema, DecisionRequest, DecisionResponse
from mca_underwriter.config import settings
from mca_underwriter.domain.exceptions import (
    ConcurrencyConflictError,
    DealNotFoundError,
    InvalidDecisionError,
    InvalidTransitionError,
)
from mca_underwriter.domain.models import DecisionPayload
from mca_underwriter.domain.stages import decision_message, plan_decision
from mca_underwriter.infrastructure.database.repositories import DealRepository
from mca_underwriter.infrastructure.database.session import get_db
from mca_underwriter.infrastructure.observability.logging import log_transition, log_transition_conflict
from mca_underwriter.infrastructure.observability.metrics import record_transition, transition_conflict_counter

router = APIRouter()


@router.post("/underwriting/decision", response_model=DecisionResponse)
def record_decision(
    request_body: DecisionRequest,
    request: Request,
    db: Session = Depends(get_db),
    actor: str = Depends(get_actor_id),
):
    """
    Apply APPROVE, COUNTER or DECLINE to a deal.

    Flow:
    1. Validate the payload for the decision type
    2. Plan the transition (stage, terms, history row, audit comment)
    3. Apply it in one unit of work and commit
    """
    request_id = get_request_id(request)
    deal_id = parse_deal_id(request_body.deal_id)

    try:
        repo = DealRepository(db)
        deal = repo.get_deal_or_raise(deal_id)

        payload = DecisionPayload(
            paper_grade=request_body.paper_grade,
            risk_score=request_body.risk_score,
            approved_amount=request_body.approved_amount,
            factor_rate=request_body.factor_rate,
            term_days=request_body.term_days,
            daily_payment=request_body.daily_payment,
            weekly_payment=request_body.weekly_payment,
            payback_amount=request_body.payback_amount,
            decline_reasons=request_body.decline_reasons,
            notes=request_body.notes,
        )
        transition = plan_decision(
            deal.stage,
            request_body.decision,
            payload,
            actor,
            enforce_forward=settings.enforce_forward_decisions,
        )
        repo.apply_transition(deal, transition, expected_version=request_body.expected_version)
        db.commit()
        db.refresh(deal)

        record_transition(transition.to_stage.value, request_body.decision.value)
        log_transition(
            request_id,
            str(deal.id),
            transition.from_stage.value if transition.from_stage else None,
            transition.to_stage.value,
            actor,
            decision=request_body.decision.value,
        )

        return DecisionResponse(
            success=True,
            deal=DealSchema.model_validate(deal),
            decision=request_body.decision,
            message=decision_message(request_body.decision),
        )

    except DealNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))

    except InvalidDecisionError as e:
        db.rollback()
        raise HTTPException(status_code=400, detail=str(e))

    except InvalidTransitionError as e:
        db.rollback()
        raise HTTPException(status_code=409, detail=str(e))

    except ConcurrencyConflictError as e:
        db.rollback()
        transition_conflict_counter.inc()
        log_transition_conflict(request_id, str(deal_id), str(e))
        raise HTTPException(status_code=409, detail=str(e))

    except Exception as e:
        db.rollback()
        logging.error(f"Unexpected error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")
