"""POST /v1/deals/{deal_id}/stage - manual pipeline moves"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from mca_underwriter.api.dependencies import get_actor_id, get_request_id, parse_deal_id
from mca_underwriter.api.v1.schemas import DealSchema, StageChangeRequest
from mca_underwriter.domain.exceptions import ConcurrencyConflictError, DealNotFoundError, InvalidTransitionError
from mca_underwriter.domain.stages import plan_stage_change
from mca_underwriter.infrastructure.database.repositories import DealRepository
from mca_underwriter.infrastructure.database.session import get_db
from mca_underwriter.infrastructure.observability.logging import log_transition, log_transition_conflict
from mca_underwriter.infrastructure.observability.metrics import record_transition, transition_conflict_counter

router = APIRouter()


@router.post("/deals/{deal_id}/stage", response_model=DealSchema)
def change_stage(
    deal_id: str,
    request_body: StageChangeRequest,
    request: Request,
    db: Session = Depends(get_db),
    actor: str = Depends(get_actor_id),
):
    """Move a deal along the pipeline; only moves in the transition map are accepted"""
    request_id = get_request_id(request)
    deal_uuid = parse_deal_id(deal_id)

    try:
        repo = DealRepository(db)
        deal = repo.get_deal_or_raise(deal_uuid)

        transition = plan_stage_change(deal.stage, request_body.stage, actor, note=request_body.notes)
        repo.apply_transition(deal, transition, expected_version=request_body.expected_version)
        db.commit()
        db.refresh(deal)

        record_transition(transition.to_stage.value)
        log_transition(request_id, str(deal.id), transition.from_stage.value, transition.to_stage.value, actor)

        return DealSchema.model_validate(deal)

    except DealNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))

    except InvalidTransitionError as e:
        db.rollback()
        raise HTTPException(status_code=409, detail=str(e))

    except ConcurrencyConflictError as e:
        db.rollback()
        transition_conflict_counter.inc()
        log_transition_conflict(request_id, deal_id, str(e))
        raise HTTPException(status_code=409, detail=str(e))

    except Exception as e:
        db.rollback()
        logging.error(f"Unexpected error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")
