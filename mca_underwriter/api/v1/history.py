"""GET /v1/deals/{deal_id}/history - stage history and audit comments"""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from mca_underwriter.api.dependencies import parse_deal_id
from mca_underwriter.api.v1.schemas import CommentItem, HistoryItem, HistoryResponse
from mca_underwriter.domain.exceptions import DealNotFoundError
from mca_underwriter.infrastructure.database.repositories import DealRepository
from mca_underwriter.infrastructure.database.session import get_db

router = APIRouter()


@router.get("/deals/{deal_id}/history", response_model=HistoryResponse)
def get_deal_history(
    deal_id: str,
    db: Session = Depends(get_db),
):
    """
    Retrieve a deal's stage history, oldest first.

    Returns:
        Ordered transitions (starting with the opening NEW_LEAD row) and comments
    """
    repo = DealRepository(db)
    try:
        deal = repo.get_deal_or_raise(parse_deal_id(deal_id))
    except DealNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))

    return HistoryResponse(
        deal_id=str(deal.id),
        current_stage=deal.stage,
        history=[HistoryItem.model_validate(h) for h in repo.get_stage_history(deal.id)],
        comments=[CommentItem.model_validate(c) for c in repo.get_comments(deal.id)],
    )
