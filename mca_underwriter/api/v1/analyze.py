"""POST /v1/underwriting/analyze - advisory risk, stacking and offer analysis"""

import logging
import time
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from mca_underwriter.api.dependencies import get_request_id, parse_deal_id
from mca_underwriter.config import settings
from mca_underwriter.api.v1.schemas import AnalyzeRequest, AnalyzeResponse
from mca_underwriter.domain.exceptions import DealNotFoundError, InvalidInputError
from mca_underwriter.domain.underwriting import analyze_deal
from mca_underwriter.infrastructure.database import mappers
from mca_underwriter.infrastructure.database.repositories import DealRepository
from mca_underwriter.infrastructure.database.session import get_db
from mca_underwriter.infrastructure.observability.logging import log_analysis
from mca_underwriter.infrastructure.observability.metrics import record_analysis

router = APIRouter()


@router.post("/underwriting/analyze", response_model=AnalyzeResponse)
def analyze(
    request_body: AnalyzeRequest,
    request: Request,
    db: Session = Depends(get_db),
):
    """
    Score a deal, look for stacked positions and price the standard offer.

    Nothing is persisted; repeating the call with unchanged data returns the
    same result.
    """
    start_time = time.perf_counter()
    request_id = get_request_id(request)
    deal_id = parse_deal_id(request_body.deal_id)

    try:
        deal = DealRepository(db).get_deal_or_raise(deal_id)
        merchant = deal.merchant

        analysis = analyze_deal(
            merchant=mappers.merchant_snapshot(merchant),
            owners=mappers.owner_snapshots(merchant),
            bank_analysis=mappers.bank_analysis_snapshot(deal.bank_analysis),
            deal=mappers.deal_snapshot(deal),
            ucc_filings=mappers.ucc_filings(merchant),
            broker_commission_rate=mappers.broker_commission_rate(deal, settings.default_commission_rate),
        )

        duration_ms = (time.perf_counter() - start_time) * 1000
        record_analysis(
            analysis.risk.grade.value,
            analysis.offer.holdback_percentage if analysis.offer is not None else None,
        )
        log_analysis(
            request_id,
            str(deal.id),
            analysis.risk.grade.value,
            analysis.risk.total_score,
            analysis.stacking.stacking_detected,
            analysis.risk.reduced_confidence,
            duration_ms,
        )

        return AnalyzeResponse(
            deal_id=str(deal.id),
            merchant_name=merchant.legal_name,
            risk_analysis=analysis.risk,
            stacking_analysis=analysis.stacking,
            offer=analysis.offer,
            bank_metrics=analysis.bank_metrics,
            timestamp=datetime.now(timezone.utc),
        )

    except DealNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))

    except InvalidInputError as e:
        logging.warning(f"Invalid underwriting input: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=422, detail=str(e))

    except Exception as e:
        db.rollback()
        logging.error(f"Unexpected error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")
