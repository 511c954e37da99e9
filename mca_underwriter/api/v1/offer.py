"""POST /v1/underwriting/offer - standard offer, tier ladder and custom pricing"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from mca_underwriter.api.dependencies import get_request_id, parse_deal_id
from mca_underwriter.api.v1.schemas import OfferRequest, OfferResponse
from mca_underwriter.config import settings
from mca_underwriter.domain.enums import PaperGrade
from mca_underwriter.domain.exceptions import DealNotFoundError, InvalidInputError, MissingPrerequisiteError
from mca_underwriter.domain.offers import (
    calculate_custom_offer,
    calculate_offer,
    generate_offer_tiers,
    offer_constraints,
)
from mca_underwriter.infrastructure.database import mappers
from mca_underwriter.infrastructure.database.repositories import DealRepository
from mca_underwriter.infrastructure.database.session import get_db

router = APIRouter()


@router.post("/underwriting/offer", response_model=OfferResponse)
def build_offer(
    request_body: OfferRequest,
    request: Request,
    db: Session = Depends(get_db),
):
    """
    Price a deal for the reviewer.

    Grade comes from the request, then the deal's recorded grade, then the
    configured default. Custom pricing is only computed when at least one
    custom_* field is supplied.
    """
    request_id = get_request_id(request)
    deal_id = parse_deal_id(request_body.deal_id)

    try:
        deal = DealRepository(db).get_deal_or_raise(deal_id)
        merchant = mappers.merchant_snapshot(deal.merchant)
        bank = mappers.bank_analysis_snapshot(deal.bank_analysis)

        grade = request_body.grade or deal.paper_grade or PaperGrade(settings.default_offer_grade)
        requested = request_body.custom_amount or deal.requested_amount
        existing_daily_load = bank.estimated_daily_load if bank and bank.estimated_daily_load is not None else 0
        commission_rate = mappers.broker_commission_rate(deal, settings.default_commission_rate)

        standard = calculate_offer(
            grade,
            requested,
            merchant.monthly_revenue,
            deal.existing_positions,
            existing_daily_load,
            commission_rate,
        )
        tiers = generate_offer_tiers(grade, requested, merchant.monthly_revenue)

        custom = None
        if (
            request_body.custom_amount is not None
            or request_body.custom_factor_rate is not None
            or request_body.custom_term_days is not None
        ):
            custom = calculate_custom_offer(
                grade,
                merchant.monthly_revenue,
                deal.existing_positions,
                existing_daily_load,
                commission_rate,
                amount=request_body.custom_amount,
                factor_rate=request_body.custom_factor_rate,
                term_days=request_body.custom_term_days,
                requested_amount=deal.requested_amount,
                clamp=settings.clamp_custom_offers,
            )

        constraints = offer_constraints(
            grade,
            merchant.monthly_revenue,
            existing_daily_load,
            settings.max_holdback_percentage,
        )

        return OfferResponse(
            deal_id=str(deal.id),
            merchant_name=merchant.legal_name,
            paper_grade=grade,
            monthly_revenue=merchant.monthly_revenue,
            requested_amount=deal.requested_amount,
            existing_positions=deal.existing_positions,
            existing_daily_load=existing_daily_load,
            standard_offer=standard,
            offer_tiers=tiers,
            custom_offer=custom,
            constraints=constraints,
        )

    except DealNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))

    except MissingPrerequisiteError as e:
        raise HTTPException(status_code=400, detail=str(e))

    except InvalidInputError as e:
        logging.warning(f"Invalid offer input: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=422, detail=str(e))

    except Exception as e:
        db.rollback()
        logging.error(f"Unexpected error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")
