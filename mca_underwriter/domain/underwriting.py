"""Underwriting entry point - runs every engine component for one deal"""

from typing import Optional, Sequence

from mca_underwriter.domain.bank_metrics import analyze_bank_metrics
from mca_underwriter.domain.models import (
    BankAnalysisSnapshot,
    DealAnalysis,
    DealSnapshot,
    MerchantSnapshot,
    OwnerSnapshot,
    UCCFiling,
)
from mca_underwriter.domain.offers import calculate_offer
from mca_underwriter.domain.policy import DEFAULT_POLICY, PolicyTable
from mca_underwriter.domain.scoring import calculate_risk_score
from mca_underwriter.domain.stacking import detect_stacking


def analyze_deal(
    merchant: MerchantSnapshot,
    owners: Sequence[OwnerSnapshot],
    bank_analysis: Optional[BankAnalysisSnapshot],
    deal: DealSnapshot,
    ucc_filings: Sequence[UCCFiling] = (),
    broker_commission_rate=None,
    policy: PolicyTable = DEFAULT_POLICY,
) -> DealAnalysis:
    """
    Advisory analysis for a deal. Read-only and safe to repeat.

    The offer is only priced when monthly revenue is known; bank metrics only
    when a bank analysis exists.
    """
    risk = calculate_risk_score(merchant, owners, bank_analysis, deal, policy)
    stacking = detect_stacking(bank_analysis, ucc_filings)

    offer = None
    if merchant.monthly_revenue:
        existing_daily_load = (
            bank_analysis.estimated_daily_load
            if bank_analysis is not None and bank_analysis.estimated_daily_load is not None
            else 0
        )
        offer = calculate_offer(
            risk.grade,
            deal.requested_amount,
            merchant.monthly_revenue,
            deal.existing_positions,
            existing_daily_load,
            broker_commission_rate,
            policy,
        )

    bank_metrics = analyze_bank_metrics(bank_analysis) if bank_analysis is not None else None

    return DealAnalysis(risk=risk, stacking=stacking, offer=offer, bank_metrics=bank_metrics)
