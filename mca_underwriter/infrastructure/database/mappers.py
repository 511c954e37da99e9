"""Convert ORM rows into the engine's read-only snapshots"""

from decimal import Decimal
from typing import List, Optional

from mca_underwriter.domain.enums import PaymentFrequency
from mca_underwriter.domain.exceptions import InvalidInputError
from mca_underwriter.domain.models import (
    BankAnalysisSnapshot,
    DealSnapshot,
    MCAPayment,
    MerchantSnapshot,
    OwnerSnapshot,
    UCCFiling,
)
from mca_underwriter.infrastructure.database.models import BankAnalysis, Deal, Merchant


def _decimal(value) -> Optional[Decimal]:
    return Decimal(str(value)) if value is not None else None


def merchant_snapshot(merchant: Merchant) -> MerchantSnapshot:
    return MerchantSnapshot(
        time_in_business_months=merchant.time_in_business_months,
        monthly_revenue=_decimal(merchant.monthly_revenue),
        industry_risk_tier=merchant.industry_risk_tier,
        legal_name=merchant.legal_name,
    )


def owner_snapshots(merchant: Merchant) -> List[OwnerSnapshot]:
    return [
        OwnerSnapshot(
            fico_score=owner.fico_score,
            ownership_percentage=_decimal(owner.ownership_percentage),
            is_primary=owner.is_primary,
        )
        for owner in merchant.owners
    ]


def ucc_filings(merchant: Merchant) -> List[UCCFiling]:
    return [UCCFiling(filing_number=f.filing_number, status=f.status) for f in merchant.ucc_filings]


def _mca_payment(raw: dict) -> MCAPayment:
    """Detected payments are stored as JSON; parse each entry"""
    try:
        return MCAPayment(
            name=raw.get("name", ""),
            amount=Decimal(str(raw["amount"])),
            frequency=PaymentFrequency(str(raw["frequency"]).upper()),
            occurrences=int(raw.get("occurrences", 0)),
            estimated_balance=_decimal(raw.get("estimated_balance")),
        )
    except (KeyError, ValueError, TypeError) as e:
        raise InvalidInputError(f"Invalid detected MCA payment record: {e}") from e


def bank_analysis_snapshot(analysis: Optional[BankAnalysis]) -> Optional[BankAnalysisSnapshot]:
    if analysis is None:
        return None
    return BankAnalysisSnapshot(
        avg_daily_balance=_decimal(analysis.avg_daily_balance),
        min_balance=_decimal(analysis.min_balance),
        max_balance=_decimal(analysis.max_balance),
        total_deposits=_decimal(analysis.total_deposits),
        deposit_count=analysis.deposit_count,
        avg_deposit=_decimal(analysis.avg_deposit),
        deposit_days_count=analysis.deposit_days_count,
        nsf_count=analysis.nsf_count,
        overdraft_count=analysis.overdraft_count,
        months_analyzed=analysis.months_analyzed,
        revenue_trend=analysis.revenue_trend,
        estimated_daily_load=_decimal(analysis.estimated_daily_load),
        detected_mca_payments=[_mca_payment(p) for p in analysis.detected_mca_payments or []],
    )


def deal_snapshot(deal: Deal) -> DealSnapshot:
    return DealSnapshot(
        requested_amount=_decimal(deal.requested_amount),
        existing_positions=deal.existing_positions,
        stacking_detected=deal.stacking_detected,
    )


def broker_commission_rate(deal: Deal, default=None) -> Optional[Decimal]:
    """Broker rate for the deal, else the configured house default"""
    if deal.broker is None or deal.broker.commission_rate is None:
        return _decimal(default)
    return _decimal(deal.broker.commission_rate)
