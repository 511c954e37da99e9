"""Domain models - pure Python dataclasses representing underwriting inputs and outputs"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from mca_underwriter.domain.enums import (
    DealStage,
    IndustryRiskTier,
    MetricStatus,
    PaperGrade,
    PaymentFrequency,
    RevenueTrend,
    StackingRiskLevel,
    UCCStatus,
)


# ---------------------------------------------------------------------------
# Inputs (read-only snapshots of persisted entities)
# ---------------------------------------------------------------------------


@dataclass
class MerchantSnapshot:
    """Merchant attributes used for scoring"""

    time_in_business_months: Optional[int]
    monthly_revenue: Optional[Decimal]
    industry_risk_tier: IndustryRiskTier = IndustryRiskTier.MEDIUM
    legal_name: str = ""


@dataclass
class OwnerSnapshot:
    """Business owner; FICO may be unknown"""

    fico_score: Optional[int]
    ownership_percentage: Decimal
    is_primary: bool = False


@dataclass
class MCAPayment:
    """Recurring debit pattern detected in bank statements"""

    name: str
    amount: Decimal
    frequency: PaymentFrequency
    occurrences: int = 0
    estimated_balance: Optional[Decimal] = None


@dataclass
class BankAnalysisSnapshot:
    """Pre-aggregated bank statement metrics for one deal"""

    avg_daily_balance: Decimal
    min_balance: Decimal
    max_balance: Decimal
    total_deposits: Decimal
    deposit_count: int
    avg_deposit: Decimal
    deposit_days_count: int
    nsf_count: int
    overdraft_count: int
    months_analyzed: int
    revenue_trend: RevenueTrend = RevenueTrend.STABLE
    estimated_daily_load: Optional[Decimal] = None
    detected_mca_payments: List[MCAPayment] = field(default_factory=list)


@dataclass
class UCCFiling:
    """Public lien filing recorded against the merchant"""

    filing_number: Optional[str]
    status: UCCStatus


@dataclass
class DealSnapshot:
    """Deal attributes used for scoring"""

    requested_amount: Decimal
    existing_positions: int = 0
    stacking_detected: bool = False


# ---------------------------------------------------------------------------
# Engine outputs
# ---------------------------------------------------------------------------


@dataclass
class RiskComponent:
    """One weighted factor of the risk score"""

    name: str
    weight: int
    score: int
    weighted_score: float
    details: str
    included: bool = True


@dataclass
class RiskAssessment:
    """Output of the risk scorer"""

    total_score: int
    grade: PaperGrade
    components: List[RiskComponent]
    reduced_confidence: bool
    confidence_notes: List[str]
    auto_approve: bool
    auto_decline: bool
    decline_reasons: List[str]
    warnings: List[str]


@dataclass
class StackingSignal:
    """Evidence that the merchant carries an existing position"""

    source: str  # "BANK" or "UCC"
    description: str
    confidence: str  # HIGH | MEDIUM
    reference: Optional[str] = None


@dataclass
class StackingAnalysis:
    """Output of the stacking detector"""

    stacking_detected: bool
    total_positions: int
    signals: List[StackingSignal]
    detected_payments: List[MCAPayment]
    total_daily_load: Decimal
    risk_level: StackingRiskLevel
    recommendations: List[str]


@dataclass
class BankMetric:
    """Reviewer-facing bank health indicator"""

    name: str
    value: str
    status: MetricStatus
    description: str


@dataclass
class BankMetrics:
    """Derived bank health ratios; None where the denominator is zero"""

    nsf_per_month: Optional[float]
    overdraft_per_month: Optional[float]
    deposit_day_coverage: Optional[float]
    balance_volatility: Optional[float]
    health_score: int
    metrics: List[BankMetric]


@dataclass
class Offer:
    """Funding offer; money rounded to cents, holdback to one decimal"""

    approved_amount: Decimal
    factor_rate: Decimal
    payback_amount: Decimal
    term_days: int
    daily_payment: Decimal
    weekly_payment: Decimal
    holdback_percentage: Decimal
    position: int
    commission: Decimal
    commission_rate: Decimal


@dataclass
class OfferTier:
    """Alternative pricing point within a grade's allowed ranges"""

    name: str
    amount: Decimal
    factor_rate: Decimal
    term_days: int
    max_multiple: Decimal
    daily_payment: Decimal
    weekly_payment: Decimal
    payback_amount: Decimal


@dataclass
class DealAnalysis:
    """Combined advisory output for one deal"""

    risk: RiskAssessment
    stacking: StackingAnalysis
    offer: Optional[Offer]
    bank_metrics: Optional[BankMetrics]


# ---------------------------------------------------------------------------
# State machine
# ---------------------------------------------------------------------------


@dataclass
class DecisionPayload:
    """Terms and rationale accompanying an underwriting decision"""

    paper_grade: Optional[PaperGrade] = None
    risk_score: Optional[int] = None
    approved_amount: Optional[Decimal] = None
    factor_rate: Optional[Decimal] = None
    term_days: Optional[int] = None
    daily_payment: Optional[Decimal] = None
    weekly_payment: Optional[Decimal] = None
    payback_amount: Optional[Decimal] = None
    decline_reasons: List[str] = field(default_factory=list)
    notes: Optional[str] = None


@dataclass
class StageTransition:
    """Planned transition: deal field updates plus the history row and comment to append"""

    from_stage: Optional[DealStage]
    to_stage: DealStage
    actor: str
    occurred_at: datetime
    deal_updates: Dict[str, Any]
    history_note: Optional[str]
    comment: str
