"""Pydantic schemas for API request/response validation"""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from mca_underwriter.domain.enums import (
    DealStage,
    Decision,
    MetricStatus,
    PaperGrade,
    PaymentFrequency,
    StackingRiskLevel,
)


class ResponseSchema(BaseModel):
    """Responses are built straight from domain dataclasses and ORM rows"""

    model_config = ConfigDict(from_attributes=True)


# ---------------------------------------------------------------------------
# Analyze
# ---------------------------------------------------------------------------


class AnalyzeRequest(BaseModel):
    """Request body for POST /v1/underwriting/analyze"""

    deal_id: str = Field(..., min_length=1, description="Deal identifier")


class RiskComponentSchema(ResponseSchema):
    name: str
    weight: int
    score: int
    weighted_score: float
    details: str
    included: bool


class RiskAnalysisSchema(ResponseSchema):
    total_score: int
    grade: PaperGrade
    components: List[RiskComponentSchema]
    reduced_confidence: bool
    confidence_notes: List[str]
    auto_approve: bool
    auto_decline: bool
    decline_reasons: List[str]
    warnings: List[str]


class MCAPaymentSchema(ResponseSchema):
    name: str
    amount: float
    frequency: PaymentFrequency
    occurrences: int
    estimated_balance: Optional[float] = None


class StackingSignalSchema(ResponseSchema):
    source: str
    description: str
    confidence: str
    reference: Optional[str] = None


class StackingAnalysisSchema(ResponseSchema):
    stacking_detected: bool
    total_positions: int
    signals: List[StackingSignalSchema]
    detected_payments: List[MCAPaymentSchema]
    total_daily_load: float
    risk_level: StackingRiskLevel
    recommendations: List[str]


class OfferSchema(ResponseSchema):
    approved_amount: float
    factor_rate: float
    payback_amount: float
    term_days: int
    daily_payment: float
    weekly_payment: float
    holdback_percentage: float
    position: int
    commission: float
    commission_rate: float


class BankMetricSchema(ResponseSchema):
    name: str
    value: str
    status: MetricStatus
    description: str


class BankMetricsSchema(ResponseSchema):
    nsf_per_month: Optional[float] = None
    overdraft_per_month: Optional[float] = None
    deposit_day_coverage: Optional[float] = None
    balance_volatility: Optional[float] = None
    health_score: int
    metrics: List[BankMetricSchema]


class AnalyzeResponse(BaseModel):
    """Response for POST /v1/underwriting/analyze"""

    deal_id: str
    merchant_name: str
    risk_analysis: RiskAnalysisSchema
    stacking_analysis: StackingAnalysisSchema
    offer: Optional[OfferSchema] = None
    bank_metrics: Optional[BankMetricsSchema] = None
    timestamp: datetime


# ---------------------------------------------------------------------------
# Offer
# ---------------------------------------------------------------------------


class OfferRequest(BaseModel):
    """Request body for POST /v1/underwriting/offer"""

    deal_id: str = Field(..., min_length=1)
    grade: Optional[PaperGrade] = None
    custom_amount: Optional[Decimal] = Field(default=None, gt=0)
    custom_factor_rate: Optional[Decimal] = Field(default=None, gt=0)
    custom_term_days: Optional[int] = Field(default=None, gt=0)


class OfferTierSchema(ResponseSchema):
    name: str
    amount: float
    factor_rate: float
    term_days: int
    max_multiple: float
    daily_payment: float
    weekly_payment: float
    payback_amount: float


class RateRangeSchema(ResponseSchema):
    min: float
    max: float
    default: float


class TermRangeSchema(ResponseSchema):
    min: int
    max: int
    default: int


class OfferConstraintsSchema(ResponseSchema):
    max_amount: float
    max_multiple: float
    factor_rate_range: RateRangeSchema
    term_days_range: TermRangeSchema
    daily_revenue: float
    max_daily_payment_capacity: float


class OfferResponse(BaseModel):
    """Response for POST /v1/underwriting/offer"""

    deal_id: str
    merchant_name: str
    paper_grade: PaperGrade
    monthly_revenue: float
    requested_amount: float
    existing_positions: int
    existing_daily_load: float
    standard_offer: OfferSchema
    offer_tiers: List[OfferTierSchema]
    custom_offer: Optional[OfferSchema] = None
    constraints: OfferConstraintsSchema


# ---------------------------------------------------------------------------
# Decision and stage changes
# ---------------------------------------------------------------------------


class DecisionRequest(BaseModel):
    """Request body for POST /v1/underwriting/decision"""

    deal_id: str = Field(..., min_length=1)
    decision: Decision
    paper_grade: Optional[PaperGrade] = None
    risk_score: Optional[int] = None
    approved_amount: Optional[Decimal] = None
    factor_rate: Optional[Decimal] = None
    term_days: Optional[int] = None
    daily_payment: Optional[Decimal] = None
    weekly_payment: Optional[Decimal] = None
    payback_amount: Optional[Decimal] = None
    decline_reasons: List[str] = Field(default_factory=list)
    notes: Optional[str] = None
    expected_version: Optional[int] = Field(default=None, description="Reject if the deal has moved on")


class StageChangeRequest(BaseModel):
    """Request body for POST /v1/deals/{deal_id}/stage"""

    stage: DealStage
    notes: Optional[str] = None
    expected_version: Optional[int] = None


class DealSchema(ResponseSchema):
    id: uuid.UUID
    stage: DealStage
    version: int
    requested_amount: float
    existing_positions: int
    stacking_detected: bool
    paper_grade: Optional[PaperGrade] = None
    risk_score: Optional[int] = None
    approved_amount: Optional[float] = None
    factor_rate: Optional[float] = None
    term_days: Optional[int] = None
    daily_payment: Optional[float] = None
    weekly_payment: Optional[float] = None
    payback_amount: Optional[float] = None
    decision_notes: Optional[str] = None
    decline_reasons: Optional[List[str]] = None
    underwriter_id: Optional[str] = None
    stage_changed_at: Optional[datetime] = None
    decision_date: Optional[datetime] = None
    funded_at: Optional[datetime] = None


class DecisionResponse(BaseModel):
    """Response for POST /v1/underwriting/decision"""

    success: bool
    deal: DealSchema
    decision: Decision
    message: str


# ---------------------------------------------------------------------------
# History
# ---------------------------------------------------------------------------


class HistoryItem(ResponseSchema):
    """Single stage transition"""

    sequence: int
    from_stage: Optional[DealStage] = None
    to_stage: DealStage
    changed_by: str
    changed_at: datetime
    notes: Optional[str] = None


class CommentItem(ResponseSchema):
    author_id: str
    content: str
    created_at: datetime


class HistoryResponse(BaseModel):
    """Response for GET /v1/deals/{deal_id}/history"""

    deal_id: str
    current_stage: DealStage
    history: List[HistoryItem]
    comments: List[CommentItem]
