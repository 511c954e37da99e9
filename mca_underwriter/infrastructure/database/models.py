"""SQLAlchemy ORM models for deals, their underwriting inputs and audit trail"""

import uuid
from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    JSON,
    Numeric,
    Text,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func

from mca_underwriter.domain.enums import DealStage, IndustryRiskTier, PaperGrade, RevenueTrend, UCCStatus

Base = declarative_base()


def _enum(enum_cls):
    """Enums persist as their text value, not as a native database type"""
    return Enum(enum_cls, native_enum=False, length=32, values_callable=lambda e: [m.value for m in e])


class Merchant(Base):
    """Business applying for an advance"""

    __tablename__ = "merchants"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    legal_name = Column(Text, nullable=False)
    time_in_business_months = Column(Integer, nullable=True)
    monthly_revenue = Column(Numeric(14, 2), nullable=True)
    industry_risk_tier = Column(_enum(IndustryRiskTier), nullable=False, default=IndustryRiskTier.MEDIUM)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    owners = relationship("Owner", back_populates="merchant", cascade="all, delete-orphan", order_by="Owner.created_at")
    ucc_filings = relationship("UCCFilingRecord", back_populates="merchant", cascade="all, delete-orphan")
    deals = relationship("Deal", back_populates="merchant")


class Owner(Base):
    """Merchant owner with credit profile"""

    __tablename__ = "owners"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    merchant_id = Column(UUID(as_uuid=True), ForeignKey("merchants.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(Text, nullable=False)
    fico_score = Column(Integer, nullable=True)
    ownership_percentage = Column(Numeric(5, 2), nullable=False, default=100)
    is_primary = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    merchant = relationship("Merchant", back_populates="owners")


class UCCFilingRecord(Base):
    """UCC lien filed against a merchant"""

    __tablename__ = "ucc_filings"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    merchant_id = Column(UUID(as_uuid=True), ForeignKey("merchants.id", ondelete="CASCADE"), nullable=False, index=True)
    filing_number = Column(Text, nullable=True)
    status = Column(_enum(UCCStatus), nullable=False, default=UCCStatus.FILED)
    filed_at = Column(DateTime(timezone=True), nullable=True)

    merchant = relationship("Merchant", back_populates="ucc_filings")


class Broker(Base):
    """ISO/broker who submitted the deal"""

    __tablename__ = "brokers"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    company_name = Column(Text, nullable=False)
    commission_rate = Column(Numeric(5, 4), nullable=True)

    deals = relationship("Deal", back_populates="broker")


class Deal(Base):
    """Funding request moving through the underwriting pipeline"""

    __tablename__ = "deals"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    merchant_id = Column(UUID(as_uuid=True), ForeignKey("merchants.id"), nullable=False, index=True)
    broker_id = Column(UUID(as_uuid=True), ForeignKey("brokers.id"), nullable=True)
    source = Column(Text, nullable=True)

    requested_amount = Column(Numeric(14, 2), nullable=False)
    existing_positions = Column(Integer, nullable=False, default=0)
    stacking_detected = Column(Boolean, nullable=False, default=False)

    stage = Column(_enum(DealStage), nullable=False, default=DealStage.NEW_LEAD)
    stage_changed_at = Column(DateTime(timezone=True), nullable=True)

    # Decision outputs
    paper_grade = Column(_enum(PaperGrade), nullable=True)
    risk_score = Column(Integer, nullable=True)
    approved_amount = Column(Numeric(14, 2), nullable=True)
    factor_rate = Column(Numeric(6, 4), nullable=True)
    term_days = Column(Integer, nullable=True)
    daily_payment = Column(Numeric(14, 2), nullable=True)
    weekly_payment = Column(Numeric(14, 2), nullable=True)
    payback_amount = Column(Numeric(14, 2), nullable=True)
    decision_notes = Column(Text, nullable=True)
    decline_reasons = Column(JSON, nullable=True)
    underwriter_id = Column(Text, nullable=True)
    decision_date = Column(DateTime(timezone=True), nullable=True)
    funded_at = Column(DateTime(timezone=True), nullable=True)

    # Optimistic lock: every UPDATE checks and bumps this
    version = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    __mapper_args__ = {"version_id_col": version}

    merchant = relationship("Merchant", back_populates="deals")
    broker = relationship("Broker", back_populates="deals")
    bank_analysis = relationship("BankAnalysis", back_populates="deal", uselist=False, cascade="all, delete-orphan")
    stage_history = relationship(
        "DealStageHistory", back_populates="deal", order_by="DealStageHistory.sequence", cascade="all, delete-orphan"
    )
    comments = relationship(
        "DealComment", back_populates="deal", order_by="DealComment.created_at", cascade="all, delete-orphan"
    )


class BankAnalysis(Base):
    """Pre-aggregated bank statement metrics for a deal"""

    __tablename__ = "bank_analyses"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    deal_id = Column(UUID(as_uuid=True), ForeignKey("deals.id", ondelete="CASCADE"), nullable=False, unique=True)
    avg_daily_balance = Column(Numeric(14, 2), nullable=False)
    min_balance = Column(Numeric(14, 2), nullable=False)
    max_balance = Column(Numeric(14, 2), nullable=False)
    total_deposits = Column(Numeric(14, 2), nullable=False)
    deposit_count = Column(Integer, nullable=False, default=0)
    avg_deposit = Column(Numeric(14, 2), nullable=False, default=0)
    deposit_days_count = Column(Integer, nullable=False, default=0)
    nsf_count = Column(Integer, nullable=False, default=0)
    overdraft_count = Column(Integer, nullable=False, default=0)
    months_analyzed = Column(Integer, nullable=False, default=0)
    revenue_trend = Column(_enum(RevenueTrend), nullable=False, default=RevenueTrend.STABLE)
    estimated_daily_load = Column(Numeric(14, 2), nullable=True)
    detected_mca_payments = Column(JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    deal = relationship("Deal", back_populates="bank_analysis")


class DealStageHistory(Base):
    """Append-only stage transition log"""

    __tablename__ = "deal_stage_history"
    __table_args__ = (UniqueConstraint("deal_id", "sequence", name="uq_deal_stage_history_sequence"),)

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    deal_id = Column(UUID(as_uuid=True), ForeignKey("deals.id", ondelete="CASCADE"), nullable=False, index=True)
    sequence = Column(Integer, nullable=False)
    from_stage = Column(_enum(DealStage), nullable=True)
    to_stage = Column(_enum(DealStage), nullable=False)
    changed_by = Column(Text, nullable=False)
    changed_at = Column(DateTime(timezone=True), nullable=False)
    notes = Column(Text, nullable=True)

    deal = relationship("Deal", back_populates="stage_history")


class DealComment(Base):
    """Append-only audit note on a deal"""

    __tablename__ = "deal_comments"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    deal_id = Column(UUID(as_uuid=True), ForeignKey("deals.id", ondelete="CASCADE"), nullable=False, index=True)
    author_id = Column(Text, nullable=False)
    content = Column(Text, nullable=False)
    is_internal = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False)

    deal = relationship("Deal", back_populates="comments")
