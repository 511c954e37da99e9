"""Pytest fixtures for testing"""

import pytest
from decimal import Decimal
from typing import Generator
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from mca_underwriter.api.main import create_app
from mca_underwriter.domain.enums import IndustryRiskTier, PaymentFrequency, RevenueTrend
from mca_underwriter.domain.models import (
    BankAnalysisSnapshot,
    DealSnapshot,
    MCAPayment,
    MerchantSnapshot,
    OwnerSnapshot,
)
from mca_underwriter.infrastructure.database.models import BankAnalysis, Base, Broker, Merchant, Owner
from mca_underwriter.infrastructure.database.repositories import DealRepository
from mca_underwriter.infrastructure.database.session import get_db


# Test database
TEST_DATABASE_URL = "sqlite:///./test.db"
engine = create_engine(TEST_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def session_factory():
    """Create tables and hand out independent sessions (one per simulated writer)"""
    Base.metadata.create_all(bind=engine)
    try:
        yield TestingSessionLocal
    finally:
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db(session_factory) -> Generator[Session, None, None]:
    """Create test database and session"""
    db = session_factory()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def client(db: Session) -> TestClient:
    """Create FastAPI test client with test database"""
    app = create_app()

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    return TestClient(app)


@pytest.fixture
def create_deal(db: Session):
    """Persist a merchant, its owner, an optional bank analysis and a NEW_LEAD deal"""

    def _create(
        requested_amount="50000",
        monthly_revenue="75000",
        time_in_business_months=36,
        industry_risk_tier=IndustryRiskTier.MEDIUM,
        fico_score=720,
        with_bank=True,
        broker_commission_rate=None,
        existing_positions=0,
    ):
        merchant = Merchant(
            legal_name="Blue Harbor Bistro LLC",
            time_in_business_months=time_in_business_months,
            monthly_revenue=Decimal(monthly_revenue) if monthly_revenue is not None else None,
            industry_risk_tier=industry_risk_tier,
        )
        merchant.owners.append(
            Owner(name="Dana Reyes", fico_score=fico_score, ownership_percentage=Decimal("100"), is_primary=True)
        )
        db.add(merchant)

        broker_id = None
        if broker_commission_rate is not None:
            broker = Broker(company_name="Summit ISO", commission_rate=Decimal(broker_commission_rate))
            db.add(broker)
            db.flush()
            broker_id = broker.id
        db.flush()

        deal = DealRepository(db).create_deal(
            merchant_id=merchant.id,
            requested_amount=Decimal(requested_amount),
            actor="broker-portal",
            broker_id=broker_id,
            existing_positions=existing_positions,
        )
        if with_bank:
            db.add(
                BankAnalysis(
                    deal_id=deal.id,
                    avg_daily_balance=Decimal("18000"),
                    min_balance=Decimal("4000"),
                    max_balance=Decimal("30000"),
                    total_deposits=Decimal("225000"),
                    deposit_count=66,
                    avg_deposit=Decimal("3409.09"),
                    deposit_days_count=60,
                    nsf_count=0,
                    overdraft_count=0,
                    months_analyzed=3,
                    revenue_trend=RevenueTrend.STABLE,
                    estimated_daily_load=Decimal("0"),
                    detected_mca_payments=[],
                )
            )
        db.commit()
        db.refresh(deal)
        return deal

    return _create


@pytest.fixture
def healthy_bank() -> BankAnalysisSnapshot:
    """Three months of clean statements"""
    return BankAnalysisSnapshot(
        avg_daily_balance=Decimal("18000"),
        min_balance=Decimal("4000"),
        max_balance=Decimal("30000"),
        total_deposits=Decimal("225000"),
        deposit_count=66,
        avg_deposit=Decimal("3409.09"),
        deposit_days_count=60,
        nsf_count=0,
        overdraft_count=0,
        months_analyzed=3,
        revenue_trend=RevenueTrend.STABLE,
        estimated_daily_load=Decimal("0"),
    )


@pytest.fixture
def stacked_bank() -> BankAnalysisSnapshot:
    """Statements showing two funders pulling daily"""
    return BankAnalysisSnapshot(
        avg_daily_balance=Decimal("6000"),
        min_balance=Decimal("-250"),
        max_balance=Decimal("15000"),
        total_deposits=Decimal("120000"),
        deposit_count=40,
        avg_deposit=Decimal("3000"),
        deposit_days_count=30,
        nsf_count=4,
        overdraft_count=2,
        months_analyzed=3,
        revenue_trend=RevenueTrend.DECLINING,
        estimated_daily_load=Decimal("650"),
        detected_mca_payments=[
            MCAPayment(name="RAPID ADVANCE DAILY", amount=Decimal("400"), frequency=PaymentFrequency.DAILY, occurrences=60),
            MCAPayment(name="ACH DEBIT 88231", amount=Decimal("250"), frequency=PaymentFrequency.DAILY, occurrences=58),
        ],
    )


@pytest.fixture
def established_merchant() -> MerchantSnapshot:
    return MerchantSnapshot(
        time_in_business_months=36,
        monthly_revenue=Decimal("75000"),
        industry_risk_tier=IndustryRiskTier.MEDIUM,
        legal_name="Blue Harbor Bistro LLC",
    )


@pytest.fixture
def primary_owner() -> OwnerSnapshot:
    return OwnerSnapshot(fico_score=680, ownership_percentage=Decimal("100"), is_primary=True)


@pytest.fixture
def standard_deal() -> DealSnapshot:
    return DealSnapshot(requested_amount=Decimal("50000"))
