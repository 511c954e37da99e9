"""Underwriting policy tables.

Pricing and grading constants live in a single immutable, versioned
PolicyTable. Calculators take the table as a parameter so an alternative
policy can be audited and swapped without touching the math.
"""

from dataclasses import dataclass
from decimal import Decimal
from types import MappingProxyType
from typing import Mapping

from mca_underwriter.domain.enums import PaperGrade


@dataclass(frozen=True)
class RateRange:
    """Allowed factor-rate range for a grade"""

    min: Decimal
    max: Decimal
    default: Decimal


@dataclass(frozen=True)
class TermRange:
    """Allowed term (business days) range for a grade"""

    min: int
    max: int
    default: int


@dataclass(frozen=True)
class GradeThreshold:
    """Minimum composite score and FICO to earn a grade"""

    min_score: int
    min_fico: int


@dataclass(frozen=True)
class PolicyTable:
    version: str
    factor_rates: Mapping[PaperGrade, RateRange]
    term_days: Mapping[PaperGrade, TermRange]
    max_multiples: Mapping[PaperGrade, Decimal]
    grade_thresholds: Mapping[PaperGrade, GradeThreshold]
    business_days_per_month: int = 22
    payment_days_per_week: int = 5
    conservative_amount_ratio: Decimal = Decimal("0.75")
    conservative_multiple_ratio: Decimal = Decimal("0.75")
    aggressive_multiple_ratio: Decimal = Decimal("1.1")

    def __post_init__(self):
        # Every grade must be priced; a missing grade is a broken policy, not a runtime branch
        for table_name in ("factor_rates", "term_days", "max_multiples", "grade_thresholds"):
            missing = set(PaperGrade) - set(getattr(self, table_name))
            if missing:
                names = ", ".join(sorted(g.value for g in missing))
                raise ValueError(f"Policy {self.version} {table_name} missing grades: {names}")


DEFAULT_POLICY = PolicyTable(
    version="2024.1",
    factor_rates=MappingProxyType({
        PaperGrade.A: RateRange(Decimal("1.15"), Decimal("1.25"), Decimal("1.20")),
        PaperGrade.B: RateRange(Decimal("1.26"), Decimal("1.35"), Decimal("1.30")),
        PaperGrade.C: RateRange(Decimal("1.36"), Decimal("1.45"), Decimal("1.40")),
        PaperGrade.D: RateRange(Decimal("1.46"), Decimal("1.55"), Decimal("1.50")),
    }),
    term_days=MappingProxyType({
        PaperGrade.A: TermRange(90, 180, 120),
        PaperGrade.B: TermRange(90, 150, 120),
        PaperGrade.C: TermRange(60, 120, 90),
        PaperGrade.D: TermRange(60, 90, 60),
    }),
    max_multiples=MappingProxyType({
        PaperGrade.A: Decimal("1.5"),
        PaperGrade.B: Decimal("1.25"),
        PaperGrade.C: Decimal("1.0"),
        PaperGrade.D: Decimal("0.75"),
    }),
    # Checked best-first; D is the floor
    grade_thresholds=MappingProxyType({
        PaperGrade.A: GradeThreshold(min_score=75, min_fico=650),
        PaperGrade.B: GradeThreshold(min_score=60, min_fico=575),
        PaperGrade.C: GradeThreshold(min_score=45, min_fico=500),
        PaperGrade.D: GradeThreshold(min_score=0, min_fico=0),
    }),
)


# Risk score weights (must sum to 100)
RISK_WEIGHTS = MappingProxyType({
    "fico": 20,
    "avg_daily_balance": 15,
    "deposit_consistency": 10,
    "nsf_frequency": 15,
    "time_in_business": 10,
    "industry_risk": 10,
    "existing_mca_load": 10,
    "monthly_revenue": 5,
    "revenue_stability": 5,
})

# Auto decision criteria
AUTO_APPROVE_CRITERIA = MappingProxyType({
    "min_fico": 650,
    "min_time_in_business": 12,  # months
    "min_avg_daily_balance": Decimal("5000"),
    "max_nsf_count": 2,
    "max_positions": 0,  # first position only
    "max_request_multiple": Decimal("1.0"),  # of monthly revenue
    "min_score": 70,
})

AUTO_DECLINE_CRITERIA = MappingProxyType({
    "min_fico": 500,
    "min_time_in_business": 6,  # months
    "min_monthly_revenue": Decimal("10000"),
    "max_nsf_count": 10,
    "max_positions": 3,
})
