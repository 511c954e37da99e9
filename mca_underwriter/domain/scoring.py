"""Risk scoring engine - composite score and paper grade for MCA deals"""

from decimal import Decimal
from typing import List, Optional, Sequence

from mca_underwriter.domain.bank_metrics import (
    balance_volatility,
    deposit_day_coverage,
    nsf_per_month,
    overdraft_per_month,
)
from mca_underwriter.domain.enums import IndustryRiskTier, PaperGrade, RevenueTrend
from mca_underwriter.domain.exceptions import InvalidInputError
from mca_underwriter.domain.models import (
    BankAnalysisSnapshot,
    DealSnapshot,
    MerchantSnapshot,
    OwnerSnapshot,
    RiskAssessment,
    RiskComponent,
)
from mca_underwriter.domain.policy import (
    AUTO_APPROVE_CRITERIA,
    AUTO_DECLINE_CRITERIA,
    DEFAULT_POLICY,
    RISK_WEIGHTS,
    PolicyTable,
)
from mca_underwriter.utils.money import round_half_up, to_decimal

# Component score given to an owner with no FICO on file. Penalized, but not zero.
MISSING_FICO_SCORE = 35

INDUSTRY_SCORES = {
    IndustryRiskTier.LOW: (100, "Low risk industry"),
    IndustryRiskTier.MEDIUM: (75, "Moderate risk industry"),
    IndustryRiskTier.HIGH: (50, "Higher risk industry"),
    IndustryRiskTier.RESTRICTED: (20, "High risk/restricted industry"),
}

REVENUE_TREND_SCORES = {
    RevenueTrend.INCREASING: (100, "Revenue trending upward"),
    RevenueTrend.STABLE: (80, "Revenue stable"),
    RevenueTrend.DECLINING: (40, "Revenue declining - risk factor"),
}

# Grades checked best-first
GRADE_ORDER = (PaperGrade.A, PaperGrade.B, PaperGrade.C, PaperGrade.D)

# Best grade available when any input had to be skipped or defaulted
REDUCED_CONFIDENCE_GRADE_CAP = PaperGrade.B


# ============================================
# INPUT VALIDATION
# ============================================


def _validate_inputs(
    merchant: MerchantSnapshot,
    owners: Sequence[OwnerSnapshot],
    bank: Optional[BankAnalysisSnapshot],
    deal: DealSnapshot,
) -> None:
    """Reject structurally invalid data. Missing optional values are fine."""
    if merchant.monthly_revenue is not None and to_decimal(merchant.monthly_revenue) < 0:
        raise InvalidInputError(f"Monthly revenue cannot be negative: {merchant.monthly_revenue}")
    if merchant.time_in_business_months is not None and merchant.time_in_business_months < 0:
        raise InvalidInputError(f"Time in business cannot be negative: {merchant.time_in_business_months}")
    if to_decimal(deal.requested_amount) < 0:
        raise InvalidInputError(f"Requested amount cannot be negative: {deal.requested_amount}")
    if deal.existing_positions < 0:
        raise InvalidInputError(f"Existing positions cannot be negative: {deal.existing_positions}")

    for owner in owners:
        if owner.fico_score is not None and not 300 <= owner.fico_score <= 850:
            raise InvalidInputError(f"FICO score out of range 300-850: {owner.fico_score}")
        if not 0 <= to_decimal(owner.ownership_percentage) <= 100:
            raise InvalidInputError(f"Ownership percentage out of range 0-100: {owner.ownership_percentage}")

    if bank is not None:
        counts = {
            "deposit_count": bank.deposit_count,
            "deposit_days_count": bank.deposit_days_count,
            "nsf_count": bank.nsf_count,
            "overdraft_count": bank.overdraft_count,
            "months_analyzed": bank.months_analyzed,
        }
        for name, value in counts.items():
            if value < 0:
                raise InvalidInputError(f"Bank analysis {name} cannot be negative: {value}")
        if bank.estimated_daily_load is not None and to_decimal(bank.estimated_daily_load) < 0:
            raise InvalidInputError(f"Estimated daily load cannot be negative: {bank.estimated_daily_load}")


def select_primary_owner(owners: Sequence[OwnerSnapshot]) -> Optional[OwnerSnapshot]:
    """
    Pick the owner whose credit represents the business.

    Among owners flagged primary, the largest stake wins; with no primary
    flag, the largest stake overall. Ties go to the first listed owner.
    """
    if not owners:
        return None
    candidates = [o for o in owners if o.is_primary] or list(owners)
    best = candidates[0]
    for owner in candidates[1:]:
        if to_decimal(owner.ownership_percentage) > to_decimal(best.ownership_percentage):
            best = owner
    return best


# ============================================
# SCORE CALCULATION HELPERS
# ============================================


def _component(name: str, weight_key: str, score: int, details: str, included: bool = True) -> RiskComponent:
    weight = RISK_WEIGHTS[weight_key]
    return RiskComponent(
        name=name,
        weight=weight,
        score=score,
        weighted_score=score * weight / 100 if included else 0.0,
        details=details,
        included=included,
    )


def fico_score_component(fico: Optional[int]) -> RiskComponent:
    if fico is None:
        return _component("FICO Score", "fico", MISSING_FICO_SCORE, "No FICO score available")

    if fico >= 750:
        score, label = 100, "Excellent"
    elif fico >= 700:
        score, label = 90, "Good"
    elif fico >= 650:
        score, label = 80, "Fair"
    elif fico >= 600:
        score, label = 65, "Below Average"
    elif fico >= 550:
        score, label = 50, "Poor"
    elif fico >= 500:
        score, label = 35, "Very Poor"
    else:
        score, label = 20, "Very Poor"
    return _component("FICO Score", "fico", score, f"{label} ({fico})")


def average_balance_component(bank: BankAnalysisSnapshot, requested_amount: Decimal) -> RiskComponent:
    """ADB relative to the request, docked for negative dips or wild swings"""
    adb = to_decimal(bank.avg_daily_balance)
    ratio = adb / (requested_amount or Decimal("1"))

    if ratio >= Decimal("0.5"):
        score = 100
    elif ratio >= Decimal("0.3"):
        score = 85
    elif ratio >= Decimal("0.2"):
        score = 70
    elif ratio >= Decimal("0.1"):
        score = 50
    elif ratio >= Decimal("0.05"):
        score = 30
    else:
        score = 15

    details = f"${adb:,.2f} average daily balance"
    volatility = balance_volatility(bank)
    if to_decimal(bank.min_balance) < 0 or (volatility is not None and volatility > 2.0):
        score = max(score - 15, 0)
        details += " - unstable balance"

    return _component("Average Daily Balance", "avg_daily_balance", score, details)


def deposit_consistency_component(bank: BankAnalysisSnapshot) -> RiskComponent:
    coverage = deposit_day_coverage(bank)
    if coverage is None:
        return _component(
            "Deposit Consistency", "deposit_consistency", 0, "No analyzed period", included=False
        )

    pct = coverage * 100
    if pct >= 80:
        score = 100
    elif pct >= 60:
        score = 80
    elif pct >= 40:
        score = 60
    elif pct >= 20:
        score = 40
    else:
        score = 20

    total_days = bank.months_analyzed * 30
    return _component(
        "Deposit Consistency",
        "deposit_consistency",
        score,
        f"{bank.deposit_days_count} deposit days out of {total_days} ({round(pct)}% consistency)",
    )


def nsf_frequency_component(bank: BankAnalysisSnapshot) -> RiskComponent:
    nsf_rate = nsf_per_month(bank)
    overdraft_rate = overdraft_per_month(bank)
    if nsf_rate is None or overdraft_rate is None:
        return _component("NSF Frequency", "nsf_frequency", 0, "No analyzed period", included=False)

    per_month = nsf_rate + overdraft_rate
    if per_month == 0:
        score = 100
    elif per_month <= 0.67:
        score = 85
    elif per_month <= 1.34:
        score = 65
    elif per_month <= 2.0:
        score = 45
    elif per_month <= 3.34:
        score = 25
    else:
        score = 10

    events = bank.nsf_count + bank.overdraft_count
    return _component(
        "NSF Frequency",
        "nsf_frequency",
        score,
        f"{events} NSF/overdraft items over {bank.months_analyzed} months ({per_month:.2f}/month)",
    )


def time_in_business_component(months: Optional[int]) -> RiskComponent:
    if months is None:
        return _component(
            "Time in Business", "time_in_business", 0, "Time in business unknown", included=False
        )

    if months >= 60:
        score = 100
    elif months >= 36:
        score = 90
    elif months >= 24:
        score = 80
    elif months >= 12:
        score = 65
    elif months >= 6:
        score = 40
    else:
        score = 20  # below minimum viability

    years, remaining = divmod(months, 12)
    if years >= 1:
        details = f"{years} year{'s' if years > 1 else ''}"
        if remaining:
            details += f" {remaining} months"
    else:
        details = f"{months} months"
    return _component("Time in Business", "time_in_business", score, details)


def industry_risk_component(tier: IndustryRiskTier) -> RiskComponent:
    score, details = INDUSTRY_SCORES[tier]
    return _component("Industry Risk", "industry_risk", score, details)


def existing_load_component(
    positions: int,
    stacking_detected: bool,
    daily_load: Decimal,
    monthly_revenue: Optional[Decimal],
    policy: PolicyTable = DEFAULT_POLICY,
) -> RiskComponent:
    """
    Score existing MCA obligations. Never increases with position count.

    Load is measured against a business day's revenue, monthly revenue over
    the policy's business days per month. Unknown revenue with a non-zero load
    is treated as the heavy band.
    """
    daily_revenue = (
        to_decimal(monthly_revenue) / policy.business_days_per_month
        if monthly_revenue
        else Decimal("0")
    )
    if daily_load == 0:
        load_ratio = Decimal("0")
    elif daily_revenue == 0:
        load_ratio = None
    else:
        load_ratio = daily_load / daily_revenue

    if positions == 0:
        score = 100
    elif positions == 1:
        score = 70 if load_ratio is not None and load_ratio < Decimal("0.15") else 55
    elif positions == 2:
        score = 40 if load_ratio is not None and load_ratio < Decimal("0.25") else 30
    else:
        score = 15

    if positions == 0:
        details = "First position - no existing MCAs"
    else:
        details = f"{positions} existing position{'s' if positions > 1 else ''}"
        if daily_load:
            details += f", ~${daily_load:,.2f}/day load"
        if positions > 1:
            details += " - STACKED"

    if stacking_detected:
        score = max(score - 10, 0)
        details += " (stacking flagged)"

    return _component("Existing MCA Load", "existing_mca_load", score, details)


def monthly_revenue_component(monthly_revenue: Optional[Decimal]) -> RiskComponent:
    if monthly_revenue is None:
        return _component("Monthly Revenue", "monthly_revenue", 0, "Monthly revenue unknown", included=False)

    revenue = to_decimal(monthly_revenue)
    # Banded so very large merchants don't dominate and tiny ones aren't zeroed
    if revenue >= 250_000:
        score = 100
    elif revenue >= 100_000:
        score = 90
    elif revenue >= 50_000:
        score = 80
    elif revenue >= 25_000:
        score = 65
    elif revenue >= 10_000:
        score = 45
    else:
        score = 20
    return _component("Monthly Revenue", "monthly_revenue", score, f"${revenue:,.2f}/month")


def revenue_stability_component(trend: RevenueTrend) -> RiskComponent:
    score, details = REVENUE_TREND_SCORES[trend]
    return _component("Revenue Stability", "revenue_stability", score, details)


def _skipped_bank_components() -> List[RiskComponent]:
    reason = "No bank analysis available"
    return [
        _component("Average Daily Balance", "avg_daily_balance", 0, reason, included=False),
        _component("Deposit Consistency", "deposit_consistency", 0, reason, included=False),
        _component("NSF Frequency", "nsf_frequency", 0, reason, included=False),
        _component("Revenue Stability", "revenue_stability", 0, reason, included=False),
    ]


# ============================================
# PAPER GRADE DETERMINATION
# ============================================


def determine_paper_grade(
    fico: Optional[int],
    total_score: int,
    reduced_confidence: bool = False,
    policy: PolicyTable = DEFAULT_POLICY,
) -> PaperGrade:
    """
    Map score (and FICO floor, when FICO is known) to a grade.

    Grade bands (policy constants, defaults):
    - A: score >= 75 and FICO >= 650
    - B: score >= 60 and FICO >= 575
    - C: score >= 45 and FICO >= 500
    - D: everything else
    Reduced-confidence assessments cannot earn better than B.
    """
    grade = PaperGrade.D
    for candidate in GRADE_ORDER:
        threshold = policy.grade_thresholds[candidate]
        if total_score >= threshold.min_score and (fico is None or fico >= threshold.min_fico):
            grade = candidate
            break

    if reduced_confidence and GRADE_ORDER.index(grade) < GRADE_ORDER.index(REDUCED_CONFIDENCE_GRADE_CAP):
        return REDUCED_CONFIDENCE_GRADE_CAP
    return grade


# ============================================
# AUTO DECISION LOGIC
# ============================================


def _auto_decline_reasons(
    fico: Optional[int],
    merchant: MerchantSnapshot,
    bank: Optional[BankAnalysisSnapshot],
    deal: DealSnapshot,
) -> List[str]:
    reasons = []
    criteria = AUTO_DECLINE_CRITERIA

    if fico is not None and fico < criteria["min_fico"]:
        reasons.append(f"FICO score {fico} below minimum threshold of {criteria['min_fico']}")

    tib = merchant.time_in_business_months
    if tib is not None and tib < criteria["min_time_in_business"]:
        reasons.append(
            f"Time in business ({tib} months) below minimum of {criteria['min_time_in_business']} months"
        )

    revenue = merchant.monthly_revenue
    if revenue is not None and to_decimal(revenue) < criteria["min_monthly_revenue"]:
        reasons.append(
            f"Monthly revenue (${to_decimal(revenue):,.2f}) below minimum of "
            f"${criteria['min_monthly_revenue']:,.2f}"
        )

    if bank is not None and bank.nsf_count > criteria["max_nsf_count"]:
        reasons.append(f"NSF count ({bank.nsf_count}) exceeds maximum of {criteria['max_nsf_count']}")

    if deal.existing_positions >= criteria["max_positions"]:
        reasons.append(
            f"{deal.existing_positions} existing MCA positions - maximum "
            f"{criteria['max_positions'] - 1} allowed"
        )

    if merchant.industry_risk_tier == IndustryRiskTier.RESTRICTED:
        reasons.append("Industry classified as prohibited/high-risk")

    return reasons


def _qualifies_for_auto_approve(
    fico: Optional[int],
    merchant: MerchantSnapshot,
    bank: Optional[BankAnalysisSnapshot],
    deal: DealSnapshot,
    total_score: int,
) -> bool:
    criteria = AUTO_APPROVE_CRITERIA
    if bank is None or fico is None or not merchant.monthly_revenue:
        return False
    if fico < criteria["min_fico"]:
        return False
    if merchant.time_in_business_months is None or merchant.time_in_business_months < criteria["min_time_in_business"]:
        return False
    if to_decimal(bank.avg_daily_balance) < criteria["min_avg_daily_balance"]:
        return False
    if bank.nsf_count > criteria["max_nsf_count"]:
        return False
    if deal.existing_positions > criteria["max_positions"]:
        return False
    request_multiple = to_decimal(deal.requested_amount) / to_decimal(merchant.monthly_revenue)
    if request_multiple > criteria["max_request_multiple"]:
        return False
    return total_score >= criteria["min_score"]


def _warnings(
    fico: Optional[int],
    merchant: MerchantSnapshot,
    bank: Optional[BankAnalysisSnapshot],
    deal: DealSnapshot,
) -> List[str]:
    warnings = []
    if fico is not None and fico < 550:
        warnings.append("FICO score below 550 - high risk")
    if bank is not None and bank.nsf_count > 5:
        warnings.append(f"High NSF count: {bank.nsf_count} in analyzed period")
    if deal.existing_positions > 0:
        warnings.append(f"{deal.existing_positions} existing MCA position(s) detected")
    if deal.stacking_detected:
        warnings.append("Stacking detected - merchant has multiple active MCAs")
    if merchant.time_in_business_months is not None and merchant.time_in_business_months < 12:
        warnings.append("Business less than 12 months old")
    return warnings


# ============================================
# RISK SCORING ENGINE
# ============================================


def calculate_risk_score(
    merchant: MerchantSnapshot,
    owners: Sequence[OwnerSnapshot],
    bank_analysis: Optional[BankAnalysisSnapshot],
    deal: DealSnapshot,
    policy: PolicyTable = DEFAULT_POLICY,
) -> RiskAssessment:
    """
    Main entry point: score a deal and assign a paper grade.

    Pure function. Components whose inputs are missing are skipped rather
    than scored as zero, and the composite is normalized over the weights of
    the components that were included. Any skipped or defaulted input marks
    the assessment as reduced confidence.

    Raises:
        InvalidInputError: On structurally invalid input
    """
    _validate_inputs(merchant, owners, bank_analysis, deal)

    confidence_notes = []
    primary = select_primary_owner(owners)
    if primary is None:
        confidence_notes.append("No owners on file")
    fico = primary.fico_score if primary is not None else None
    if primary is not None and fico is None:
        confidence_notes.append("Primary owner FICO unavailable")

    requested_amount = to_decimal(deal.requested_amount)
    daily_load = (
        to_decimal(bank_analysis.estimated_daily_load)
        if bank_analysis is not None and bank_analysis.estimated_daily_load is not None
        else Decimal("0")
    )

    components = [fico_score_component(fico)]
    if bank_analysis is not None:
        components.append(average_balance_component(bank_analysis, requested_amount))
        components.append(deposit_consistency_component(bank_analysis))
        components.append(nsf_frequency_component(bank_analysis))
    components.append(time_in_business_component(merchant.time_in_business_months))
    components.append(industry_risk_component(merchant.industry_risk_tier))
    components.append(
        existing_load_component(
            deal.existing_positions, deal.stacking_detected, daily_load, merchant.monthly_revenue, policy
        )
    )
    components.append(monthly_revenue_component(merchant.monthly_revenue))
    if bank_analysis is not None:
        components.append(revenue_stability_component(bank_analysis.revenue_trend))
    else:
        components.extend(_skipped_bank_components())
        confidence_notes.append("No bank analysis available")

    for component in components:
        if not component.included and component.details not in confidence_notes:
            confidence_notes.append(component.details)

    included = [c for c in components if c.included]
    weight_total = sum(c.weight for c in included)
    raw_total = to_decimal(sum(c.score * c.weight for c in included)) / weight_total
    total_score = min(max(round_half_up(raw_total), 0), 100)

    reduced_confidence = bool(confidence_notes)
    grade = determine_paper_grade(fico, total_score, reduced_confidence, policy)

    decline_reasons = _auto_decline_reasons(fico, merchant, bank_analysis, deal)
    auto_decline = bool(decline_reasons)
    auto_approve = not auto_decline and _qualifies_for_auto_approve(
        fico, merchant, bank_analysis, deal, total_score
    )

    return RiskAssessment(
        total_score=total_score,
        grade=grade,
        components=components,
        reduced_confidence=reduced_confidence,
        confidence_notes=confidence_notes,
        auto_approve=auto_approve,
        auto_decline=auto_decline,
        decline_reasons=decline_reasons,
        warnings=_warnings(fico, merchant, bank_analysis, deal),
    )
