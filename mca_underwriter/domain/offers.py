"""Offer calculation - approved amount, pricing and payment schedule for a grade"""

from dataclasses import dataclass
from decimal import Decimal
from typing import List, Optional

from mca_underwriter.domain.enums import PaperGrade
from mca_underwriter.domain.exceptions import InvalidInputError, MissingPrerequisiteError
from mca_underwriter.domain.models import Offer, OfferTier
from mca_underwriter.domain.policy import DEFAULT_POLICY, PolicyTable, RateRange, TermRange
from mca_underwriter.utils.money import floor_money, round_money, round_percent, to_decimal

DEFAULT_COMMISSION_RATE = Decimal("0.10")

# Share of a business day's revenue that new plus existing payments may consume
DEFAULT_MAX_HOLDBACK_PERCENTAGE = Decimal("25")


@dataclass
class OfferConstraints:
    """Policy envelope for a grade, shown next to the offers"""

    max_amount: Decimal
    max_multiple: Decimal
    factor_rate_range: RateRange
    term_days_range: TermRange
    daily_revenue: Decimal
    max_daily_payment_capacity: Decimal


def _require_revenue(monthly_revenue) -> Decimal:
    if monthly_revenue is None or to_decimal(monthly_revenue) == 0:
        raise MissingPrerequisiteError("Monthly revenue is required for offer calculation")
    revenue = to_decimal(monthly_revenue)
    if revenue < 0:
        raise InvalidInputError(f"Monthly revenue cannot be negative: {monthly_revenue}")
    return revenue


def max_advance(grade: PaperGrade, monthly_revenue: Decimal, policy: PolicyTable = DEFAULT_POLICY) -> Decimal:
    """Policy cap: monthly revenue times the grade's max multiple"""
    return monthly_revenue * policy.max_multiples[grade]


def _build_offer(
    amount: Decimal,
    factor_rate: Decimal,
    term_days: int,
    monthly_revenue: Decimal,
    existing_positions: int,
    existing_daily_load: Decimal,
    commission_rate: Decimal,
    policy: PolicyTable,
) -> Offer:
    """Shared payment math; rounding happens only here, on the way out"""
    if term_days <= 0:
        raise InvalidInputError(f"Term days must be positive: {term_days}")

    # Approved amount is truncated to the cent so it never rounds up past the policy cap
    amount = floor_money(amount)
    payback = amount * factor_rate
    daily_payment = payback / term_days
    weekly_payment = daily_payment * policy.payment_days_per_week

    # Holdback: new + existing daily obligations against a typical business day's revenue
    daily_revenue = monthly_revenue / policy.business_days_per_month
    holdback = (daily_payment + existing_daily_load) / daily_revenue * 100

    return Offer(
        approved_amount=round_money(amount),
        factor_rate=factor_rate,
        payback_amount=round_money(payback),
        term_days=term_days,
        daily_payment=round_money(daily_payment),
        weekly_payment=round_money(weekly_payment),
        holdback_percentage=round_percent(holdback),
        position=existing_positions + 1,
        commission=round_money(amount * commission_rate),
        commission_rate=commission_rate,
    )


def calculate_offer(
    grade: PaperGrade,
    requested_amount,
    monthly_revenue,
    existing_positions: int,
    existing_daily_load=0,
    broker_commission_rate=None,
    policy: PolicyTable = DEFAULT_POLICY,
) -> Offer:
    """
    Canonical offer for a grade using the policy's default rate and term.

    - Approved amount never exceeds monthly revenue x max multiple
    - Payback = approved x factor rate
    - Daily = payback / term days, weekly = daily x payment days per week
    - Holdback % = (daily + existing daily load) / (monthly revenue / business days per month) x 100
    - Position = existing positions + 1
    - Commission = approved x broker rate (10% without a broker)

    Raises:
        MissingPrerequisiteError: monthly revenue unknown or zero
    """
    revenue = _require_revenue(monthly_revenue)
    requested = to_decimal(requested_amount)
    if requested < 0:
        raise InvalidInputError(f"Requested amount cannot be negative: {requested_amount}")

    approved = min(requested, max_advance(grade, revenue, policy))
    commission_rate = (
        to_decimal(broker_commission_rate) if broker_commission_rate is not None else DEFAULT_COMMISSION_RATE
    )

    return _build_offer(
        amount=approved,
        factor_rate=policy.factor_rates[grade].default,
        term_days=policy.term_days[grade].default,
        monthly_revenue=revenue,
        existing_positions=existing_positions,
        existing_daily_load=to_decimal(existing_daily_load or 0),
        commission_rate=commission_rate,
        policy=policy,
    )


def _tier(name: str, amount: Decimal, factor_rate: Decimal, term_days: int, max_multiple: Decimal, policy: PolicyTable) -> OfferTier:
    amount = floor_money(amount)
    payback = amount * factor_rate
    daily_payment = payback / term_days
    return OfferTier(
        name=name,
        amount=round_money(amount),
        factor_rate=factor_rate,
        term_days=term_days,
        max_multiple=max_multiple,
        daily_payment=round_money(daily_payment),
        weekly_payment=round_money(daily_payment * policy.payment_days_per_week),
        payback_amount=round_money(payback),
    )


def generate_offer_tiers(
    grade: PaperGrade,
    requested_amount,
    monthly_revenue,
    policy: PolicyTable = DEFAULT_POLICY,
) -> List[OfferTier]:
    """
    Ladder of alternatives within the grade's ranges.

    - Conservative: 75% of the amount, lowest rate, longest term
    - Standard: default rate and term
    - Aggressive: highest rate, shortest term (fastest payback)
    """
    revenue = _require_revenue(monthly_revenue)
    rates = policy.factor_rates[grade]
    terms = policy.term_days[grade]
    max_multiple = policy.max_multiples[grade]
    approved = min(to_decimal(requested_amount), max_advance(grade, revenue, policy))

    return [
        _tier(
            "Conservative",
            approved * policy.conservative_amount_ratio,
            rates.min,
            terms.max,
            max_multiple * policy.conservative_multiple_ratio,
            policy,
        ),
        _tier("Standard", approved, rates.default, terms.default, max_multiple, policy),
        _tier(
            "Aggressive",
            approved,
            rates.max,
            terms.min,
            max_multiple * policy.aggressive_multiple_ratio,
            policy,
        ),
    ]


def calculate_custom_offer(
    grade: PaperGrade,
    monthly_revenue,
    existing_positions: int,
    existing_daily_load=0,
    broker_commission_rate=None,
    amount=None,
    factor_rate=None,
    term_days: Optional[int] = None,
    requested_amount=None,
    clamp: bool = False,
    policy: PolicyTable = DEFAULT_POLICY,
) -> Offer:
    """
    Offer from explicit overrides, priced with the standard math.

    Unset overrides fall back to the grade default (amount falls back to the
    standard approved amount for requested_amount). Overrides are accepted
    verbatim unless clamp is set, in which case rate and term are pulled into
    the grade's ranges and the amount is capped at the revenue multiple.
    """
    revenue = _require_revenue(monthly_revenue)
    rates = policy.factor_rates[grade]
    terms = policy.term_days[grade]

    rate = to_decimal(factor_rate) if factor_rate else rates.default
    term = term_days or terms.default
    if amount:
        value = to_decimal(amount)
    else:
        baseline = to_decimal(requested_amount) if requested_amount is not None else max_advance(grade, revenue, policy)
        value = min(baseline, max_advance(grade, revenue, policy))

    if clamp:
        rate = min(max(rate, rates.min), rates.max)
        term = min(max(term, terms.min), terms.max)
        value = min(value, max_advance(grade, revenue, policy))

    if value < 0 or rate <= 0:
        raise InvalidInputError("Custom amount and factor rate must be positive")

    commission_rate = (
        to_decimal(broker_commission_rate) if broker_commission_rate is not None else DEFAULT_COMMISSION_RATE
    )
    return _build_offer(
        amount=value,
        factor_rate=rate,
        term_days=term,
        monthly_revenue=revenue,
        existing_positions=existing_positions,
        existing_daily_load=to_decimal(existing_daily_load or 0),
        commission_rate=commission_rate,
        policy=policy,
    )


def offer_constraints(
    grade: PaperGrade,
    monthly_revenue,
    existing_daily_load=0,
    max_holdback_percentage=DEFAULT_MAX_HOLDBACK_PERCENTAGE,
    policy: PolicyTable = DEFAULT_POLICY,
) -> OfferConstraints:
    revenue = _require_revenue(monthly_revenue)
    daily_revenue = revenue / policy.business_days_per_month
    capacity = daily_revenue * to_decimal(max_holdback_percentage) / 100 - to_decimal(existing_daily_load or 0)
    return OfferConstraints(
        max_amount=round_money(max_advance(grade, revenue, policy)),
        max_multiple=policy.max_multiples[grade],
        factor_rate_range=policy.factor_rates[grade],
        term_days_range=policy.term_days[grade],
        daily_revenue=round_money(daily_revenue),
        max_daily_payment_capacity=round_money(capacity),
    )
