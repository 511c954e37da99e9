"""Stacking detection - flags merchants already carrying MCA positions"""

import re
from decimal import Decimal
from typing import List, Optional, Sequence

from mca_underwriter.domain.enums import PaymentFrequency, StackingRiskLevel, UCCStatus
from mca_underwriter.domain.models import (
    BankAnalysisSnapshot,
    MCAPayment,
    StackingAnalysis,
    StackingSignal,
    UCCFiling,
)
from mca_underwriter.utils.money import to_decimal

# Common MCA funder names and debit descriptors
MCA_PAYMENT_PATTERNS = [
    re.compile(r"\b(mca|merchant\s*cash|advance|funding|capital)\b", re.IGNORECASE),
    re.compile(r"\b(clearbanc|square\s*capital|paypal\s*loan|kabbage|ondeck)\b", re.IGNORECASE),
    re.compile(r"\b(bluevine|fundbox|lendio|can\s*capital|rapid\s*advance)\b", re.IGNORECASE),
    re.compile(r"\b(daily\s*ach|daily\s*payment|daily\s*debit)\b", re.IGNORECASE),
]

# Fixed daily/weekly debits are the factor-rate repayment signature
MCA_FREQUENCIES = {PaymentFrequency.DAILY, PaymentFrequency.WEEKLY}

ACTIVE_UCC_STATUSES = {UCCStatus.FILED, UCCStatus.ACCEPTED, UCCStatus.ACTIVE}

RISK_LEVEL_RECOMMENDATIONS = {
    StackingRiskLevel.LOW: ["First position - proceed with standard underwriting"],
    StackingRiskLevel.MEDIUM: [
        "Second position - verify payoff or calculate combined load",
        "Consider reduced advance amount",
    ],
    StackingRiskLevel.HIGH: [
        "Third position - high stacking risk",
        "Recommend declining or requiring payoff of existing positions",
    ],
    StackingRiskLevel.CRITICAL: [
        "Multiple existing positions - auto-decline recommended",
        "Merchant appears over-leveraged",
    ],
}


def matches_mca_name(name: str) -> bool:
    return any(pattern.search(name or "") for pattern in MCA_PAYMENT_PATTERNS)


def is_mca_signature(payment: MCAPayment) -> bool:
    """Recurring daily/weekly debit with a real amount"""
    return payment.frequency in MCA_FREQUENCIES and to_decimal(payment.amount) > 0


def _bank_signals(bank: BankAnalysisSnapshot) -> List[StackingSignal]:
    signals = []
    for payment in bank.detected_mca_payments or []:
        if not is_mca_signature(payment):
            continue
        amount = to_decimal(payment.amount)
        description = f"{payment.frequency.value.lower()} debit of ${amount:,.2f} to {payment.name}"
        if payment.occurrences:
            description += f" ({payment.occurrences} occurrences)"
        signals.append(
            StackingSignal(
                source="BANK",
                description=description,
                confidence="HIGH" if matches_mca_name(payment.name) else "MEDIUM",
                reference=payment.name,
            )
        )
    return signals


def _ucc_signals(ucc_filings: Sequence[UCCFiling]) -> List[StackingSignal]:
    return [
        StackingSignal(
            source="UCC",
            description=f"Active UCC filing ({filing.status.value})",
            confidence="HIGH",
            reference=filing.filing_number,
        )
        for filing in ucc_filings
        if filing.status in ACTIVE_UCC_STATUSES
    ]


def classify_stacking_risk(total_positions: int) -> StackingRiskLevel:
    if total_positions == 0:
        return StackingRiskLevel.LOW
    if total_positions == 1:
        return StackingRiskLevel.MEDIUM
    if total_positions == 2:
        return StackingRiskLevel.HIGH
    return StackingRiskLevel.CRITICAL


def detect_stacking(
    bank_analysis: Optional[BankAnalysisSnapshot],
    ucc_filings: Optional[Sequence[UCCFiling]] = None,
) -> StackingAnalysis:
    """
    Combine bank payment signatures and UCC filings into a stacking verdict.

    Either source alone is enough to flag stacking. The two sources usually
    describe the same positions, so the position estimate is the larger of
    the two counts rather than their sum. Every signal is returned so a
    reviewer can audit why the flag was raised.
    """
    bank_signals = _bank_signals(bank_analysis) if bank_analysis is not None else []
    ucc_signals = _ucc_signals(ucc_filings or [])

    detected_payments = (
        [p for p in bank_analysis.detected_mca_payments or [] if is_mca_signature(p)]
        if bank_analysis is not None
        else []
    )
    total_daily_load = (
        to_decimal(bank_analysis.estimated_daily_load)
        if bank_analysis is not None and bank_analysis.estimated_daily_load is not None
        else Decimal("0")
    )

    total_positions = max(len(bank_signals), len(ucc_signals))
    risk_level = classify_stacking_risk(total_positions)

    return StackingAnalysis(
        stacking_detected=total_positions > 0,
        total_positions=total_positions,
        signals=bank_signals + ucc_signals,
        detected_payments=detected_payments,
        total_daily_load=total_daily_load,
        risk_level=risk_level,
        recommendations=list(RISK_LEVEL_RECOMMENDATIONS[risk_level]),
    )
