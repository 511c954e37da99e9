"""Bank health indicators derived from a pre-aggregated bank analysis"""

from typing import List, Optional

from mca_underwriter.domain.enums import MetricStatus, RevenueTrend
from mca_underwriter.domain.models import BankAnalysisSnapshot, BankMetric, BankMetrics
from mca_underwriter.utils.money import round_half_up, to_decimal

CALENDAR_DAYS_PER_MONTH = 30

STATUS_SCORES = {
    MetricStatus.GOOD: 100,
    MetricStatus.WARNING: 50,
    MetricStatus.DANGER: 20,
}


def _ratio(numerator, denominator) -> Optional[float]:
    """Division that yields None instead of raising or returning infinity"""
    denominator = to_decimal(denominator)
    if denominator == 0:
        return None
    return round(float(to_decimal(numerator) / denominator), 4)


def nsf_per_month(bank: BankAnalysisSnapshot) -> Optional[float]:
    return _ratio(bank.nsf_count, bank.months_analyzed)


def overdraft_per_month(bank: BankAnalysisSnapshot) -> Optional[float]:
    return _ratio(bank.overdraft_count, bank.months_analyzed)


def deposit_day_coverage(bank: BankAnalysisSnapshot) -> Optional[float]:
    """Share of calendar days in the analyzed period that saw a deposit"""
    return _ratio(bank.deposit_days_count, bank.months_analyzed * CALENDAR_DAYS_PER_MONTH)


def balance_volatility(bank: BankAnalysisSnapshot) -> Optional[float]:
    """Balance swing (max - min) relative to the average daily balance"""
    spread = to_decimal(bank.max_balance) - to_decimal(bank.min_balance)
    return _ratio(spread, bank.avg_daily_balance)


def _format_currency(amount) -> str:
    return f"${to_decimal(amount):,.2f}"


def _build_metrics(bank: BankAnalysisSnapshot, coverage: Optional[float]) -> List[BankMetric]:
    metrics = []

    adb = to_decimal(bank.avg_daily_balance)
    if adb >= 10000:
        status, description = MetricStatus.GOOD, "Strong balance indicates healthy cash flow"
    elif adb >= 5000:
        status, description = MetricStatus.WARNING, "Moderate balance - monitor closely"
    else:
        status, description = MetricStatus.DANGER, "Low balance - cash flow concerns"
    metrics.append(BankMetric("Average Daily Balance", _format_currency(adb), status, description))

    min_balance = to_decimal(bank.min_balance)
    if min_balance >= 1000:
        status, description = MetricStatus.GOOD, "Healthy minimum balance maintained"
    elif min_balance >= 0:
        status, description = MetricStatus.WARNING, "Low minimum balance - tight cash flow"
    else:
        status, description = MetricStatus.DANGER, "Negative balance indicates overdraft issues"
    metrics.append(BankMetric("Minimum Balance", _format_currency(min_balance), status, description))

    if coverage is None:
        status, description = MetricStatus.WARNING, "No analyzed period - deposit consistency unknown"
    else:
        if coverage >= 0.6:
            status = MetricStatus.GOOD
        elif coverage >= 0.35:
            status = MetricStatus.WARNING
        else:
            status = MetricStatus.DANGER
        description = f"{round(coverage * 100)}% of calendar days had deposits"
    metrics.append(BankMetric("Deposit Consistency", f"{bank.deposit_days_count} days", status, description))

    events = bank.nsf_count + bank.overdraft_count
    if events == 0:
        status, description = MetricStatus.GOOD, "No NSF activity - excellent"
    elif events <= 3:
        status, description = MetricStatus.WARNING, "Some NSF activity - acceptable"
    else:
        status, description = MetricStatus.DANGER, "High NSF count - significant risk"
    metrics.append(BankMetric("NSF/Overdraft Count", str(events), status, description))

    trend_status = {
        RevenueTrend.INCREASING: (MetricStatus.GOOD, "Revenue is growing - positive indicator"),
        RevenueTrend.STABLE: (MetricStatus.GOOD, "Revenue is stable"),
        RevenueTrend.DECLINING: (MetricStatus.DANGER, "Revenue declining - risk factor"),
    }
    status, description = trend_status[bank.revenue_trend]
    metrics.append(BankMetric("Revenue Trend", bank.revenue_trend.value, status, description))

    return metrics


def analyze_bank_metrics(bank: BankAnalysisSnapshot) -> BankMetrics:
    """
    Derive secondary health indicators from a bank analysis.

    Ratios are descriptive: they feed the risk scorer and are surfaced for
    human review. Any ratio whose denominator is zero (no months analyzed,
    zero average balance) is reported as None.
    """
    coverage = deposit_day_coverage(bank)
    metrics = _build_metrics(bank, coverage)
    health_score = round_half_up(
        to_decimal(sum(STATUS_SCORES[m.status] for m in metrics)) / len(metrics)
    )

    return BankMetrics(
        nsf_per_month=nsf_per_month(bank),
        overdraft_per_month=overdraft_per_month(bank),
        deposit_day_coverage=coverage,
        balance_volatility=balance_volatility(bank),
        health_score=health_score,
        metrics=metrics,
    )
