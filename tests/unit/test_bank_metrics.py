"""Unit tests for bank health metrics"""

from decimal import Decimal
from mca_underwriter.domain.bank_metrics import analyze_bank_metrics
from mca_underwriter.domain.enums import MetricStatus


def test_healthy_statements(healthy_bank):
    metrics = analyze_bank_metrics(healthy_bank)

    assert metrics.nsf_per_month == 0
    assert metrics.overdraft_per_month == 0
    assert metrics.deposit_day_coverage == 0.6667
    assert metrics.balance_volatility == 1.4444
    assert [m.name for m in metrics.metrics] == [
        "Average Daily Balance",
        "Minimum Balance",
        "Deposit Consistency",
        "NSF/Overdraft Count",
        "Revenue Trend",
    ]
    assert all(m.status == MetricStatus.GOOD for m in metrics.metrics)
    assert metrics.health_score == 100


def test_stressed_statements(stacked_bank):
    metrics = analyze_bank_metrics(stacked_bank)

    assert metrics.nsf_per_month == 1.3333
    assert metrics.overdraft_per_month == 0.6667
    statuses = {m.name: m.status for m in metrics.metrics}
    assert statuses["Average Daily Balance"] == MetricStatus.WARNING
    assert statuses["Minimum Balance"] == MetricStatus.DANGER
    assert statuses["Deposit Consistency"] == MetricStatus.DANGER
    assert statuses["NSF/Overdraft Count"] == MetricStatus.DANGER
    assert statuses["Revenue Trend"] == MetricStatus.DANGER
    # (50 + 20 + 20 + 20 + 20) / 5
    assert metrics.health_score == 26


def test_zero_denominators_yield_none(healthy_bank):
    healthy_bank.months_analyzed = 0
    healthy_bank.avg_daily_balance = Decimal("0")

    metrics = analyze_bank_metrics(healthy_bank)

    assert metrics.nsf_per_month is None
    assert metrics.overdraft_per_month is None
    assert metrics.deposit_day_coverage is None
    assert metrics.balance_volatility is None
    coverage = next(m for m in metrics.metrics if m.name == "Deposit Consistency")
    assert coverage.status == MetricStatus.WARNING
