"""Domain enumerations for the underwriting engine.

All enums use the (str, Enum) pattern so they serialize to JSON and persist
as plain text columns.
"""

from enum import Enum


class PaperGrade(str, Enum):
    """Ordinal risk classification, A best through D worst."""

    A = "A"
    B = "B"
    C = "C"
    D = "D"


class IndustryRiskTier(str, Enum):
    """Ordered industry risk classification of a merchant."""

    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    RESTRICTED = "RESTRICTED"


class RevenueTrend(str, Enum):
    INCREASING = "INCREASING"
    STABLE = "STABLE"
    DECLINING = "DECLINING"


class PaymentFrequency(str, Enum):
    DAILY = "DAILY"
    WEEKLY = "WEEKLY"
    MONTHLY = "MONTHLY"


class UCCStatus(str, Enum):
    """Lifecycle status of a UCC lien filing."""

    FILED = "FILED"
    ACCEPTED = "ACCEPTED"
    ACTIVE = "ACTIVE"
    LAPSED = "LAPSED"
    TERMINATED = "TERMINATED"


class StackingRiskLevel(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


class MetricStatus(str, Enum):
    GOOD = "good"
    WARNING = "warning"
    DANGER = "danger"


class DealStage(str, Enum):
    """Deal pipeline stages in lifecycle order."""

    NEW_LEAD = "NEW_LEAD"
    DOCS_REQUESTED = "DOCS_REQUESTED"
    DOCS_RECEIVED = "DOCS_RECEIVED"
    IN_UNDERWRITING = "IN_UNDERWRITING"
    APPROVED = "APPROVED"
    CONTRACT_SENT = "CONTRACT_SENT"
    CONTRACT_SIGNED = "CONTRACT_SIGNED"
    FUNDED = "FUNDED"
    DECLINED = "DECLINED"
    DEAD = "DEAD"


class Decision(str, Enum):
    """Underwriting decision applied to a deal.

    COUNTER is an approval carrying different terms; it lands the deal in
    APPROVED like APPROVE does.
    """

    APPROVE = "APPROVE"
    DECLINE = "DECLINE"
    COUNTER = "COUNTER"
