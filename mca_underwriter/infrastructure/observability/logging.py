"""Structured JSON logging for underwriting events"""

import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pythonjsonlogger import jsonlogger

from mca_underwriter.config import settings


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """JSON formatter stamping timestamp, level and service name"""

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = datetime.now(timezone.utc).isoformat()
        log_record["level"] = record.levelname
        log_record["service"] = settings.service_name


def setup_logging(level: str = "INFO") -> None:
    """Configure structured JSON logging on the root logger"""
    logger = logging.getLogger()
    logger.setLevel(level)
    logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(CustomJsonFormatter("%(timestamp)s %(level)s %(name)s %(message)s"))
    logger.addHandler(handler)


logger = logging.getLogger("mca_underwriter")


def log_analysis(
    request_id: str,
    deal_id: str,
    grade: str,
    score: int,
    stacking_detected: bool,
    reduced_confidence: bool,
    duration_ms: float,
) -> None:
    """Log an advisory analysis outcome"""
    logger.info(
        "Deal analyzed",
        extra={
            "request_id": request_id,
            "deal_id": deal_id,
            "step": "analysis_complete",
            "paper_grade": grade,
            "risk_score": score,
            "stacking_detected": stacking_detected,
            "reduced_confidence": reduced_confidence,
            "duration_ms": duration_ms,
        },
    )


def log_transition(
    request_id: str,
    deal_id: str,
    from_stage: Optional[str],
    to_stage: str,
    actor: str,
    decision: Optional[str] = None,
) -> None:
    """Log an applied stage transition"""
    logger.info(
        "Deal stage changed",
        extra={
            "request_id": request_id,
            "deal_id": deal_id,
            "step": "transition_applied",
            "from_stage": from_stage,
            "to_stage": to_stage,
            "actor": actor,
            "decision": decision,
        },
    )


def log_transition_conflict(request_id: str, deal_id: str, detail: str) -> None:
    logger.warning(
        "Deal transition conflict",
        extra={"request_id": request_id, "deal_id": deal_id, "step": "transition_conflict", "detail": detail},
    )
