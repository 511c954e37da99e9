"""
E2E scenarios walking deals through the underwriting workflow over HTTP.

Scenarios:
- thin file: no bank statements, analysis degrades instead of failing
- quick decline: a new lead declined straight away
- full lifecycle: lead to funded, then a late decision on the funded deal
"""

from fastapi.testclient import TestClient
from mca_underwriter.config import settings


def _move(client: TestClient, deal_id, stage: str):
    response = client.post(f"/v1/deals/{deal_id}/stage", json={"stage": stage}, headers={"X-User-ID": "ops-1"})
    assert response.status_code == 200, response.text
    return response.json()


def _approve(client: TestClient, deal_id):
    return client.post(
        "/v1/underwriting/decision",
        headers={"X-User-ID": "uw-9"},
        json={
            "deal_id": str(deal_id),
            "decision": "APPROVE",
            "paper_grade": "A",
            "risk_score": 88,
            "approved_amount": 50000,
            "factor_rate": 1.2,
            "term_days": 120,
        },
    )


def test_thin_file_is_graded_with_reduced_confidence(client: TestClient, create_deal):
    """
    36 months in business, $75k/month, FICO 680, no bank analysis.
    Expected: scored over the available components and capped at B.
    """
    deal = create_deal(with_bank=False, fico_score=680, time_in_business_months=36, monthly_revenue="75000")

    data = client.post("/v1/underwriting/analyze", json={"deal_id": str(deal.id)}).json()

    risk = data["risk_analysis"]
    assert risk["grade"] == "B"
    assert risk["reduced_confidence"] is True
    assert risk["auto_approve"] is False
    assert data["offer"]["factor_rate"] == 1.3
    assert data["offer"]["approved_amount"] <= 50000
    assert data["offer"]["position"] == 1
    assert data["bank_metrics"] is None


def test_new_lead_declined(client: TestClient, create_deal):
    """
    A NEW_LEAD deal declined with a reason.
    Expected: DECLINED, one new history row, comment carrying the reason.
    """
    deal = create_deal()

    response = client.post(
        "/v1/underwriting/decision",
        headers={"X-User-ID": "uw-9"},
        json={"deal_id": str(deal.id), "decision": "DECLINE", "decline_reasons": ["insufficient revenue"]},
    )

    assert response.status_code == 200
    assert response.json()["deal"]["stage"] == "DECLINED"
    assert response.json()["deal"]["decline_reasons"] == ["insufficient revenue"]
    assert response.json()["message"] == "Deal declined successfully"

    history = client.get(f"/v1/deals/{deal.id}/history").json()
    assert len(history["history"]) == 2
    assert history["history"][-1]["from_stage"] == "NEW_LEAD"
    assert history["history"][-1]["to_stage"] == "DECLINED"
    assert history["history"][-1]["notes"] == "DECLINE: No notes provided"
    assert "insufficient revenue" in history["comments"][-1]["content"]


def test_full_lifecycle_to_funded(client: TestClient, create_deal):
    deal = create_deal()

    for stage in ("DOCS_REQUESTED", "DOCS_RECEIVED", "IN_UNDERWRITING"):
        _move(client, deal.id, stage)

    approval = _approve(client, deal.id)
    assert approval.status_code == 200
    assert approval.json()["deal"]["decision_date"] is not None

    for stage in ("CONTRACT_SENT", "CONTRACT_SIGNED"):
        _move(client, deal.id, stage)
    funded = _move(client, deal.id, "FUNDED")

    assert funded["funded_at"] is not None
    assert funded["payback_amount"] == 60000.0

    history = client.get(f"/v1/deals/{deal.id}/history").json()
    assert [h["to_stage"] for h in history["history"]] == [
        "NEW_LEAD",
        "DOCS_REQUESTED",
        "DOCS_RECEIVED",
        "IN_UNDERWRITING",
        "APPROVED",
        "CONTRACT_SENT",
        "CONTRACT_SIGNED",
        "FUNDED",
    ]
    assert funded["version"] == len(history["history"])

    # Funded deals are closed to manual moves
    response = client.post(f"/v1/deals/{deal.id}/stage", json={"stage": "DEAD"})
    assert response.status_code == 409


def _fund(client: TestClient, deal_id):
    for stage in ("DOCS_REQUESTED", "DOCS_RECEIVED", "IN_UNDERWRITING"):
        _move(client, deal_id, stage)
    assert _approve(client, deal_id).status_code == 200
    for stage in ("CONTRACT_SENT", "CONTRACT_SIGNED", "FUNDED"):
        _move(client, deal_id, stage)


def test_late_decision_on_funded_deal_is_permitted_by_default(client: TestClient, create_deal):
    deal = create_deal()
    _fund(client, deal.id)

    response = _approve(client, deal.id)

    assert response.status_code == 200
    assert response.json()["deal"]["stage"] == "APPROVED"
    history = client.get(f"/v1/deals/{deal.id}/history").json()
    assert history["history"][-1]["from_stage"] == "FUNDED"


def test_late_decision_rejected_when_forward_only(client: TestClient, create_deal, monkeypatch):
    deal = create_deal()
    _fund(client, deal.id)
    monkeypatch.setattr(settings, "enforce_forward_decisions", True)

    response = _approve(client, deal.id)

    assert response.status_code == 409
    history = client.get(f"/v1/deals/{deal.id}/history").json()
    assert history["current_stage"] == "FUNDED"
    assert len(history["history"]) == 8
