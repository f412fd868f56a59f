import base64
import pytest
from fastapi.testclient import TestClient
from unittest.mock import patch

from app.main import app
from app.settings import settings
from app.core import state_machine as sm
from app.core.entitlement import entitlement
from app.store import attempt_repo
from app.verification.judgment import ClassifierError, ClassifierJudgment

client = TestClient(app)

IMG_A = b"\x89PNG\r\n\x1a\nreceipt-A"
IMG_B = b"\x89PNG\r\n\x1a\nreceipt-B"


class FakeClassifier:
    name = "fake"

    def __init__(self, *outcomes):
        self.outcomes = list(outcomes)
        self.images = []

    async def classify(self, image, expected_amount, mime_type="image/jpeg"):
        self.images.append(image)
        out = self.outcomes.pop(0)
        if isinstance(out, Exception):
            raise out
        return out


@pytest.fixture(autouse=True)
def open_api():
    with patch.object(settings, "API_KEY", ""):
        yield


def _b64(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def _new_attempt(plan_id="monthly", method="Easypaisa"):
    r = client.post("/attempts", json={"planId": plan_id})
    assert r.status_code == 201
    attempt_id = r.json()["attemptId"]
    if method:
        r = client.post(f"/attempts/{attempt_id}/method", json={"method": method})
        assert r.status_code == 200
    return attempt_id


def test_plans_and_methods_listed():
    plans = client.get("/plans").json()
    assert [p["id"] for p in plans] == ["weekly", "monthly", "yearly", "lifetime"]
    monthly = plans[1]
    assert monthly["price"] == 350 and monthly["recommended"] is True

    methods = client.get("/payment-methods").json()
    assert {m["id"] for m in methods} == {"JazzCash", "Easypaisa"}
    assert all("accountNumber" not in m for m in methods)


def test_create_attempt_unknown_plan():
    assert client.post("/attempts", json={"planId": "forever-free"}).status_code == 404


def test_select_method_exposes_destination():
    r = client.post("/attempts", json={"planId": "weekly"})
    body = r.json()
    assert body["state"] == sm.SELECTING_METHOD
    assert body["destination"] is None
    assert body["amount"] == 120

    r = client.post(f"/attempts/{body['attemptId']}/method", json={"method": "JazzCash"})
    assert r.status_code == 200
    body = r.json()
    assert body["state"] == sm.AWAITING_EVIDENCE
    assert body["destination"] == {
        "method": "JazzCash",
        "accountName": settings.JAZZCASH_ACCOUNT_NAME,
        "accountNumber": settings.JAZZCASH_ACCOUNT_NUMBER,
    }


def test_select_method_twice_conflicts():
    attempt_id = _new_attempt(method="JazzCash")
    r = client.post(f"/attempts/{attempt_id}/method", json={"method": "Easypaisa"})
    assert r.status_code == 409
    assert r.json()["detail"]["attempt"]["method"] == "JazzCash"


def test_end_to_end_verified():
    attempt_id = _new_attempt(method="Easypaisa")
    clf = FakeClassifier(ClassifierJudgment(verified=True, detectedAmount=350, provider="Easypaisa"))

    with patch("app.core.orchestrator.get_classifier", return_value=clf):
        r = client.post(f"/attempts/{attempt_id}/evidence", json={"image": _b64(IMG_A), "mimeType": "image/png"})
    assert r.status_code == 202
    assert r.json()["state"] == sm.VERIFYING

    # Background task has completed once TestClient returns
    body = client.get(f"/attempts/{attempt_id}").json()
    assert body["state"] == sm.VERIFIED
    assert body["verifiedAmount"] == 350
    assert body["verifiedProvider"] == "Easypaisa"
    assert clf.images == [IMG_A]

    ent = client.get("/entitlement").json()
    assert ent["isPremium"] is True
    assert ent["planId"] == "monthly"


def test_end_to_end_reject_then_retry():
    attempt_id = _new_attempt(method="Easypaisa")
    clf = FakeClassifier(
        ClassifierJudgment(verified=False, reason="amount unclear"),
        ClassifierJudgment(verified=True, detectedAmount=400, provider="Easypaisa"),
    )
    with patch("app.core.orchestrator.get_classifier", return_value=clf):
        client.post(f"/attempts/{attempt_id}/evidence", json={"image": _b64(IMG_A)})
        body = client.get(f"/attempts/{attempt_id}").json()
        assert body["state"] == sm.FAILED
        assert body["lastFailureReason"] == "amount unclear"
        assert body["method"] == "Easypaisa"
        assert client.get("/entitlement").json()["isPremium"] is False

        client.post(f"/attempts/{attempt_id}/evidence", json={"image": _b64(IMG_B)})
    assert client.get(f"/attempts/{attempt_id}").json()["state"] == sm.VERIFIED
    assert clf.images == [IMG_A, IMG_B]
    assert client.get("/entitlement").json()["isPremium"] is True


def test_classifier_error_is_not_leaked():
    attempt_id = _new_attempt()
    clf = FakeClassifier(ClassifierError("Gemini API error: 401 API key not valid"))
    with patch("app.core.orchestrator.get_classifier", return_value=clf):
        client.post(f"/attempts/{attempt_id}/evidence", json={"image": _b64(IMG_A)})
    body = client.get(f"/attempts/{attempt_id}").json()
    assert body["state"] == sm.FAILED
    assert body["lastFailureReason"] == sm.GENERIC_FAILURE_REASON


def test_data_url_evidence_is_decoded_exactly():
    attempt_id = _new_attempt()
    clf = FakeClassifier(ClassifierJudgment(verified=True, detectedAmount=350))
    with patch("app.core.orchestrator.get_classifier", return_value=clf):
        client.post(f"/attempts/{attempt_id}/evidence", json={"image": "data:image/png;base64," + _b64(IMG_A)})
    assert clf.images == [IMG_A]


def test_invalid_base64_rejected():
    attempt_id = _new_attempt()
    r = client.post(f"/attempts/{attempt_id}/evidence", json={"image": "not*base64!"})
    assert r.status_code == 422
    assert client.get(f"/attempts/{attempt_id}").json()["state"] == sm.AWAITING_EVIDENCE


def test_oversized_evidence_rejected():
    attempt_id = _new_attempt()
    with patch.object(settings, "MAX_EVIDENCE_BYTES", 4):
        r = client.post(f"/attempts/{attempt_id}/evidence", json={"image": _b64(IMG_A)})
    assert r.status_code == 413


def test_evidence_before_method_conflicts():
    attempt_id = _new_attempt(method=None)
    r = client.post(f"/attempts/{attempt_id}/evidence", json={"image": _b64(IMG_A)})
    assert r.status_code == 409


def test_evidence_while_verifying_conflicts():
    attempt_id = _new_attempt()
    a = attempt_repo.load_attempt(attempt_id)
    sm.begin_verification(a, IMG_A)

    clf = FakeClassifier()
    with patch("app.core.orchestrator.get_classifier", return_value=clf):
        r = client.post(f"/attempts/{attempt_id}/evidence", json={"image": _b64(IMG_B)})
    assert r.status_code == 409
    assert r.json()["detail"]["message"] == "Already processing a screenshot"
    assert clf.images == []
    assert a.evidence == IMG_A


def test_change_method_route():
    attempt_id = _new_attempt(method="JazzCash")
    r = client.delete(f"/attempts/{attempt_id}/method")
    assert r.status_code == 200
    assert r.json()["state"] == sm.SELECTING_METHOD
    assert r.json()["method"] is None
    assert client.delete(f"/attempts/{attempt_id}/method").status_code == 409


def test_cancel_attempt():
    attempt_id = _new_attempt()
    assert client.delete(f"/attempts/{attempt_id}").status_code == 204
    assert client.get(f"/attempts/{attempt_id}").status_code == 404
    assert entitlement.is_premium is False


def test_cancel_refused_while_verifying():
    attempt_id = _new_attempt()
    sm.begin_verification(attempt_repo.load_attempt(attempt_id), IMG_A)
    assert client.delete(f"/attempts/{attempt_id}").status_code == 409
    assert client.get(f"/attempts/{attempt_id}").status_code == 200


def test_api_key_enforced_when_configured():
    with patch.object(settings, "API_KEY", "secret"):
        assert client.get("/plans").status_code == 401
        assert client.get("/plans", headers={"x-api-key": "secret"}).status_code == 200


def test_health():
    assert client.get("/health").json() == {"status": "ok"}
