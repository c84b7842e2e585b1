"""
HTTP surface: routing, identity, role checks and error translation.
"""

import pytest
from fastapi.testclient import TestClient

from gatepass.api.deps import get_db, get_notification_sink, get_workflow_service
from gatepass.main import create_app
from gatepass.services.base.service_result import ErrorCode, ServiceError, ServiceResult
from tests.helpers import auth_header, days_from_today, identity_token


def _body(**overrides):
    body = {
        "leave_type": "personal",
        "student_type": "hostel",
        "from_date": days_from_today(1).isoformat(),
        "to_date": days_from_today(2).isoformat(),
        "reason": "Sister's engagement ceremony",
    }
    body.update(overrides)
    return body


@pytest.fixture
def app(db, sink):
    application = create_app()

    def override_db():
        yield db

    application.dependency_overrides[get_db] = override_db
    application.dependency_overrides[get_notification_sink] = lambda: sink
    return application


@pytest.fixture
def client(app):
    return TestClient(app)


@pytest.fixture
def submitted(client, campus):
    response = client.post("/api/v1/leave-requests", json=_body(), headers=auth_header(campus.hostel_student))
    assert response.status_code == 201, response.text
    return response.json()["request_id"]


def _decide(client, request_id, approver, decision="approve", comments=None):
    payload = {"decision": decision}
    if comments is not None:
        payload["comments"] = comments
    return client.post(
        f"/api/v1/leave-requests/{request_id}/decision",
        json=payload,
        headers=auth_header(approver),
    )


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "ok"
    assert response.headers["X-Request-ID"]


def test_submit_returns_request_at_step_one(client, campus, submitted, sink):
    detail = client.get(f"/api/v1/leave-requests/{submitted}", headers=auth_header(campus.hostel_student))

    assert detail.status_code == 200
    body = detail.json()
    assert body["status"] == "pending"
    assert body["current_step"] == 1
    assert body["duration_days"] == 2
    assert body["student_name"] == "Asha Rao"
    assert [a["approver_role"] for a in body["approvals"]] == ["mentor"]
    assert sink.messages_to(campus.mentor_cse.id)


def test_full_flow_to_redemption(client, campus, submitted):
    for approver, status in (
        (campus.mentor_cse, "mentor_approved"),
        (campus.hod_cse, "hod_approved"),
        (campus.principal, "principal_approved"),
        (campus.warden, "approved"),
    ):
        response = _decide(client, submitted, approver)
        assert response.status_code == 200, response.text
        assert response.json()["new_status"] == status

    shown = client.get(f"/api/v1/gate-passes/{submitted}", headers=auth_header(campus.hostel_student))
    assert shown.status_code == 200
    token = shown.json()["token"]
    assert shown.json()["used"] is False

    redeemed = client.post("/api/v1/gate-passes/redeem", json={"token": token}, headers=auth_header(campus.security))
    assert redeemed.status_code == 200
    assert redeemed.json()["success"] is True
    assert redeemed.json()["message"] == "Student exit confirmed"
    assert redeemed.json()["student_summary"]["student_name"] == "Asha Rao"

    again = client.post("/api/v1/gate-passes/redeem", json={"token": token}, headers=auth_header(campus.security))
    assert again.status_code == 400
    assert again.json() == {
        "success": False,
        "message": "QR code has already been used",
        "reason": "already_used",
        "student_summary": None,
    }


def test_unknown_token_is_a_bad_request(client, campus):
    response = client.post(
        "/api/v1/gate-passes/redeem",
        json={"token": "LEAVE-0123456789ABCDEF"},
        headers=auth_header(campus.security),
    )

    assert response.status_code == 400
    assert response.json()["reason"] == "not_found"


def test_missing_token_is_unauthorized(client):
    response = client.post("/api/v1/leave-requests", json=_body())

    assert response.status_code == 401
    assert response.json()["error"]["code"] == "AUTHENTICATION_FAILED"


def test_forged_token_is_unauthorized(client, campus):
    headers = {"Authorization": f"Bearer {identity_token(campus.hostel_student)}x"}

    response = client.get("/api/v1/leave-requests/mine", headers=headers)

    assert response.status_code == 401


def test_wrong_role_is_forbidden(client, campus, submitted):
    assert client.post("/api/v1/leave-requests", json=_body(), headers=auth_header(campus.mentor_cse)).status_code == 403
    assert _decide(client, submitted, campus.hostel_student).status_code == 403
    assert (
        client.post("/api/v1/gate-passes/redeem", json={"token": "x"}, headers=auth_header(campus.warden)).status_code
        == 403
    )


def test_wrong_department_is_forbidden(client, campus, submitted):
    response = _decide(client, submitted, campus.mentor_ece)

    assert response.status_code == 403
    assert response.json()["error"]["code"] == ErrorCode.INSUFFICIENT_PERMISSIONS.value


def test_rejection_without_comments_is_unprocessable(client, campus, submitted):
    response = _decide(client, submitted, campus.mentor_cse, decision="reject")

    assert response.status_code == 422


def test_rejection_is_final(client, campus, submitted):
    rejected = _decide(client, submitted, campus.mentor_cse, decision="reject", comments="Exams next week")
    assert rejected.json()["new_status"] == "rejected"
    assert rejected.json()["current_step"] == 0

    response = _decide(client, submitted, campus.mentor_cse)

    assert response.status_code == 409
    assert response.json()["error"]["code"] == ErrorCode.INVALID_STATE.value


@pytest.mark.parametrize(
    "body",
    [
        _body(leave_type="vacation"),
        _body(reason="short"),
        _body(from_date=days_from_today(-2).isoformat()),
        {"leave_type": "personal"},
    ],
)
def test_invalid_submission_is_unprocessable(client, campus, body):
    response = client.post("/api/v1/leave-requests", json=body, headers=auth_header(campus.hostel_student))

    assert response.status_code == 422


def test_unknown_decision_value_is_unprocessable(client, campus, submitted):
    assert _decide(client, submitted, campus.mentor_cse, decision="maybe").status_code == 422


def test_unknown_request_is_not_found(client, campus):
    response = client.get("/api/v1/leave-requests/does-not-exist", headers=auth_header(campus.admin))

    assert response.status_code == 404


def test_queues_and_student_history(client, campus, submitted):
    mine = client.get("/api/v1/leave-requests/mine", headers=auth_header(campus.hostel_student))
    assert [r["id"] for r in mine.json()] == [submitted]

    mentor_queue = client.get("/api/v1/leave-requests/pending", headers=auth_header(campus.mentor_cse))
    assert [r["id"] for r in mentor_queue.json()] == [submitted]

    other_queue = client.get("/api/v1/leave-requests/pending", headers=auth_header(campus.mentor_ece))
    assert other_queue.json() == []


def test_parent_confirmation(client, campus, submitted):
    _decide(client, submitted, campus.mentor_cse)

    response = client.post(
        f"/api/v1/leave-requests/{submitted}/parent-confirmation",
        json={"confirmed": True},
        headers=auth_header(campus.parent),
    )

    assert response.status_code == 200
    assert response.json()["new_status"] == "parent_confirmed"
    assert response.json()["current_step"] == 3

    stranger = client.post(
        f"/api/v1/leave-requests/{submitted}/parent-confirmation",
        json={"confirmed": True},
        headers=auth_header(campus.other_parent),
    )
    assert stranger.status_code == 403


def test_storage_outage_is_retryable(app, client, campus):
    class UnavailableWorkflow:
        def submit(self, student_id, payload):
            return ServiceResult.failure(
                ServiceError(
                    code=ErrorCode.STORAGE_UNAVAILABLE,
                    message="Service temporarily unavailable, please retry",
                    details={"retryable": True},
                )
            )

    app.dependency_overrides[get_workflow_service] = lambda: UnavailableWorkflow()

    response = client.post("/api/v1/leave-requests", json=_body(), headers=auth_header(campus.hostel_student))

    assert response.status_code == 503
    assert response.headers["Retry-After"] == "5"
    assert response.json()["error"]["details"]["retryable"] is True


def test_admin_sweeps(client, campus, submitted):
    processed = client.post("/api/v1/notifications/process", headers=auth_header(campus.admin))
    assert processed.status_code == 200
    assert processed.json() == {"processed": 0, "sent": 0, "failed": 0}

    overdue = client.post("/api/v1/leave-requests/overdue/notify", headers=auth_header(campus.admin))
    assert overdue.status_code == 200
    assert overdue.json() == {"notified": 0}

    forbidden = client.post("/api/v1/notifications/process", headers=auth_header(campus.security))
    assert forbidden.status_code == 403
