"""
Shared fixtures: an in-memory database per test, a seeded campus
directory, notification sinks and wired services.
"""

import os

# Must be set before gatepass.config is imported
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["TIMEZONE"] = "UTC"
os.environ["ENVIRONMENT"] = "testing"
os.environ["IDENTITY_JWT_SECRET"] = "test-identity-secret"
os.environ["IDENTITY_JWT_ALGORITHM"] = "HS256"

from types import SimpleNamespace

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from gatepass.db.base import Base, import_models
from gatepass.models.base import ApprovalDecision, StudentType, UserRole
from gatepass.models.user import User
from gatepass.repositories import (
    GatePassRepository,
    LeaveApprovalRepository,
    LeaveRequestRepository,
    NotificationRepository,
    UserRepository,
)
from gatepass.services.gate_pass.gate_pass_service import GatePassService
from gatepass.services.leave.leave_workflow_service import LeaveWorkflowService
from gatepass.services.notification.notification_dispatcher import NotificationDispatcher
from tests.helpers import RecordingSink, leave_payload


# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------

@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    import_models()
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db(engine):
    session = sessionmaker(bind=engine, autocommit=False, autoflush=False)()
    yield session
    session.close()


# ---------------------------------------------------------------------------
# Campus directory
# ---------------------------------------------------------------------------

def _user(db, full_name, role, department=None, affiliation=None, phone=None, parent=None):
    user = User(
        full_name=full_name,
        role=role,
        department=department,
        student_affiliation=affiliation,
        phone=phone,
        parent_id=parent.id if parent else None,
        is_active=True,
    )
    db.add(user)
    db.flush()
    return user


@pytest.fixture
def campus(db):
    """Students, their parent and one approver per role and department."""
    parent = _user(db, "Meera Rao", UserRole.PARENT, phone="+919876543210")
    other_parent = _user(db, "Arjun Das", UserRole.PARENT, phone="+919812345678")
    people = SimpleNamespace(
        parent=parent,
        other_parent=other_parent,
        hostel_student=_user(db, "Asha Rao", UserRole.STUDENT, "CSE", StudentType.HOSTEL, parent=parent),
        day_student=_user(db, "Vikram Das", UserRole.STUDENT, "CSE", StudentType.DAY_SCHOLAR, parent=other_parent),
        ece_student=_user(db, "Nila Iyer", UserRole.STUDENT, "ECE", StudentType.HOSTEL),
        mentor_cse=_user(db, "Dr. Kumar", UserRole.MENTOR, "CSE"),
        mentor_ece=_user(db, "Dr. Bose", UserRole.MENTOR, "ECE"),
        hod_cse=_user(db, "Prof. Sen", UserRole.HOD, "CSE"),
        hod_ece=_user(db, "Prof. Nair", UserRole.HOD, "ECE"),
        principal=_user(db, "Dr. Menon", UserRole.PRINCIPAL),
        warden=_user(db, "Mr. Pillai", UserRole.WARDEN),
        security=_user(db, "Gate Officer", UserRole.SECURITY),
        admin=_user(db, "Registrar", UserRole.ADMIN),
    )
    db.commit()
    return people


# ---------------------------------------------------------------------------
# Services
# ---------------------------------------------------------------------------

@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def dispatcher(db, sink):
    return NotificationDispatcher(NotificationRepository(db), UserRepository(db), db, sink=sink)


@pytest.fixture
def gate_pass_service(db):
    return GatePassService(GatePassRepository(db), LeaveRequestRepository(db), db)


@pytest.fixture
def workflow(db, gate_pass_service, dispatcher):
    return LeaveWorkflowService(
        LeaveRequestRepository(db),
        LeaveApprovalRepository(db),
        UserRepository(db),
        gate_pass_service,
        dispatcher,
        db,
    )


@pytest.fixture
def submit(workflow):
    """Submit a leave request and return the persisted request."""

    def _submit(student, **overrides):
        overrides.setdefault("student_type", student.student_affiliation)
        result = workflow.submit(student.id, leave_payload(**overrides))
        assert result.is_success, result.error
        return result.data

    return _submit


@pytest.fixture
def approve(workflow):
    """Approve the request's current step as ``approver``."""

    def _approve(request_id, approver):
        result = workflow.record_decision(request_id, approver.id, approver.role, ApprovalDecision.APPROVED)
        assert result.is_success, result.error
        return result.data

    return _approve


@pytest.fixture
def approved_request(submit, approve, campus):
    """Hostel request approved through the full chain."""
    request = submit(campus.hostel_student)
    for approver in (campus.mentor_cse, campus.hod_cse, campus.principal, campus.warden):
        approve(request.id, approver)
    return request
