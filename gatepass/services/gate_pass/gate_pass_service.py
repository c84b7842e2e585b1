"""
Gate pass service: issue, validate and redeem single-use exit credentials.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from gatepass.config.settings import settings
from gatepass.core.exceptions import (
    AuthorizationError,
    CredentialError,
    DuplicateEntryError,
    InvalidStateError,
    StorageError,
)
from gatepass.core.logging import mask_token
from gatepass.core.utils import DateTimeUtils, IDGenerator
from gatepass.models.base import LeaveStatus, UserRole
from gatepass.models.gate_pass import GatePass
from gatepass.models.leave import LeaveRequest
from gatepass.repositories.gate_pass_repository import GatePassRepository
from gatepass.repositories.leave import LeaveRequestRepository
from gatepass.services.base.base_service import BaseService
from gatepass.services.base.service_result import ServiceResult

TOKEN_ATTEMPTS = 3

# Validation outcomes, in the order they are checked
REASON_NOT_FOUND = "not_found"
REASON_ALREADY_USED = "already_used"
REASON_EXPIRED = "expired"
REASON_REQUEST_NOT_APPROVED = "request_not_approved"

REASON_MESSAGES = {
    REASON_NOT_FOUND: "Invalid QR code",
    REASON_ALREADY_USED: "QR code has already been used",
    REASON_EXPIRED: "QR code has expired",
    REASON_REQUEST_NOT_APPROVED: "Leave request is not approved",
}

EXIT_CONFIRMED_MESSAGE = "Student exit confirmed"


@dataclass
class GatePassValidation:
    """Outcome of checking a scanned token."""

    valid: bool
    reason: Optional[str] = None
    gate_pass: Optional[GatePass] = None
    leave_request: Optional[LeaveRequest] = None

    @property
    def message(self) -> str:
        return REASON_MESSAGES.get(self.reason, "Valid gate pass") if self.reason else "Valid gate pass"


@dataclass
class RedemptionResult:
    success: bool
    message: str
    reason: Optional[str] = None
    student_summary: Dict[str, Any] = field(default_factory=dict)


def build_student_summary(request: LeaveRequest) -> Dict[str, Any]:
    """Fields a security officer checks against the student at the gate."""
    student = request.student
    return {
        "student_id": request.student_id,
        "student_name": student.full_name if student else None,
        "department": student.department if student else None,
        "leave_request_id": request.id,
        "leave_type": request.leave_type.value,
        "from_date": request.from_date.isoformat(),
        "to_date": request.to_date.isoformat(),
    }


class GatePassService(BaseService[GatePass, GatePassRepository]):
    """
    Exit credential lifecycle.

    A pass exists only for an approved request, is unique per request and
    flips from unused to used exactly once.
    """

    def __init__(
        self,
        gate_pass_repo: GatePassRepository,
        leave_request_repo: LeaveRequestRepository,
        db_session: Session,
    ):
        super().__init__(gate_pass_repo, db_session)
        self.gate_pass_repo = gate_pass_repo
        self.leave_request_repo = leave_request_repo

    # -------------------------------------------------------------------------
    # Issuance
    # -------------------------------------------------------------------------

    def issue(self, request_id: str) -> ServiceResult[GatePass]:
        """
        Issue the gate pass for an approved request.

        Returns the existing unused pass when one was already issued.
        """
        try:
            return ServiceResult.success(self._issue(request_id), message="Gate pass issued")
        except Exception as e:
            return self._handle_exception(e, "issue gate pass", request_id)

    def _issue(self, request_id: str) -> GatePass:
        request = self.leave_request_repo.get_by_id(request_id)
        if request.status != LeaveStatus.APPROVED:
            raise InvalidStateError(
                "Gate passes are only issued for approved requests",
                current_state=request.status.value,
            )

        existing = self._existing_pass(request_id)
        if existing is not None:
            return existing

        expires_at = DateTimeUtils.end_of_day_utc(request.to_date)

        for attempt in range(1, TOKEN_ATTEMPTS + 1):
            token = IDGenerator.generate_gate_pass_token(
                request.id,
                request.student_id,
                settings.GATE_PASS_TOKEN_PREFIX,
                settings.GATE_PASS_TOKEN_LENGTH,
            )
            try:
                with self.transaction():
                    gate_pass = self.gate_pass_repo.create(
                        GatePass(
                            leave_request_id=request_id,
                            token=token,
                            issued_at=DateTimeUtils.now_utc(),
                            expires_at=expires_at,
                            used=False,
                        )
                    )
            except DuplicateEntryError:
                # Either a concurrent issuer won or the token collided
                existing = self._existing_pass(request_id)
                if existing is not None:
                    return existing
                self._logger.warning(
                    "Gate pass token collision, regenerating",
                    extra={"leave_request_id": request_id, "attempt": attempt},
                )
                continue

            self._logger.info(
                "Gate pass issued",
                extra={
                    "leave_request_id": request_id,
                    "gate_pass_id": gate_pass.id,
                    "token": mask_token(gate_pass.token),
                    "expires_at": gate_pass.expires_at.isoformat(),
                },
            )
            return gate_pass

        raise StorageError("Could not allocate a unique gate pass token", operation="issue")

    def _existing_pass(self, request_id: str) -> Optional[GatePass]:
        existing = self.gate_pass_repo.find_by_request(request_id)
        if existing is not None and existing.used:
            raise InvalidStateError("Gate pass has already been used", current_state="used")
        return existing

    # -------------------------------------------------------------------------
    # Validation & Redemption
    # -------------------------------------------------------------------------

    def validate(self, token: str, now: Optional[datetime] = None) -> GatePassValidation:
        """
        Check a scanned token without changing it.

        Reasons are checked in order: not_found, already_used, expired,
        request_not_approved.

        Raises:
            StorageError: If the store is unavailable
        """
        gate_pass = self.gate_pass_repo.find_by_token(token.strip()) if token else None
        if gate_pass is None:
            return GatePassValidation(valid=False, reason=REASON_NOT_FOUND)

        request = gate_pass.leave_request
        if gate_pass.used:
            return GatePassValidation(False, REASON_ALREADY_USED, gate_pass, request)

        if gate_pass.is_expired(now or DateTimeUtils.now_utc()):
            return GatePassValidation(False, REASON_EXPIRED, gate_pass, request)

        if request is None or request.status != LeaveStatus.APPROVED:
            return GatePassValidation(False, REASON_REQUEST_NOT_APPROVED, gate_pass, request)

        return GatePassValidation(True, None, gate_pass, request)

    def redeem(self, token: str, scanned_by: str, now: Optional[datetime] = None) -> ServiceResult[RedemptionResult]:
        """
        Validate a token and mark it used.

        The used flag is flipped with a compare-and-set, so of two
        simultaneous scans exactly one succeeds and the other is told the
        pass was already used.
        """
        scanned_at = now or DateTimeUtils.now_utc()
        try:
            validation = self.validate(token, scanned_at)
            if not validation.valid:
                raise CredentialError(validation.reason, validation.message)

            with self.transaction():
                won = self.gate_pass_repo.mark_used_if_unused(validation.gate_pass.id, scanned_by, scanned_at)
                if not won:
                    raise CredentialError(REASON_ALREADY_USED, REASON_MESSAGES[REASON_ALREADY_USED])

            self._logger.info(
                "Gate pass redeemed",
                extra={
                    "gate_pass_id": validation.gate_pass.id,
                    "token": mask_token(token),
                    "scanned_by": scanned_by,
                },
            )
            return ServiceResult.success(
                RedemptionResult(
                    success=True,
                    message=EXIT_CONFIRMED_MESSAGE,
                    student_summary=build_student_summary(validation.leave_request),
                ),
                message=EXIT_CONFIRMED_MESSAGE,
            )
        except Exception as e:
            return self._handle_exception(
                e,
                "redeem gate pass",
                mask_token(token),
                additional_context={"scanned_by": scanned_by},
            )

    # -------------------------------------------------------------------------
    # Display
    # -------------------------------------------------------------------------

    def get_for_request(self, request_id: str, requester_id: str, role: UserRole) -> ServiceResult[GatePass]:
        """
        Gate pass for display to the student who owns the request.

        Issues the pass on first access when approval completed but
        issuance did not.
        """
        try:
            request = self.leave_request_repo.get_by_id(request_id)
            if role != UserRole.ADMIN and request.student_id != requester_id:
                raise AuthorizationError("Only the requesting student may view this gate pass", actual_role=role.value)

            gate_pass = self.gate_pass_repo.find_by_request(request_id)
            if gate_pass is not None:
                return ServiceResult.success(gate_pass)

            if request.status != LeaveStatus.APPROVED:
                raise InvalidStateError(REASON_MESSAGES[REASON_REQUEST_NOT_APPROVED], current_state=request.status.value)

            self._logger.info("Issuing pending gate pass on display", extra={"leave_request_id": request_id})
            return ServiceResult.success(self._issue(request_id))
        except Exception as e:
            return self._handle_exception(e, "get gate pass", request_id)
