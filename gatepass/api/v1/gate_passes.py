"""
Gate pass endpoints: student display and security redemption.
"""

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from gatepass.api.deps import CurrentIdentity, get_gate_pass_service, require_roles
from gatepass.api.errors import ServiceFailure, unwrap_or_raise
from gatepass.models.base import UserRole
from gatepass.schemas.gate_pass import GatePassDisplay, RedeemRequest, RedeemResponse, StudentSummary
from gatepass.services.base.service_result import ErrorCode
from gatepass.services.gate_pass.gate_pass_service import GatePassService

router = APIRouter(prefix="/gate-passes", tags=["Gate Passes"])


@router.post("/redeem", response_model=RedeemResponse)
def redeem_gate_pass(
    payload: RedeemRequest,
    identity: CurrentIdentity = Depends(require_roles(UserRole.SECURITY)),
    service: GatePassService = Depends(get_gate_pass_service),
):
    result = service.redeem(payload.token, identity.user_id)

    if not result.is_success:
        if result.error.code != ErrorCode.CREDENTIAL_INVALID:
            raise ServiceFailure(result)
        body = RedeemResponse(
            success=False,
            message=result.error.message,
            reason=(result.error.details or {}).get("reason"),
        )
        return JSONResponse(status_code=400, content=body.model_dump(mode="json"))

    redemption = result.data
    return RedeemResponse(
        success=True,
        message=redemption.message,
        student_summary=StudentSummary(**redemption.student_summary),
    )


@router.get("/{request_id}", response_model=GatePassDisplay)
def get_gate_pass(
    request_id: str,
    identity: CurrentIdentity = Depends(require_roles(UserRole.STUDENT, UserRole.ADMIN)),
    service: GatePassService = Depends(get_gate_pass_service),
) -> GatePassDisplay:
    gate_pass = unwrap_or_raise(service.get_for_request(request_id, identity.user_id, identity.role))
    return GatePassDisplay.model_validate(gate_pass)
