"""
Gate pass services.
"""

from gatepass.services.gate_pass.gate_pass_service import (
    GatePassService,
    GatePassValidation,
    RedemptionResult,
)

__all__ = ["GatePassService", "GatePassValidation", "RedemptionResult"]
