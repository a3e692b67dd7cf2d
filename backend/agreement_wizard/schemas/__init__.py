# Schemas package
from .agreement_schema import AgreementRecord
from .wizard_schema import (
    BackgroundStateResponse,
    CancelRequest,
    CreateSessionRequest,
    GenerateRequest,
    GenerateResponse,
    InputsUpdateRequest,
    SessionResponse,
)

__all__ = [
    "AgreementRecord",
    "BackgroundStateResponse",
    "CancelRequest",
    "CreateSessionRequest",
    "GenerateRequest",
    "GenerateResponse",
    "InputsUpdateRequest",
    "SessionResponse",
]
