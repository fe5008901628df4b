from typing import Any, Dict, Optional
from fastapi import FastAPI, HTTPException, Request, status
from fastapi.responses import JSONResponse


def get_user_exception():
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    return credentials_exception


def get_forbidden_exception():
    forbidden_exception = HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail="You are not authorized to perform this function"
    )
    return forbidden_exception


class LedgerError(Exception):
    """Base class for every caller-facing ledger failure."""

    status_code: int = status.HTTP_400_BAD_REQUEST
    code: str = "ledger_error"
    message: str = "Ledger operation failed"

    def __init__(self, message: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        self.message = message or self.message
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {"message": self.message, "code": self.code, "details": self.details}


class ValidationError(LedgerError):
    code = "validation_error"
    message = "Invalid request"


class PastDateError(ValidationError):
    message = "Cannot request leave for past dates"


class InvalidRangeError(ValidationError):
    message = "End date must be after start date"


class InsufficientBalanceError(LedgerError):
    code = "insufficient_balance"
    message = "Insufficient leave balance"

    def __init__(self, required: int, available: int, message: Optional[str] = None):
        self.required = required
        self.available = available
        super().__init__(message, {"required": required, "available": available})


class OverlapError(LedgerError):
    code = "leave_overlap"
    message = "You already have a leave request for this period"


class AlreadyProcessedError(LedgerError):
    status_code = status.HTTP_409_CONFLICT
    code = "already_processed"
    message = "Leave request has already been processed"


class ConflictError(LedgerError):
    status_code = status.HTTP_409_CONFLICT
    code = "concurrent_update"
    message = "The record was changed by another request"


class AlreadyCheckedInError(LedgerError):
    code = "already_checked_in"
    message = "Already checked in today"


class AlreadyCheckedOutError(LedgerError):
    code = "already_checked_out"
    message = "Already checked out today"


class NotCheckedInError(LedgerError):
    code = "not_checked_in"
    message = "Must check in first"


class NotFoundError(LedgerError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "not_found"
    message = "Entity not found"


class LedgerInternalError(LedgerError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = "internal_error"
    message = "Server error"


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(LedgerError)
    async def ledger_error_handler(request: Request, exc: LedgerError) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())
