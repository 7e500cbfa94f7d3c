from typing import Any, Dict, List, Optional

class AppException(Exception):
    def __init__(
        self,
        message: str,
        status_code: int = 400,
        error_code: str = "BUSINESS_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.status_code = status_code
        self.error_code = error_code
        self.details = details
        super().__init__(self.message)

class AbsenceValidationError(AppException):
    """Raised when a candidate absence breaks one or more leave rules."""
    def __init__(self, issues: List[Any], warnings: Optional[List[str]] = None):
        self.issues = list(issues)
        self.warnings = list(warnings or [])
        super().__init__(
            message="; ".join(issue.message for issue in self.issues) or "Absence request is invalid",
            status_code=422,
            error_code="ABSENCE_VALIDATION_FAILED",
            details={
                "errors": [issue.model_dump() for issue in self.issues],
                "warnings": self.warnings,
            }
        )

class PersistenceError(AppException):
    def __init__(
        self,
        message: str = "Storage operation failed",
        status_code: int = 503,
        error_code: str = "PERSISTENCE_FAILED",
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            status_code=status_code,
            error_code=error_code,
            details=details
        )

class AbsenceOverlapError(PersistenceError):
    """The storage layer refused an absence overlapping another pending/approved one."""
    def __init__(self):
        super().__init__(
            message="An absence is already declared for this period",
            status_code=409,
            error_code="ABSENCE_OVERLAP"
        )

class LeaveBalanceConflictError(PersistenceError):
    def __init__(self, contract_id: int, leave_year: str):
        super().__init__(
            message="A leave balance already exists for this contract and leave year",
            status_code=409,
            error_code="LEAVE_BALANCE_EXISTS",
            details={"contract_id": contract_id, "leave_year": leave_year}
        )

class LeaveBalanceNotFoundError(AppException):
    def __init__(self, contract_id: int, leave_year: str):
        super().__init__(
            message="Leave balance not found",
            status_code=404,
            error_code="LEAVE_BALANCE_NOT_FOUND",
            details={"contract_id": contract_id, "leave_year": leave_year}
        )

class NotFoundError(AppException):
    def __init__(self, message: str = "Resource not found"):
        super().__init__(
            message=message,
            status_code=404,
            error_code="NOT_FOUND"
        )

class InvalidTransitionError(AppException):
    def __init__(self, current: str, requested: str):
        super().__init__(
            message=f"Cannot move an absence from '{current}' to '{requested}'",
            status_code=409,
            error_code="INVALID_STATUS_TRANSITION",
            details={"current": current, "requested": requested}
        )

class AuthenticationError(AppException):
    def __init__(self, message: str = "Could not validate credentials"):
        super().__init__(
            message=message,
            status_code=401,
            error_code="AUTH_FAILED"
        )

class AccessDeniedError(AppException):
    """Custom permission error. Named AccessDeniedError to avoid shadowing Python's built-in PermissionError."""
    def __init__(self, message: str = "Insufficient permissions"):
        super().__init__(
            message=message,
            status_code=403,
            error_code="PERMISSION_DENIED"
        )
