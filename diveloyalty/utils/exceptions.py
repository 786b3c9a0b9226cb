"""
Custom exceptions for loyalty business logic.

These exceptions carry a message and a machine-readable code so the API layer
can turn them into consistent error responses with the right status code.
"""


class DiveLoyaltyError(Exception):
    """Base exception for all loyalty business logic errors."""

    status_code = 400

    def __init__(self, message: str, code: str = "LOYALTY_ERROR"):
        self.message = message
        self.code = code
        super().__init__(message)


class NotFoundError(DiveLoyaltyError):
    """Resource not found."""

    status_code = 404

    def __init__(self, resource: str, identifier=None):
        message = f"{resource} not found"
        if identifier:
            message = f"{resource} with ID {identifier} not found"
        super().__init__(message, f"{resource.upper()}_NOT_FOUND")


class ProfileNotFoundError(NotFoundError):
    """Profile not found."""

    def __init__(self, identifier=None):
        super().__init__("Profile", identifier)


class ValidationError(DiveLoyaltyError):
    """Invalid input data."""

    def __init__(self, message: str, field: str = None):
        self.field = field
        code = f"INVALID_{field.upper()}" if field else "VALIDATION_ERROR"
        super().__init__(message, code)


class NotEnrolledError(DiveLoyaltyError):
    """Profile has not joined the loyalty program."""

    status_code = 409

    def __init__(self, uid: str):
        self.uid = uid
        super().__init__(f"Profile {uid} is not enrolled in the loyalty program", "NOT_ENROLLED")


class InsufficientBalanceError(DiveLoyaltyError):
    """Not enough balance for the operation."""

    def __init__(self, current: float, required: float, currency: str = "credits"):
        self.current = current
        self.required = required
        message = f"Insufficient {currency}. Current: {current}, Required: {required}"
        super().__init__(message, "INSUFFICIENT_BALANCE")


class InsufficientPointsError(InsufficientBalanceError):
    """Not enough points for the operation."""

    def __init__(self, current: int, required: int):
        super().__init__(current, required, "points")
        self.code = "INSUFFICIENT_POINTS"


class ConfigurationError(DiveLoyaltyError):
    """Application configuration error."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message, "CONFIGURATION_ERROR")


class BatchCommitError(DiveLoyaltyError):
    """An atomic batch write was rejected; nothing in it was applied."""

    status_code = 500

    def __init__(self, message: str, original_error: Exception = None):
        self.original_error = original_error
        super().__init__(message, "BATCH_COMMIT_FAILED")
