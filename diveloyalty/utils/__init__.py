"""
Utility modules for the loyalty service.
"""
from .logging_config import setup_logging
from .errors import (
    ErrorCode,
    error_response,
    from_exception,
    bad_request,
    forbidden,
    not_found,
    internal_error
)
from .exceptions import (
    DiveLoyaltyError,
    NotFoundError,
    ProfileNotFoundError,
    ValidationError,
    NotEnrolledError,
    InsufficientBalanceError,
    InsufficientPointsError,
    ConfigurationError,
    BatchCommitError
)
