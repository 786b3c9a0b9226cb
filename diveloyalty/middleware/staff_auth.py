"""
Staff Authentication Middleware.

Loyalty dashboard endpoints are staff-only. The caller identifies itself with
the X-Staff-Email header, which must be listed in STAFF_EMAILS; the email is
recorded as processedBy / grantedBy on the writes it makes.
"""
from functools import wraps
from flask import current_app, g, request

from ..utils.errors import ErrorCode, forbidden, error_response


def get_staff_email_from_request() -> str | None:
    """Get the staff email header, normalized."""
    email = request.headers.get('X-Staff-Email', '').strip().lower()
    return email or None


def require_staff(f):
    """
    Decorator to require a known staff member.

    Sets g.staff_email if authenticated.

    Usage:
        @require_staff
        def my_endpoint():
            staff = g.staff_email
            ...
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        email = get_staff_email_from_request()

        if not email:
            return error_response(
                'Authentication required', ErrorCode.AUTH_REQUIRED, 401, log_error=False
            )

        if email not in current_app.config.get('STAFF_EMAILS', []):
            current_app.logger.warning(f'[Auth] Rejected staff request from {email}')
            return forbidden('Staff access required')

        g.staff_email = email
        return f(*args, **kwargs)

    return decorated_function
