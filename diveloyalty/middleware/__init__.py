"""
Middleware package.
"""
from .staff_auth import require_staff, get_staff_email_from_request
