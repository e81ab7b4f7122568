"""
Error taxonomy for the portal.

Every error carries the HTTP status it is surfaced with; the handlers in
main.py turn them into {"error": message} responses.
"""


class PortalError(Exception):
    status_code = 500
    message = "Internal Server Error"

    def __init__(self, message=None):
        self.message = message or self.message
        super().__init__(self.message)


class ValidationError(PortalError):
    """Missing or malformed required field (including malformed IDs)."""
    status_code = 400
    message = "Invalid request"


class NotFound(PortalError):
    status_code = 404
    message = "Not found"


class ConflictError(PortalError):
    """Duplicate value for a unique field such as email or CNIC."""
    status_code = 400
    message = "Duplicate value"


class StoreError(PortalError):
    # The driver message is logged, never returned to the caller
    status_code = 500
    message = "Database operation failed"
