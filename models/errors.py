"""Domain errors raised by model and service functions.

All of them derive from ``ValueError`` so callers that only care about
"the request was rejected" can catch that and show ``str(e)``.
"""


class ValidationError(ValueError):
    status_code = 400


class PermissionDenied(ValueError):
    status_code = 403


class NotFoundError(ValueError):
    status_code = 404


class ConflictError(ValueError):
    status_code = 409
