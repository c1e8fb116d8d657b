"""
Error taxonomy shared by the matching, dispatch and messaging layers.

Routes never raise these as HTTP errors directly; main.py maps them to
responses through a single CoreError exception handler.
"""


class CoreError(Exception):
    status_code = 500

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class ValidationError(CoreError):
    """Missing or malformed requirement/message fields. Raised before any write."""
    status_code = 400


class NotFoundError(CoreError):
    status_code = 404


class TransientStoreError(CoreError):
    """Datastore or network failure. Safe to retry with backoff."""
    status_code = 503


class PermissionDeniedError(CoreError):
    """Unauthenticated actor or a mutation on another user's records."""
    status_code = 403
