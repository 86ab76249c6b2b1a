"""Domain exceptions raised by services and translated to HTTP errors by routers."""


class PlannerError(Exception):
    """Base class for errors carrying a user-facing message."""

    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFound(PlannerError):
    status_code = 404


class NotAuthenticated(PlannerError):
    status_code = 401

    def __init__(self, message: str = "User not authenticated"):
        super().__init__(message)


class AuthError(PlannerError):
    """Authentication failure; the message is one of the raw auth messages."""

    status_code = 401


class Conflict(PlannerError):
    status_code = 409


class RpcError(PlannerError):
    """A server-side lookup function failed.

    ``code`` mirrors PostgREST error codes (``PGRST116`` = no rows) and
    ``status`` the HTTP status the function would have answered with.
    """

    def __init__(self, message: str, code: str | None = None, status: int | None = None):
        super().__init__(message)
        self.code = code
        self.status = status


class StorageError(PlannerError):
    pass
