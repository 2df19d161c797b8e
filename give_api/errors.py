"""
Error taxonomy for the enhanced API.

Each ApiError carries the HTTP status, a machine-readable code and a public
message.  The app registers one exception handler that renders them as
``{"code", "error", "status_code"}``; messages never include exception
detail from the store.
"""


class ApiError(Exception):
    status_code = 500
    code = "internal_error"

    def __init__(self, message: str, code: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code


class ServiceUnavailable(ApiError):
    """GiveWP data or one of its tables is not reachable."""

    status_code = 503
    code = "givewp_not_active"


class MissingCredentials(ApiError):
    status_code = 401
    code = "missing_credentials"

    def __init__(self) -> None:
        super().__init__("API key and token are required.")


class InvalidCredentials(ApiError):
    status_code = 403
    code = "invalid_credentials"

    def __init__(self) -> None:
        super().__init__("Invalid API key or token.")


class NotFound(ApiError):
    status_code = 404

    def __init__(self, kind: str) -> None:
        super().__init__(f"{kind.capitalize()} not found.", code=f"{kind}_not_found")
        self.kind = kind


class FetchError(ApiError):
    """Unexpected failure while reading a record."""

    status_code = 500
    code = "fetch_error"

    def __init__(self, kind: str) -> None:
        super().__init__(f"Error fetching {kind}.")
        self.kind = kind
