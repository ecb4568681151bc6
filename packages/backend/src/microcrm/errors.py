"""Domain errors.

Services raise these; the HTTP layer maps them to status codes in
main.create_app(). The public message of every error is fixed so that
callers cannot learn more than the error type tells them (e.g. whether
an email exists, or whether a client belongs to someone else).
"""


class CrmError(Exception):
    """Base class for all domain errors."""

    status_code = 500
    public_message = "Internal server error"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.public_message)


class DuplicateEmail(CrmError):
    status_code = 409
    public_message = "Email already registered"


class InvalidCredentials(CrmError):
    """Unknown email, passwordless account, or wrong password. Deliberately one error."""

    status_code = 401
    public_message = "Invalid credentials"


class Unauthorized(CrmError):
    """Missing, malformed, expired or forged bearer token."""

    status_code = 401
    public_message = "Unauthorized"


class NotFound(CrmError):
    """Resource absent or owned by another user. Deliberately one error."""

    status_code = 404
    public_message = "Not found"


class EncodingError(CrmError):
    """Password input that cannot be encoded for hashing."""

    status_code = 400
    public_message = "Invalid password encoding"


# ─── Token failures (internal only, collapsed to Unauthorized) ──────


class TokenError(Unauthorized):
    """Raised when token verification fails. Renders as a plain Unauthorized."""

    reason = "invalid"


class InvalidSignature(TokenError):
    reason = "invalid_signature"


class Expired(TokenError):
    reason = "expired"


class Malformed(TokenError):
    reason = "malformed"
