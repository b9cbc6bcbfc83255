from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Optional


class ConversionError(Exception):
    """Base for every failure that ends a request with a structured error.

    Carries the HTTP-style status, an optional action code the client can act
    on (reconnect, retry later, ...) and an optional machine-readable code.
    """

    status_code = 500

    def __init__(self, message: str, action: Optional[str] = None,
                 code: Optional[str] = None, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.message = message
        self.action = action
        self.code = code
        if status_code is not None:
            self.status_code = status_code

    def to_json(self) -> Dict[str, Any]:
        error: Dict[str, Any] = {"message": self.message}
        if self.action:
            error["action"] = self.action
        if self.code:
            error["code"] = self.code
        return {"error": error}


class InputError(ConversionError):
    """Malformed request, unsupported URL or unsupported platform pairing."""

    status_code = 400


class AuthError(ConversionError):
    """The caller is not authenticated but the operation requires it."""

    status_code = 401


class ExtractionError(ConversionError):
    """The source playlist could not be read at all."""

    status_code = 400

    def __init__(self, message: str = "Failed to extract playlist data", **kwargs: Any) -> None:
        kwargs.setdefault("code", "EXTRACTION_FAILED")
        super().__init__(message, **kwargs)


class CredentialErrorKind(str, Enum):
    NOT_LINKED = "not_linked"
    EXPIRED = "expired"
    REFRESH_FAILED = "refresh_failed"
    SCOPE_MISSING = "scope_missing"


_CREDENTIAL_STATUS = {
    CredentialErrorKind.NOT_LINKED: 404,
    CredentialErrorKind.EXPIRED: 401,
    CredentialErrorKind.REFRESH_FAILED: 401,
    CredentialErrorKind.SCOPE_MISSING: 403,
}


class CredentialError(ConversionError):
    """A stored credential cannot yield a usable access token."""

    def __init__(self, kind: CredentialErrorKind, account: str,
                 scope_name: Optional[str] = None, message: Optional[str] = None) -> None:
        self.kind = kind
        self.account = account.upper()
        self.scope_name = scope_name.upper() if scope_name else None
        super().__init__(
            message or self._default_message(),
            action=self._action(),
            code=kind.name,
            status_code=_CREDENTIAL_STATUS[kind],
        )

    def _action(self) -> str:
        if self.kind == CredentialErrorKind.NOT_LINKED:
            return f"CONNECT_{self.account}"
        if self.kind == CredentialErrorKind.SCOPE_MISSING and self.scope_name:
            return f"RECONNECT_{self.account}_{self.scope_name}"
        return f"RECONNECT_{self.account}"

    def _default_message(self) -> str:
        account = self.account.capitalize()
        if self.kind == CredentialErrorKind.NOT_LINKED:
            return f"No {account} account linked. Please connect your {account} account."
        if self.kind == CredentialErrorKind.EXPIRED:
            return f"{account} token expired. Please reconnect your account."
        if self.kind == CredentialErrorKind.REFRESH_FAILED:
            return "Failed to refresh token. Please reconnect your account."
        scope = (self.scope_name or "required").capitalize()
        return f"{scope} access not granted. Please reconnect with {scope} permissions."


class ProviderQuotaError(ConversionError):
    """Provider reported a rate or usage quota condition."""

    status_code = 429

    def __init__(self, message: str = "Provider API quota exceeded. Please try again later.",
                 **kwargs: Any) -> None:
        kwargs.setdefault("action", "RETRY_LATER")
        super().__init__(message, **kwargs)


class ProviderApiDisabledError(ConversionError):
    """The provider API has not been enabled for the configured project."""

    status_code = 403

    def __init__(self, message: str = "Provider API is not enabled for this project.",
                 **kwargs: Any) -> None:
        kwargs.setdefault("action", "ENABLE_API")
        super().__init__(message, **kwargs)


class ProviderRequestError(ConversionError):
    """Provider call failed with a status that is forwarded to the caller."""

    status_code = 502


class UnexpectedError(ConversionError):
    """Anything uncaught. The message never carries internal detail."""

    status_code = 500

    def __init__(self, message: str = "Internal server error") -> None:
        super().__init__(message)


class TemporaryFailure(Exception):
    """Transient provider or network failure inside an adapter."""
