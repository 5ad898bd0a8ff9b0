from typing import Optional


class ClientBuildError(Exception):
    """Base error for everything the client build flow can fail with."""

    code = "CLIENT_BUILD_ERROR"

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code
        # Name of the orchestration step that raised, filled in by the orchestrator
        self.step: Optional[str] = None


class BusinessDenial(ClientBuildError):
    """The build service refused a new build request. Terminal, never retried."""

    code = "CLIENT_BUILD_REQUEST_NOT_ALLOWED"

    def __init__(self, reason: str):
        super().__init__(
            f"New client build request disallowed. Reason: {reason}",
        )
        self.reason = reason


class TransportFault(ClientBuildError):
    """An external call failed at the network level or returned an error status."""

    code = "TRANSPORT_FAULT"

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class AuthError(ClientBuildError):
    code = "APPLE_AUTH_FAILED"


class ConfigError(ClientBuildError):
    code = "INVALID_CONFIG"


class MissingCredentialError(ClientBuildError):
    code = "MISSING_CREDENTIAL"


class ValidationFault(ClientBuildError):
    """Malformed operator input. Recovered by asking again."""

    code = "INVALID_INPUT"
