"""
Exception classes for Omni Python SDK
"""

from enum import Enum
from typing import Optional, Dict, Any, List


class OmniSDKError(Exception):
    """Base exception for all Omni SDK errors"""

    def __init__(self, message: str, error_code: str = "UNKNOWN_ERROR", details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.error_code = error_code
        self.details = details or {}


class AuthErrorKind(str, Enum):
    """Kinds of authentication failures, carried as data on AuthenticationError"""
    INVALID_ENCODING = "INVALID_ENCODING"
    MALFORMED_CREDENTIAL = "MALFORMED_CREDENTIAL"
    MISSING_FIELD = "MISSING_FIELD"
    INVALID_KEY_FORMAT = "INVALID_KEY_FORMAT"
    NO_SIGNING_KEY = "NO_SIGNING_KEY"
    KEY_EXTRACTION_FAILED = "KEY_EXTRACTION_FAILED"
    UNSUPPORTED_KEY_ALGORITHM = "UNSUPPORTED_KEY_ALGORITHM"
    FILE_NOT_FOUND = "FILE_NOT_FOUND"
    CREDENTIAL_NOT_FOUND = "CREDENTIAL_NOT_FOUND"
    KEYRING_UNAVAILABLE = "KEYRING_UNAVAILABLE"


class AuthenticationError(OmniSDKError):
    """
    Raised for every credential, key ring and signing failure.

    Callers branch on ``kind`` rather than on exception subclasses.

    Attributes:
        kind: The failure kind
        details: Extra data about the failure (e.g. ``field``, ``algorithm``, ``path``)
    """

    def __init__(self, kind: AuthErrorKind, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, kind.value, details)
        self.kind = kind

    @property
    def field(self) -> Optional[str]:
        """Name of the missing credential field for MISSING_FIELD errors"""
        return self.details.get("field")

    def __repr__(self) -> str:
        return f"AuthenticationError(kind={self.kind.value}, message='{self}', details={self.details})"


class ConfigurationError(OmniSDKError):
    """Exception raised when client options fail validation"""

    def __init__(self, validation_errors: List[str]):
        super().__init__(
            f"Configuration validation failed: {'; '.join(validation_errors)}",
            "INVALID_CONFIGURATION",
            {"validation_errors": list(validation_errors)}
        )
        self.validation_errors = list(validation_errors)
