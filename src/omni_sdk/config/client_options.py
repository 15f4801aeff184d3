"""
Client options for Omni Python SDK

Options are built directly or loaded from JSON. They can also be read
from the environment variables used by Omni tooling (OMNI_ENDPOINT,
OMNI_SERVICE_ACCOUNT_KEY, ...).
"""

import json
import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Union
from urllib.parse import urlparse

from ..exceptions import ConfigurationError

DEFAULT_TIMEOUT_SECONDS = 30

# Environment variable -> option name
ENVIRONMENT_VARIABLES = {
    "OMNI_ENDPOINT": "endpoint",
    "OMNI_SERVICE_ACCOUNT_KEY": "service_account_key",
    "OMNI_IDENTITY": "identity",
    "OMNI_PGP_KEY": "pgp_private_key",
    "OMNI_PGP_KEY_FILE": "pgp_key_file_path",
    "OMNI_AUTH_TOKEN": "auth_token",
    "OMNI_TIMEOUT_SECONDS": "timeout_seconds",
}

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


@dataclass
class OmniClientOptions:
    """
    Connection and authentication options for an Omni client

    Attributes:
        endpoint: Omni API endpoint URL
        identity: Identity for pgp_private_key
        pgp_private_key: Armored PGP private key
        pgp_key_file_path: Path to a base64 credential file
        service_account_key: Base64 credential blob (as in OMNI_SERVICE_ACCOUNT_KEY)
        keyring_service: OS keychain service holding a credential blob
        keyring_username: OS keychain account holding a credential blob
        auth_token: Pre-issued bearer token
        timeout_seconds: Per-call timeout
        use_tls: Whether to use TLS for the channel
        allow_unauthenticated: Whether calls may proceed without credentials
    """
    endpoint: str = ""
    identity: Optional[str] = None
    pgp_private_key: Optional[str] = None
    pgp_key_file_path: Optional[str] = None
    service_account_key: Optional[str] = None
    keyring_service: Optional[str] = None
    keyring_username: Optional[str] = None
    auth_token: Optional[str] = None
    timeout_seconds: int = DEFAULT_TIMEOUT_SECONDS
    use_tls: bool = True
    allow_unauthenticated: bool = True

    def credential_sources(self) -> List[str]:
        """Names of the credential sources that are configured."""
        sources = []
        if self.pgp_private_key:
            sources.append("pgp_private_key")
        if self.service_account_key:
            sources.append("service_account_key")
        if self.pgp_key_file_path:
            sources.append("pgp_key_file_path")
        if self.keyring_service or self.keyring_username:
            sources.append("keyring")
        if self.auth_token:
            sources.append("auth_token")
        return sources

    def validate(self) -> List[str]:
        """
        Validate the options.

        Returns:
            list: Validation error messages (empty when valid)
        """
        errors = []

        parsed = urlparse(self.endpoint or "")
        if not parsed.scheme or not parsed.netloc:
            errors.append("endpoint must be an absolute URL")

        if not isinstance(self.timeout_seconds, int) or self.timeout_seconds <= 0:
            errors.append("timeout_seconds must be positive")

        if self.pgp_private_key and not self.identity:
            errors.append("identity must be provided together with pgp_private_key")

        if bool(self.keyring_service) != bool(self.keyring_username):
            errors.append("keyring_service and keyring_username must be provided together")

        sources = self.credential_sources()
        if len(sources) > 1:
            errors.append(f"Only one credential source should be provided, got: {', '.join(sources)}")
        elif not sources and not self.allow_unauthenticated:
            errors.append(
                "One of pgp_private_key, service_account_key, pgp_key_file_path, "
                "keyring or auth_token must be provided for authentication"
            )

        return errors

    def ensure_valid(self) -> 'OmniClientOptions':
        """
        Raise if the options are invalid.

        Raises:
            ConfigurationError: With every validation error
        """
        errors = self.validate()
        if errors:
            raise ConfigurationError(errors)
        return self

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'OmniClientOptions':
        """
        Build options from a mapping of option names.

        Raises:
            ConfigurationError: On unknown option names
        """
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigurationError([f"Unknown option: {name}" for name in unknown])
        return cls(**dict(data))

    @classmethod
    def from_json(cls, json_string: str) -> 'OmniClientOptions':
        """Build options from a JSON object."""
        try:
            data = json.loads(json_string)
        except json.JSONDecodeError as e:
            raise ConfigurationError([f"Failed to parse configuration JSON: {e}"])

        if not isinstance(data, dict):
            raise ConfigurationError(["Configuration JSON must be an object"])
        return cls.from_dict(data)

    @classmethod
    def from_file(cls, file_path: Union[str, Path]) -> 'OmniClientOptions':
        """Build options from a JSON file."""
        try:
            with open(Path(file_path), 'r', encoding='utf-8') as f:
                json_string = f.read()
        except OSError as e:
            raise ConfigurationError([f"Failed to read configuration file: {e}"])
        return cls.from_json(json_string)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None, **overrides) -> 'OmniClientOptions':
        """
        Build options from environment variables.

        Args:
            environ: Environment mapping (defaults to os.environ)
            **overrides: Option values that take precedence over the environment
        """
        environ = os.environ if environ is None else environ
        data: Dict[str, Any] = {}
        for variable, option in ENVIRONMENT_VARIABLES.items():
            value = environ.get(variable)
            if value:
                data[option] = value

        if "timeout_seconds" in data:
            try:
                data["timeout_seconds"] = int(data["timeout_seconds"])
            except ValueError:
                raise ConfigurationError(["OMNI_TIMEOUT_SECONDS must be an integer"])

        insecure = environ.get("OMNI_INSECURE", "").strip().lower()
        if insecure in _TRUE_VALUES:
            data["use_tls"] = False
        elif insecure and insecure not in _FALSE_VALUES:
            raise ConfigurationError(["OMNI_INSECURE must be a boolean"])

        data.update(overrides)
        return cls.from_dict(data)
