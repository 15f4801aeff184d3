"""
Test suite for client options and authenticator construction
"""

import json
import logging
import threading
from concurrent.futures import ThreadPoolExecutor

import grpc
import pytest
from unittest.mock import patch

from omni_sdk.config import (
    OmniClientOptions,
    channel_target,
    create_authenticator,
    create_channel,
)
from omni_sdk.credentials import KeyCredential, encode_credential
from omni_sdk.exceptions import AuthenticationError, AuthErrorKind, ConfigurationError
from omni_sdk.signing import BearerTokenClientInterceptor, RequestSigner

ENDPOINT = "https://omni.example.com"


class TestOptionsValidation:
    """Test OmniClientOptions.validate"""

    def test_defaults(self):
        options = OmniClientOptions(endpoint=ENDPOINT)
        assert options.validate() == []
        assert options.timeout_seconds == 30
        assert options.use_tls is True
        assert options.allow_unauthenticated is True

    @pytest.mark.parametrize("endpoint", ["", "omni.example.com", "/relative/path"])
    def test_endpoint_must_be_absolute(self, endpoint):
        errors = OmniClientOptions(endpoint=endpoint).validate()
        assert "endpoint must be an absolute URL" in errors

    @pytest.mark.parametrize("timeout", [0, -5])
    def test_timeout_must_be_positive(self, timeout):
        errors = OmniClientOptions(endpoint=ENDPOINT, timeout_seconds=timeout).validate()
        assert "timeout_seconds must be positive" in errors

    def test_pgp_key_requires_identity(self):
        errors = OmniClientOptions(endpoint=ENDPOINT, pgp_private_key="key").validate()
        assert "identity must be provided together with pgp_private_key" in errors

    def test_keyring_requires_both_names(self):
        errors = OmniClientOptions(endpoint=ENDPOINT, keyring_service="omni").validate()
        assert "keyring_service and keyring_username must be provided together" in errors

    def test_single_credential_source(self):
        options = OmniClientOptions(
            endpoint=ENDPOINT,
            pgp_key_file_path="/tmp/key",
            auth_token="token",
        )
        assert options.credential_sources() == ["pgp_key_file_path", "auth_token"]
        errors = options.validate()
        assert len(errors) == 1
        assert "pgp_key_file_path, auth_token" in errors[0]

    def test_credentials_required_when_unauthenticated_disallowed(self):
        options = OmniClientOptions(endpoint=ENDPOINT, allow_unauthenticated=False)
        assert len(options.validate()) == 1

    def test_ensure_valid(self):
        options = OmniClientOptions(endpoint="nope", timeout_seconds=0)
        with pytest.raises(ConfigurationError) as exc_info:
            options.ensure_valid()
        assert len(exc_info.value.validation_errors) == 2
        assert exc_info.value.error_code == "INVALID_CONFIGURATION"
        assert str(exc_info.value).startswith("Configuration validation failed: ")

    def test_ensure_valid_returns_options(self):
        options = OmniClientOptions(endpoint=ENDPOINT)
        assert options.ensure_valid() is options


class TestOptionsLoaders:
    """Test building options from JSON, files and the environment"""

    def test_from_json(self):
        options = OmniClientOptions.from_json(json.dumps({
            "endpoint": ENDPOINT,
            "pgp_key_file_path": "/etc/omni/sa.key",
            "timeout_seconds": 10,
        }))
        assert options.endpoint == ENDPOINT
        assert options.pgp_key_file_path == "/etc/omni/sa.key"
        assert options.timeout_seconds == 10

    def test_from_json_unknown_option(self):
        with pytest.raises(ConfigurationError) as exc_info:
            OmniClientOptions.from_json('{"endpoint": "https://x", "passphrase": "p"}')
        assert exc_info.value.validation_errors == ["Unknown option: passphrase"]

    @pytest.mark.parametrize("document", ["{not json", "[1, 2]"])
    def test_from_json_invalid(self, document):
        with pytest.raises(ConfigurationError):
            OmniClientOptions.from_json(document)

    def test_from_file(self, tmp_path):
        path = tmp_path / "omni.json"
        path.write_text(json.dumps({"endpoint": ENDPOINT, "use_tls": False}))
        options = OmniClientOptions.from_file(path)
        assert options.use_tls is False

    def test_from_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError):
            OmniClientOptions.from_file(tmp_path / "missing.json")

    def test_from_env(self):
        options = OmniClientOptions.from_env({
            "OMNI_ENDPOINT": ENDPOINT,
            "OMNI_SERVICE_ACCOUNT_KEY": "c2EK",
            "OMNI_TIMEOUT_SECONDS": "45",
            "UNRELATED": "x",
        })
        assert options.endpoint == ENDPOINT
        assert options.service_account_key == "c2EK"
        assert options.timeout_seconds == 45
        assert options.identity is None

    def test_from_env_insecure(self):
        options = OmniClientOptions.from_env({"OMNI_ENDPOINT": "http://localhost:8080", "OMNI_INSECURE": "true"})
        assert options.use_tls is False

    def test_from_env_invalid_values(self):
        with pytest.raises(ConfigurationError):
            OmniClientOptions.from_env({"OMNI_TIMEOUT_SECONDS": "soon"})
        with pytest.raises(ConfigurationError):
            OmniClientOptions.from_env({"OMNI_INSECURE": "maybe"})

    def test_from_env_overrides(self):
        options = OmniClientOptions.from_env({"OMNI_ENDPOINT": ENDPOINT}, timeout_seconds=5)
        assert options.timeout_seconds == 5

    def test_from_os_environ(self):
        with patch.dict('os.environ', {"OMNI_ENDPOINT": ENDPOINT, "OMNI_IDENTITY": "david"}, clear=True):
            options = OmniClientOptions.from_env()
        assert options.identity == "david"


class TestCreateAuthenticator:
    """Test credential source selection"""

    def test_direct_key(self, eddsa_armored, eddsa_material):
        options = OmniClientOptions(endpoint=ENDPOINT, identity="alice", pgp_private_key=eddsa_armored)
        signer = create_authenticator(options)
        assert isinstance(signer, RequestSigner)
        assert signer.identity == "alice"
        assert signer.fingerprint == eddsa_material.fingerprint

    def test_direct_key_without_identity(self, eddsa_armored):
        options = OmniClientOptions(endpoint=ENDPOINT, pgp_private_key=eddsa_armored)
        with pytest.raises(ConfigurationError):
            create_authenticator(options)

    def test_service_account_key(self, ecdsa_armored):
        blob = encode_credential(KeyCredential(identity="automation", armored_private_key=ecdsa_armored))
        signer = create_authenticator(OmniClientOptions(endpoint=ENDPOINT, service_account_key=blob))
        assert signer.identity == "automation"

    def test_key_file(self, david_key_file):
        signer = create_authenticator(OmniClientOptions(endpoint=ENDPOINT, pgp_key_file_path=str(david_key_file)))
        assert signer.identity == "david"

    def test_direct_key_takes_precedence(self, eddsa_armored, david_key_file):
        options = OmniClientOptions(
            endpoint=ENDPOINT,
            identity="alice",
            pgp_private_key=eddsa_armored,
            pgp_key_file_path=str(david_key_file),
        )
        assert create_authenticator(options).identity == "alice"

    def test_keyring(self, eddsa_armored):
        blob = encode_credential(KeyCredential(identity="alice", armored_private_key=eddsa_armored))
        options = OmniClientOptions(endpoint=ENDPOINT, keyring_service="omni", keyring_username="alice")
        with patch('omni_sdk.credentials.keyring.get_password', return_value=blob):
            signer = create_authenticator(options)
        assert signer.identity == "alice"

    def test_missing_key_file_propagates(self, tmp_path):
        options = OmniClientOptions(endpoint=ENDPOINT, pgp_key_file_path=str(tmp_path / "missing.key"))
        with pytest.raises(AuthenticationError) as exc_info:
            create_authenticator(options)
        assert exc_info.value.kind == AuthErrorKind.FILE_NOT_FOUND

    def test_invalid_service_account_key_propagates(self):
        options = OmniClientOptions(endpoint=ENDPOINT, service_account_key="***")
        with pytest.raises(AuthenticationError) as exc_info:
            create_authenticator(options)
        assert exc_info.value.kind == AuthErrorKind.INVALID_ENCODING

    def test_unauthenticated_warns(self, caplog):
        with caplog.at_level(logging.WARNING, logger='omni_sdk.config.authenticator'):
            assert create_authenticator(OmniClientOptions(endpoint=ENDPOINT)) is None
        assert "unauthenticated" in caplog.text

    def test_unauthenticated_disallowed(self):
        options = OmniClientOptions(endpoint=ENDPOINT, allow_unauthenticated=False)
        with pytest.raises(ConfigurationError):
            create_authenticator(options)

    def test_auth_token_only(self, caplog):
        with caplog.at_level(logging.WARNING):
            assert create_authenticator(OmniClientOptions(endpoint=ENDPOINT, auth_token="token")) is None
        assert "unauthenticated" not in caplog.text


class TestCreateChannel:
    """Test channel construction from options"""

    @pytest.mark.parametrize("endpoint,use_tls,target", [
        ("https://omni.example.com", True, "omni.example.com:443"),
        ("http://localhost:8080", False, "localhost:8080"),
        ("grpc://omni.internal", False, "omni.internal:80"),
        ("https://[::1]:8443", True, "[::1]:8443"),
    ])
    def test_channel_target(self, endpoint, use_tls, target):
        assert channel_target(endpoint, use_tls) == target

    def test_channel_target_invalid(self):
        with pytest.raises(ConfigurationError):
            channel_target("omni.example.com")

    def test_signed_channel(self, david_key_file):
        options = OmniClientOptions(endpoint=ENDPOINT, pgp_key_file_path=str(david_key_file))
        with patch('omni_sdk.config.authenticator.create_signed_channel') as create_signed:
            channel = create_channel(options)

        assert channel is create_signed.return_value
        args, kwargs = create_signed.call_args
        assert args == ("omni.example.com:443",)
        assert kwargs["signer"].identity == "david"
        assert kwargs["use_tls"] is True
        assert kwargs["interceptors"] == []
        assert kwargs["default_timeout"] == 30

    def test_token_channel(self):
        options = OmniClientOptions(endpoint="http://localhost:8080", auth_token="token", use_tls=False)
        with patch('omni_sdk.config.authenticator.create_signed_channel') as create_signed:
            create_channel(options)

        kwargs = create_signed.call_args[1]
        assert kwargs["signer"] is None
        assert kwargs["use_tls"] is False
        assert isinstance(kwargs["interceptors"][0], BearerTokenClientInterceptor)

    def test_explicit_default_timeout_wins(self):
        options = OmniClientOptions(endpoint=ENDPOINT, timeout_seconds=5)
        with patch('omni_sdk.config.authenticator.create_signed_channel') as create_signed:
            create_channel(options)
            create_channel(options, default_timeout=60)

        assert create_signed.call_args_list[0][1]["default_timeout"] == 5
        assert create_signed.call_args_list[1][1]["default_timeout"] == 60

    def test_timeout_applies_to_calls(self):
        release = threading.Event()

        def slow_call(request, context):
            release.wait(5)
            return b"ok"

        server = grpc.server(ThreadPoolExecutor(max_workers=2))
        server.add_generic_rpc_handlers((
            grpc.method_handlers_generic_handler('test.Slow', {'Call': grpc.unary_unary_rpc_method_handler(slow_call)}),
        ))
        port = server.add_insecure_port('127.0.0.1:0')
        server.start()

        options = OmniClientOptions(endpoint=f"http://127.0.0.1:{port}", use_tls=False, timeout_seconds=1)
        channel = create_channel(options)
        try:
            with pytest.raises(grpc.RpcError) as exc_info:
                channel.unary_unary('/test.Slow/Call')(b"request")
            assert exc_info.value.code() == grpc.StatusCode.DEADLINE_EXCEEDED
        finally:
            release.set()
            channel.close()
            server.stop(0)

    def test_invalid_options(self):
        with pytest.raises(ConfigurationError):
            create_channel(OmniClientOptions(endpoint="nope"))
