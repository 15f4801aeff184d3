"""
Tests for the omni-auth command-line interface
"""

import json

import pytest
from unittest.mock import patch

from omni_sdk import cli
from omni_sdk.signing import PAYLOAD_HEADER, SIGNATURE_HEADER, TIMESTAMP_HEADER, decode_token_claims

LIST_CLUSTERS = "/omni.management.ManagementService/ListClusters"


class TestInfoCommand:
    def test_info(self, david_key_file, rsa_material, capsys):
        assert cli.main(['info', '--key-file', str(david_key_file)]) == 0
        out = capsys.readouterr().out
        assert "david" in out
        assert rsa_material.fingerprint in out
        assert "RS256" in out

    def test_missing_file(self, tmp_path, capsys):
        assert cli.main(['info', '--key-file', str(tmp_path / "missing.key")]) == 1
        assert "FILE_NOT_FOUND" in capsys.readouterr().err

    def test_keyring_source_requires_username(self, capsys):
        assert cli.main(['info', '--keyring-service', 'omni']) == 1
        assert "--keyring-username" in capsys.readouterr().err

    def test_credential_source_required(self):
        with pytest.raises(SystemExit):
            cli.main(['info'])


class TestSignCommand:
    def test_sign(self, david_key_file, capsys):
        exit_code = cli.main([
            'sign', '--key-file', str(david_key_file),
            '--method', LIST_CLUSTERS,
            '--header', 'nodes=node-1',
            '--header', 'nodes=node-2',
            '--header', 'x-custom=ignored',
            '--timestamp', '1700000000',
        ])
        assert exit_code == 0

        headers = json.loads(capsys.readouterr().out)
        assert headers[TIMESTAMP_HEADER] == "1700000000"
        payload = json.loads(headers[PAYLOAD_HEADER])
        assert payload["method"] == LIST_CLUSTERS
        assert payload["headers"]["nodes"] == ["node-1", "node-2"]
        assert "x-custom" not in payload["headers"]
        assert headers[SIGNATURE_HEADER].startswith("siderov1 david ")

    def test_invalid_header(self, david_key_file, capsys):
        exit_code = cli.main(['sign', '--key-file', str(david_key_file), '--method', '/m', '--header', 'novalue'])
        assert exit_code == 1
        assert "NAME=VALUE" in capsys.readouterr().err

    def test_parse_headers(self):
        assert cli.parse_headers(["a=1", "a=2", "b=x=y"]) == {"a": ["1", "2"], "b": ["x=y"]}


class TestTokenCommand:
    def test_token(self, alice_key_file, capsys):
        assert cli.main(['token', '--key-file', str(alice_key_file)]) == 0
        claims = decode_token_claims(capsys.readouterr().out.strip())
        assert claims["sub"] == "alice"
        assert claims["exp"] - claims["iat"] == 3600

    def test_token_subject(self, alice_key_file, capsys):
        assert cli.main(['token', '--key-file', str(alice_key_file), '--subject', 'ci']) == 0
        assert decode_token_claims(capsys.readouterr().out.strip())["sub"] == "ci"


class TestKeyringCommand:
    def test_store(self, alice_key_file, capsys):
        with patch('omni_sdk.credentials.keyring.set_password') as set_password:
            exit_code = cli.main([
                'keyring', 'store', '--service', 'omni', '--username', 'alice',
                '--key-file', str(alice_key_file),
            ])
        assert exit_code == 0
        set_password.assert_called_once()
        assert set_password.call_args[0][:2] == ('omni', 'alice')
        assert "alice" in capsys.readouterr().out

    def test_show(self, alice_key_file, eddsa_material, capsys):
        blob = alice_key_file.read_text()
        with patch('omni_sdk.credentials.keyring.get_password', return_value=blob):
            exit_code = cli.main(['keyring', 'show', '--service', 'omni', '--username', 'alice'])
        assert exit_code == 0
        out = capsys.readouterr().out
        assert eddsa_material.fingerprint in out
        assert "PRIVATE KEY" not in out

    def test_show_missing_entry(self, capsys):
        with patch('omni_sdk.credentials.keyring.get_password', return_value=None):
            exit_code = cli.main(['keyring', 'show', '--service', 'omni', '--username', 'alice'])
        assert exit_code == 1
        assert "CREDENTIAL_NOT_FOUND" in capsys.readouterr().err

    def test_no_subcommand(self):
        assert cli.main(['keyring']) == 1


class TestMain:
    def test_no_command(self, capsys):
        assert cli.main([]) == 1

    def test_keyboard_interrupt(self, david_key_file):
        with patch('omni_sdk.cli.handle_info_command', side_effect=KeyboardInterrupt):
            assert cli.main(['info', '--key-file', str(david_key_file)]) == 130

    def test_version(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            cli.main(['--version'])
        assert exc_info.value.code == 0
        assert "Omni Python SDK" in capsys.readouterr().out
