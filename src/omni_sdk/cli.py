"""
Command-line interface for Omni Python SDK
Signs requests and issues bearer tokens from Omni credentials
"""

import argparse
import json
import logging
import sys
from datetime import datetime, timezone
from typing import Dict, List, Optional

from . import __version__
from .credentials import (
    KeyCredential,
    load_credential_file,
    load_credential_from_keyring,
    store_credential_in_keyring,
)
from .crypto.signing_key import parse_signing_key
from .exceptions import AuthenticationError
from .signing.request_signer import RequestSigner
from .signing.token_signer import TokenSigner
from .signing.types import PAYLOAD_HEADER, SIGNATURE_HEADER, SigningIdentity, TIMESTAMP_HEADER


def create_parser() -> argparse.ArgumentParser:
    """Create the main argument parser with subcommands."""
    parser = argparse.ArgumentParser(
        prog='omni-auth',
        description='Omni SDK command-line interface for request signing and bearer tokens'
    )

    parser.add_argument(
        '--version',
        action='version',
        version=f'Omni Python SDK {__version__}'
    )

    parser.add_argument(
        '-v', '--verbose',
        action='store_true',
        help='Enable debug logging'
    )

    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    info_parser = subparsers.add_parser('info', help='Show identity and signing key of a credential')
    add_credential_arguments(info_parser)

    setup_sign_parser(subparsers)

    token_parser = subparsers.add_parser('token', help='Issue a signed bearer token')
    add_credential_arguments(token_parser)
    token_parser.add_argument('--subject', help='Token subject (defaults to the credential identity)')

    setup_keyring_parser(subparsers)

    return parser


def add_credential_arguments(parser: argparse.ArgumentParser):
    """Add the credential source options shared by several commands."""
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument('--key-file', help='Path to a base64 credential file')
    source.add_argument('--keyring-service', help='Keychain service holding the credential')
    parser.add_argument('--keyring-username', help='Keychain account holding the credential')


def setup_sign_parser(subparsers):
    """Setup request signing subcommand."""
    sign_parser = subparsers.add_parser('sign', help='Sign a request and print its authentication headers')
    add_credential_arguments(sign_parser)
    sign_parser.add_argument(
        '--method',
        required=True,
        help='Full RPC method, e.g. /omni.management.ManagementService/ListClusters'
    )
    sign_parser.add_argument(
        '--header',
        action='append',
        default=[],
        metavar='NAME=VALUE',
        help='Request header (may be repeated)'
    )
    sign_parser.add_argument('--timestamp', type=int, help='Signing time in seconds since epoch')


def setup_keyring_parser(subparsers):
    """Setup keychain subcommands."""
    keyring_parser = subparsers.add_parser('keyring', help='OS keychain credential storage')
    keyring_subparsers = keyring_parser.add_subparsers(dest='keyring_command', help='Keyring commands')

    store_parser = keyring_subparsers.add_parser('store', help='Store a credential file in the keychain')
    store_parser.add_argument('--service', required=True, help='Keychain service name')
    store_parser.add_argument('--username', required=True, help='Keychain account name')
    store_parser.add_argument('--key-file', required=True, help='Path to a base64 credential file')

    show_parser = keyring_subparsers.add_parser('show', help='Show the credential stored in the keychain')
    show_parser.add_argument('--service', required=True, help='Keychain service name')
    show_parser.add_argument('--username', required=True, help='Keychain account name')


def parse_headers(values: List[str]) -> Dict[str, List[str]]:
    """
    Parse NAME=VALUE arguments into request metadata.

    Raises:
        ValueError: If an argument has no '=' or an empty name
    """
    metadata: Dict[str, List[str]] = {}
    for item in values:
        name, sep, value = item.partition('=')
        if not sep or not name.strip():
            raise ValueError(f"Invalid header '{item}', expected NAME=VALUE")
        metadata.setdefault(name.strip(), []).append(value)
    return metadata


def load_command_credential(args) -> KeyCredential:
    """Load the credential selected by --key-file or --keyring-service."""
    if args.key_file:
        return load_credential_file(args.key_file)

    if not args.keyring_username:
        raise ValueError("--keyring-username is required with --keyring-service")
    return load_credential_from_keyring(args.keyring_service, args.keyring_username)


def handle_info_command(args) -> int:
    """Handle credential inspection."""
    credential = load_command_credential(args)
    key = parse_signing_key(credential.armored_private_key)

    print(f"Identity:    {credential.identity}")
    print(f"Fingerprint: {key.fingerprint}")
    print(f"Algorithm:   {key.algorithm.value} ({key.algorithm.jwt_algorithm})")
    print(f"Key ID:      {key.key_id}")
    print(f"Created:     {datetime.fromtimestamp(key.created_at, timezone.utc).isoformat()}")
    return 0


def handle_sign_command(args) -> int:
    """Handle request signing."""
    metadata = parse_headers(args.header)
    signer = RequestSigner.from_credential(load_command_credential(args))
    signer.sign(metadata, args.method, now=args.timestamp)

    headers = {
        name: metadata[name][0]
        for name in (TIMESTAMP_HEADER, PAYLOAD_HEADER, SIGNATURE_HEADER)
    }
    print(json.dumps(headers, indent=2))
    return 0


def handle_token_command(args) -> int:
    """Handle bearer token issuance."""
    credential = load_command_credential(args)
    identity = SigningIdentity(
        identity=credential.identity,
        key=parse_signing_key(credential.armored_private_key)
    )
    print(TokenSigner().issue(identity, subject=args.subject))
    return 0


def handle_keyring_command(args) -> int:
    """Handle keychain commands."""
    if args.keyring_command == 'store':
        with open(args.key_file, 'r', encoding='utf-8') as f:
            blob = f.read()
        credential = store_credential_in_keyring(args.service, args.username, blob)
        print(f"✓ Stored credential for {credential.identity} in keychain service '{args.service}'")
        return 0
    elif args.keyring_command == 'show':
        credential = load_credential_from_keyring(args.service, args.username)
        key = parse_signing_key(credential.armored_private_key)
        print(f"Identity:    {credential.identity}")
        print(f"Fingerprint: {key.fingerprint}")
        return 0
    else:
        print("Error: No keyring subcommand specified", file=sys.stderr)
        return 1


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main CLI entry point.

    Args:
        argv: Command line arguments (defaults to sys.argv)

    Returns:
        int: Exit code (0 for success, non-zero for failure)
    """
    if argv is None:
        argv = sys.argv[1:]

    parser = create_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format='%(asctime)s %(name)s %(levelname)s %(message)s'
    )

    try:
        if args.command == 'info':
            return handle_info_command(args)
        elif args.command == 'sign':
            return handle_sign_command(args)
        elif args.command == 'token':
            return handle_token_command(args)
        elif args.command == 'keyring':
            return handle_keyring_command(args)
        else:
            # No command specified, show help
            parser.print_help()
            return 1

    except KeyboardInterrupt:
        print("\nOperation cancelled by user", file=sys.stderr)
        return 130
    except AuthenticationError as e:
        print(f"Authentication error [{e.kind.value}]: {e}", file=sys.stderr)
        return 1
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == '__main__':
    sys.exit(main())
