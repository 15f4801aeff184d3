#!/usr/bin/env python3
"""
Omni Python SDK - Request Signing Example

This example shows how an Omni credential (a service account key or a key
file written by omnictl) is used to sign gRPC calls and to issue a bearer
token.

Usage:
    OMNI_SERVICE_ACCOUNT_KEY=... python request_signing_example.py
    python request_signing_example.py /path/to/credential.key
"""

import json
import os
import sys

# Add src to path for development
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from omni_sdk import (
    AuthenticationError,
    OmniClientOptions,
    RequestSigner,
    TokenSigner,
    create_authenticator,
    decode_token_claims,
)

LIST_CLUSTERS = "/omni.management.ManagementService/ListClusters"


def load_signer(argv) -> RequestSigner:
    """Build a signer from a key file argument or the environment"""
    if len(argv) > 1:
        return RequestSigner.from_file(argv[1])

    options = OmniClientOptions.from_env(
        endpoint=os.environ.get("OMNI_ENDPOINT", "https://omni.example.com"),
        allow_unauthenticated=False,
    )
    return create_authenticator(options)


def request_signing_example(signer: RequestSigner):
    """Sign one call's metadata and show the headers"""
    print("=== Request Signing ===")
    print(f"   {signer.authentication_info()}")

    metadata = {"nodes": ["10.5.0.2"], "x-request-id": ["example-1"]}
    signer.sign(metadata, LIST_CLUSTERS)

    for name, values in metadata.items():
        print(f"   {name}: {values[0]}")


def token_example(signer: RequestSigner):
    """Issue a bearer token for the same identity"""
    print("\n=== Bearer Token ===")
    token = TokenSigner().issue(signer.signing_identity)
    print(f"   Claims: {json.dumps(decode_token_claims(token))}")


def main():
    try:
        signer = load_signer(sys.argv)
    except AuthenticationError as e:
        print(f"Could not load credential [{e.kind.value}]: {e}", file=sys.stderr)
        return 1

    request_signing_example(signer)
    token_example(signer)
    return 0


if __name__ == "__main__":
    sys.exit(main())
