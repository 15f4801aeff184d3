"""
Configuration management for Omni Python SDK

This module provides the client options dataclass, its loaders and the
factories that turn options into an authenticator or a channel.
"""

from .client_options import (
    OmniClientOptions,
    DEFAULT_TIMEOUT_SECONDS,
    ENVIRONMENT_VARIABLES,
)
from .authenticator import (
    create_authenticator,
    create_channel,
    channel_target,
)

__all__ = [
    'OmniClientOptions',
    'DEFAULT_TIMEOUT_SECONDS',
    'ENVIRONMENT_VARIABLES',
    'create_authenticator',
    'create_channel',
    'channel_target',
]
