"""Auto-detect installed session stores and provide a unified registry."""

import logging

from ..provider import SessionProvider
from .claude_code import ClaudeCodeProvider
from .opencode import OpenCodeProvider

logger = logging.getLogger(__name__)

PROVIDER_CLASSES = [OpenCodeProvider, ClaudeCodeProvider]


def get_available_providers() -> list[SessionProvider]:
    """Detect which tools have stored sessions and return their providers."""
    providers = []
    for ProviderClass in PROVIDER_CLASSES:
        try:
            provider = ProviderClass()
            if provider.is_available():
                providers.append(provider)
        except OSError as e:
            logger.warning("Skipping %s provider: %s", ProviderClass.name, e)
    return providers
