"""Service layer exports."""

from .content_sync import ContentSyncService
from .pkce import PKCEPair, generate_pkce_pair, generate_state
from .token_cipher import TokenCipherService
from .x_link import XLinkInitiator
from .x_tokens import XTokenService

__all__ = [
    "ContentSyncService",
    "PKCEPair",
    "TokenCipherService",
    "XLinkInitiator",
    "XTokenService",
    "generate_pkce_pair",
    "generate_state",
]
