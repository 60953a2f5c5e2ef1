"""Public schema exports."""

from .auth import (
    AuthorizationRequest,
    ConnectionStatus,
    LinkResult,
    OAuthCallbackPayload,
)
from .content import SyncResult
from .x_api import (
    TokenResponse,
    XPost,
    XPostsMeta,
    XPostsResponse,
    XPublicMetrics,
    XUser,
    XUserResponse,
)

__all__ = [
    "AuthorizationRequest",
    "ConnectionStatus",
    "LinkResult",
    "OAuthCallbackPayload",
    "SyncResult",
    "TokenResponse",
    "XPost",
    "XPostsMeta",
    "XPostsResponse",
    "XPublicMetrics",
    "XUser",
    "XUserResponse",
]
