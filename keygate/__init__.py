"""keygate: single-use keys gated behind Monetizzy short links."""

from .app_factory import create_app
from .config import Settings, load_settings
from .engine import KeyLifecycleEngine
from .errors import (
    AuthError,
    GatewayAuthError,
    GatewayError,
    GatewayTimeoutError,
    KeyGateError,
    NotFoundError,
    StorageError,
    ValidationError,
)
from .models import KeyRecord, KeyStats, RedemptionResult
from .monetizzy import MonetizzyGateway
from .store import KeyStore
from .sweeper import ExpirySweeper

__version__ = "1.0.0"
__all__ = [
    "AuthError",
    "ExpirySweeper",
    "GatewayAuthError",
    "GatewayError",
    "GatewayTimeoutError",
    "KeyGateError",
    "KeyLifecycleEngine",
    "KeyRecord",
    "KeyStats",
    "KeyStore",
    "MonetizzyGateway",
    "NotFoundError",
    "RedemptionResult",
    "Settings",
    "StorageError",
    "ValidationError",
    "create_app",
    "load_settings",
]
