from .client import (
    FlashPayClient,
    FlashPayConfig,
    NotificationResult,
    createFlashPayClient,
    create_flashpay_client,
)
from .constants import Currency, THBankCode, TradeStatus, format_time, is_trade_success
from .errors import (
    FlashPayAPIError,
    FlashPayError,
    InvalidSignatureError,
    KeyFormatError,
    SigningError,
    VerificationError,
)
from .signing import (
    canonical_bytes,
    canonicalize,
    load_private_key,
    load_public_key,
    sign,
    sign_payload,
    verify,
    verify_payload,
)

__all__ = [
    "FlashPayClient",
    "FlashPayConfig",
    "NotificationResult",
    "createFlashPayClient",
    "create_flashpay_client",
    "Currency",
    "THBankCode",
    "TradeStatus",
    "format_time",
    "is_trade_success",
    "FlashPayAPIError",
    "FlashPayError",
    "InvalidSignatureError",
    "KeyFormatError",
    "SigningError",
    "VerificationError",
    "canonical_bytes",
    "canonicalize",
    "load_private_key",
    "load_public_key",
    "sign",
    "sign_payload",
    "verify",
    "verify_payload",
]
