from __future__ import annotations

from typing import Any, Optional


class FlashPayError(Exception):
    pass


class KeyFormatError(FlashPayError):
    pass


class SigningError(FlashPayError):
    pass


class VerificationError(FlashPayError):
    """Raised for structurally invalid verification input.

    A well-formed signature that simply does not match is not an error;
    ``verify`` returns False for that case.
    """


class InvalidSignatureError(FlashPayError):
    pass


class FlashPayAPIError(FlashPayError):
    def __init__(self, code: Optional[int], message: str, status_code: Optional[int] = None, details: Optional[Any] = None):
        super().__init__(f"FlashPay API error: {message} (code: {code})")
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details
