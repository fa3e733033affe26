"""Canonical request signing and notification verification for the FlashPay API.

Outbound payloads and inbound notifications share one canonical form::

    appKey=A1&charset=UTF-8&data={"cur":"THB","outTradeNo":"o1"}&time=...&version=1.0

Top-level keys are sorted, ``data`` is replaced by its compact sorted JSON
with empty values dropped, and the result is signed with RSA-SHA256
(PKCS#1 v1.5) as UTF-8 bytes.
"""
from __future__ import annotations

import base64
import binascii
import json
import logging
import math
import re
from decimal import Decimal
from typing import Any, Dict, Mapping

from cryptography.exceptions import InvalidSignature, UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa

from .errors import KeyFormatError, SigningError, VerificationError

logger = logging.getLogger(__name__)

PrivateKey = rsa.RSAPrivateKey
PublicKey = rsa.RSAPublicKey

PRIVATE_KEY_LABEL = "PRIVATE KEY"
PUBLIC_KEY_LABEL = "PUBLIC KEY"

_PEM_BEGIN = "-----BEGIN"
_PEM_BOUNDARY_RE = re.compile(r"-----(BEGIN|END)[^-]*-----")
_WHITESPACE_RE = re.compile(r"\s+", re.ASCII)

SIGNATURE_FIELDS = ("sign", "signType")


def ensure_pem(key: str, label: str) -> str:
    if _PEM_BEGIN in key:
        return key
    return f"-----BEGIN {label}-----\n{key}\n-----END {label}-----"


def pem_to_der(pem: str) -> bytes:
    body = _WHITESPACE_RE.sub("", _PEM_BOUNDARY_RE.sub("", pem))
    if not body:
        raise KeyFormatError("key material is empty")
    try:
        return base64.b64decode(body, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise KeyFormatError("key material is not valid base64") from exc


def load_private_key(pem_or_raw: str) -> PrivateKey:
    """Load a PKCS#8 RSA signing key from raw base64 or a PEM block."""
    if not isinstance(pem_or_raw, str):
        raise KeyFormatError("private key must be a string")
    der = pem_to_der(ensure_pem(pem_or_raw, PRIVATE_KEY_LABEL))
    try:
        key = serialization.load_der_private_key(der, password=None)
    except (ValueError, TypeError, UnsupportedAlgorithm) as exc:
        raise KeyFormatError("malformed private key") from exc
    if not isinstance(key, rsa.RSAPrivateKey):
        raise KeyFormatError(f"private key must be RSA, got {type(key).__name__}")
    logger.info("loaded RSA private key (%d bits)", key.key_size)
    return key


def load_public_key(pem_or_raw: str) -> PublicKey:
    """Load an SPKI RSA verification key from raw base64 or a PEM block."""
    if not isinstance(pem_or_raw, str):
        raise KeyFormatError("public key must be a string")
    der = pem_to_der(ensure_pem(pem_or_raw, PUBLIC_KEY_LABEL))
    try:
        key = serialization.load_der_public_key(der)
    except (ValueError, TypeError, UnsupportedAlgorithm) as exc:
        raise KeyFormatError("malformed public key") from exc
    if not isinstance(key, rsa.RSAPublicKey):
        raise KeyFormatError(f"public key must be RSA, got {type(key).__name__}")
    logger.info("loaded RSA public key (%d bits)", key.key_size)
    return key


def format_number(value: float) -> str:
    """Render a finite float in plain decimal using its shortest round-trip digits.

    Matches JavaScript number rendering for 1e-6 <= |value| < 1e21; outside
    that range the digits stay the same but no exponent is used.
    """
    if value == 0:
        return "0"
    sign, digits, exponent = Decimal(repr(value)).normalize().as_tuple()
    s = "".join(str(d) for d in digits)
    point = exponent + len(s)
    if point >= len(s):
        body = s + "0" * (point - len(s))
    elif point > 0:
        body = s[:point] + "." + s[point:]
    else:
        body = "0." + "0" * -point + s
    return ("-" if sign else "") + body


def _json_value(value: Any) -> str:
    if value is None or isinstance(value, (str, bool)):
        return json.dumps(value, ensure_ascii=False)
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        # JSON has no NaN or Infinity
        return format_number(value) if math.isfinite(value) else "null"
    if isinstance(value, Mapping):
        # nested objects are sorted too, so output never depends on insertion order
        members = (f"{json.dumps(str(k), ensure_ascii=False)}:{_json_value(value[k])}" for k in sorted(value, key=str))
        return "{" + ",".join(members) + "}"
    if isinstance(value, (list, tuple)):
        return "[" + ",".join(_json_value(v) for v in value) + "]"
    raise TypeError(f"{type(value).__name__} is not JSON serializable")


def stable_json(obj: Any) -> str:
    return _json_value(obj)


def clean_data(data: Mapping[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in data.items() if v is not None and v != ""}


def _render_value(value: Any) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return "null"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        if math.isnan(value):
            return "NaN"
        if math.isinf(value):
            return "Infinity" if value > 0 else "-Infinity"
        return format_number(value)
    return stable_json(value)


def canonicalize(payload: Mapping[str, Any]) -> str:
    cloned: Dict[str, Any] = dict(payload)
    data = cloned.get("data")
    if isinstance(data, Mapping):
        cloned["data"] = stable_json(clean_data(data))
    return "&".join(f"{key}={_render_value(cloned[key])}" for key in sorted(cloned))


def canonical_bytes(payload: Mapping[str, Any]) -> bytes:
    return canonicalize(payload).encode("utf-8")


def sign(canonical: str, private_key: PrivateKey) -> str:
    if not isinstance(private_key, rsa.RSAPrivateKey):
        raise SigningError("signing requires an RSA private key")
    if not isinstance(canonical, str):
        raise SigningError("canonical string must be str")
    try:
        message = canonical.encode("utf-8")
    except UnicodeEncodeError as exc:
        raise SigningError("canonical string is not encodable as UTF-8") from exc
    try:
        signature = private_key.sign(message, padding.PKCS1v15(), hashes.SHA256())
    except (ValueError, TypeError, UnsupportedAlgorithm) as exc:
        raise SigningError("RSA-SHA256 signing failed") from exc
    logger.debug("signed %d-byte canonical string", len(message))
    return base64.b64encode(signature).decode("ascii")


def verify(canonical: str, signature_b64: str, public_key: PublicKey) -> bool:
    if not isinstance(public_key, rsa.RSAPublicKey):
        raise VerificationError("verification requires an RSA public key")
    if not isinstance(canonical, str):
        raise VerificationError("canonical string must be str")
    if not isinstance(signature_b64, str) or not signature_b64:
        raise VerificationError("signature must be a non-empty base64 string")
    # line-wrapped base64 is accepted; any other non-alphabet character is not
    compact = _WHITESPACE_RE.sub("", signature_b64)
    if not compact:
        raise VerificationError("signature must be a non-empty base64 string")
    try:
        signature = base64.b64decode(compact, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise VerificationError("signature is not valid base64") from exc
    try:
        message = canonical.encode("utf-8")
    except UnicodeEncodeError as exc:
        raise VerificationError("canonical string is not encodable as UTF-8") from exc
    try:
        public_key.verify(signature, message, padding.PKCS1v15(), hashes.SHA256())
    except InvalidSignature:
        logger.debug("signature mismatch over %d-byte canonical string", len(message))
        return False
    return True


def sign_payload(payload: Mapping[str, Any], private_key: PrivateKey) -> str:
    return sign(canonicalize(payload), private_key)


def verify_payload(payload: Mapping[str, Any], signature_b64: str, public_key: PublicKey) -> bool:
    return verify(canonicalize(payload), signature_b64, public_key)


def strip_signature(payload: Mapping[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in payload.items() if k not in SIGNATURE_FIELDS}

