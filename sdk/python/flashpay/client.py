from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Mapping, Optional

import httpx

from .constants import APIVersion, Charset, PayeeAccountType, SignType, Timeliness, format_time, is_trade_success
from .errors import FlashPayAPIError, FlashPayError, InvalidSignatureError
from .signing import canonicalize, load_private_key, load_public_key, sign, strip_signature, verify

logger = logging.getLogger(__name__)

SDKVersion = "0.1.0"


@dataclass(frozen=True)
class FlashPayConfig:
    api_endpoint: str
    app_key: str
    merchant_private_key: str
    flashpay_public_key: str
    notify_url: str
    return_url: Optional[str] = None
    timeout_seconds: float = 10.0
    headers: Mapping[str, str] = field(default_factory=dict)

    @classmethod
    def from_env(cls, prefix: str = "FLASHPAY_") -> "FlashPayConfig":
        def required(name: str) -> str:
            value = os.getenv(prefix + name, "")
            if not value:
                raise ValueError(f"missing required environment variable {prefix}{name}")
            return value

        return cls(
            api_endpoint=required("API_ENDPOINT"),
            app_key=required("APP_KEY"),
            merchant_private_key=required("MERCHANT_PRIVATE_KEY"),
            flashpay_public_key=required("PUBLIC_KEY"),
            notify_url=required("NOTIFY_URL"),
            return_url=os.getenv(prefix + "RETURN_URL") or None,
            timeout_seconds=float(os.getenv(prefix + "TIMEOUT_SECONDS", "10")),
        )


@dataclass
class NotificationResult:
    out_trade_no: str
    trade_no: str
    payment_amount: int
    currency_code: str
    success: bool


class FlashPayClient:
    def __init__(
        self,
        config: FlashPayConfig,
        http: Optional[httpx.Client] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.config = config
        self.base_url = config.api_endpoint.rstrip("/")
        self.http = http or httpx.Client(timeout=config.timeout_seconds)
        self.clock = clock or datetime.now
        # read-only after load
        self._private_key = load_private_key(config.merchant_private_key)
        self._public_key = load_public_key(config.flashpay_public_key)

    def close(self) -> None:
        self.http.close()

    def __enter__(self) -> "FlashPayClient":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def build_payload(self, data: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "appKey": self.config.app_key,
            "charset": Charset,
            "time": format_time(self.clock()),
            "version": APIVersion,
        }
        if data is not None:
            payload["data"] = data
        return payload

    def sign_request(self, payload: Mapping[str, Any]) -> Dict[str, Any]:
        unsigned = strip_signature(payload)
        signed = dict(unsigned)
        signed["sign"] = sign(canonicalize(unsigned), self._private_key)
        signed["signType"] = SignType
        return signed

    def verify_notification(self, notification: Mapping[str, Any]) -> bool:
        signature = notification.get("sign")
        if not signature:
            return False
        return verify(canonicalize(strip_signature(notification)), signature, self._public_key)

    def create_qr_payment(
        self,
        out_user_id: str,
        out_trade_no: str,
        payment_amount: int,
        currency_code: str,
        subject: str,
        body: Optional[str] = None,
        expire_time: Optional[str] = None,
    ) -> Dict[str, Any]:
        now = self.clock()
        data: Dict[str, Any] = {
            "outUserId": out_user_id,
            "outTradeNo": out_trade_no,
            "outTradeTime": format_time(now),
            "paymentAmount": payment_amount,
            "cur": currency_code,
            "subject": subject,
            "notifyUrl": self.config.notify_url,
            "expireTime": expire_time or format_time(now + timedelta(days=1)),
        }
        if body:
            data["body"] = body
        result = self._request("/upay/create-qrcode-payment", data)
        if not result.get("qrImage"):
            raise FlashPayError("Failed to create QR code: no qrImage in response")
        return result

    def createQRPayment(
        self,
        out_user_id: str,
        out_trade_no: str,
        payment_amount: int,
        currency_code: str,
        subject: str,
        body: Optional[str] = None,
        expire_time: Optional[str] = None,
    ) -> Dict[str, Any]:
        return self.create_qr_payment(out_user_id, out_trade_no, payment_amount, currency_code, subject, body, expire_time)

    def create_app_payment(
        self,
        out_trade_no: str,
        payment_amount: int,
        currency_code: str,
        subject: str,
        bank_code: str,
    ) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "outTradeNo": out_trade_no,
            "outTradeTime": format_time(self.clock()),
            "paymentAmount": payment_amount,
            "cur": currency_code,
            "subject": subject,
            "notifyUrl": self.config.notify_url,
            "returnUrl": self.config.return_url,
            "bankCode": bank_code,
        }
        result = self._request("/upay/create-app-payment", data)
        if not result.get("deeplinkUrl"):
            raise FlashPayError("Failed to create deep link: no deeplinkUrl in response")
        return result

    def createAppPayment(self, out_trade_no: str, payment_amount: int, currency_code: str, subject: str, bank_code: str) -> Dict[str, Any]:
        return self.create_app_payment(out_trade_no, payment_amount, currency_code, subject, bank_code)

    def payout_to_bank_account(
        self,
        out_trade_no: str,
        amount: int,
        currency_code: str,
        subject: str,
        payee_account_no: str,
        payee_bank_code: str,
        payee_account_name: Optional[str] = None,
        payee_account_mobile: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "outTradeNo": out_trade_no,
            "outTradeTime": format_time(self.clock()),
            "amount": amount,
            "cur": currency_code,
            "subject": subject,
            "notifyUrl": self.config.notify_url,
            "payeeAccountNo": payee_account_no,
            "payeeBankCode": payee_bank_code,
            "payeeAccountType": PayeeAccountType.BANK_ACCOUNT,
            "timeliness": Timeliness.REAL_TIME,
        }
        if payee_account_name:
            data["payeeAccountName"] = payee_account_name
        if payee_account_mobile:
            data["payeeAccountMobile"] = payee_account_mobile
        if notes:
            data["notes"] = notes
        return self._request("/fund/trans/transfer", data)

    def payoutToBankAccount(
        self,
        out_trade_no: str,
        amount: int,
        currency_code: str,
        subject: str,
        payee_account_no: str,
        payee_bank_code: str,
        payee_account_name: Optional[str] = None,
        payee_account_mobile: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> Dict[str, Any]:
        return self.payout_to_bank_account(
            out_trade_no=out_trade_no,
            amount=amount,
            currency_code=currency_code,
            subject=subject,
            payee_account_no=payee_account_no,
            payee_bank_code=payee_bank_code,
            payee_account_name=payee_account_name,
            payee_account_mobile=payee_account_mobile,
            notes=notes,
        )

    def query_payment_result(self, trade_no: Optional[str] = None, out_trade_no: Optional[str] = None) -> Dict[str, Any]:
        if not trade_no and not out_trade_no:
            raise ValueError("Either trade_no or out_trade_no is required")
        data: Dict[str, Any] = {}
        if trade_no:
            data["tradeNo"] = trade_no
        if out_trade_no:
            data["outTradeNo"] = out_trade_no
        result = self._request("/upay/get-payment-result", data)
        return {
            "outTradeNo": result.get("outTradeNo"),
            "tradeNo": result.get("tradeNo"),
            "tradeStatus": result.get("tradeStatus"),
            "tradeTime": result.get("tradeTime"),
            "paymentAmount": result.get("paymentAmount"),
            "currencyCode": result.get("cur"),
            "completeTime": result.get("completeTime"),
        }

    def queryPaymentResult(self, trade_no: Optional[str] = None, out_trade_no: Optional[str] = None) -> Dict[str, Any]:
        return self.query_payment_result(trade_no=trade_no, out_trade_no=out_trade_no)

    def handle_notification(self, notification: Mapping[str, Any]) -> NotificationResult:
        """Verify a gateway notification and interpret its payment outcome.

        Raises InvalidSignatureError when ``sign`` is missing or does not match,
        and VerificationError when the signature is not well-formed base64.
        Nothing in ``data`` is read before verification succeeds.
        """
        if not notification.get("sign"):
            logger.warning("rejected notification without signature")
            raise InvalidSignatureError("Invalid notification signature")
        if not self.verify_notification(notification):
            logger.warning("rejected notification with non-matching signature")
            raise InvalidSignatureError("Invalid notification signature")

        data = notification.get("data")
        if not isinstance(data, Mapping):
            raise FlashPayError("notification data must be an object")
        result = NotificationResult(
            out_trade_no=data.get("outTradeNo"),
            trade_no=data.get("tradeNo"),
            payment_amount=data.get("paymentAmount"),
            currency_code=data.get("cur"),
            success=is_trade_success(data.get("tradeStatus")),
        )
        logger.info("accepted notification for %s (success=%s)", result.out_trade_no, result.success)
        return result

    def handleNotification(self, notification: Mapping[str, Any]) -> NotificationResult:
        return self.handle_notification(notification)

    def _request(self, path: str, data: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        body = self.sign_request(self.build_payload(data))
        headers: Dict[str, str] = {
            "Accept": "application/json",
            "Content-Type": "application/json",
            "User-Agent": f"flashpay-python-sdk/{SDKVersion}",
            **self.config.headers,
        }
        logger.debug("POST %s", path)
        resp = self.http.post(self.base_url + path, content=json.dumps(body, ensure_ascii=False).encode("utf-8"), headers=headers)
        if not 200 <= resp.status_code < 300:
            raise self._to_error(resp)
        try:
            parsed = resp.json()
        except ValueError as exc:
            raise FlashPayAPIError(None, "response is not valid JSON", status_code=resp.status_code) from exc
        if not isinstance(parsed, dict):
            raise FlashPayAPIError(None, "response is not a JSON object", status_code=resp.status_code)
        code = parsed.get("code")
        if code != 0:
            logger.warning("FlashPay %s returned code %s", path, code)
            raise FlashPayAPIError(code, str(parsed.get("message") or "unknown error"), status_code=resp.status_code, details=parsed.get("data"))
        result = parsed.get("data")
        return result if isinstance(result, dict) else {}

    def _to_error(self, resp: httpx.Response) -> FlashPayAPIError:
        try:
            parsed = resp.json()
        except ValueError:
            return FlashPayAPIError(None, resp.text or f"HTTP {resp.status_code}", status_code=resp.status_code)
        if not isinstance(parsed, dict):
            return FlashPayAPIError(None, f"HTTP {resp.status_code}", status_code=resp.status_code)
        return FlashPayAPIError(
            parsed.get("code"),
            str(parsed.get("message") or f"HTTP {resp.status_code}"),
            status_code=resp.status_code,
            details=parsed.get("data"),
        )


def create_flashpay_client(config: FlashPayConfig) -> FlashPayClient:
    return FlashPayClient(config)


def createFlashPayClient(config: FlashPayConfig) -> FlashPayClient:
    return create_flashpay_client(config)
