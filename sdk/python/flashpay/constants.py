from __future__ import annotations

from datetime import datetime
from typing import Any

APIVersion = "1.0"
Charset = "UTF-8"
SignType = "RSA2"
TimeFormat = "%Y-%m-%d %H:%M:%S"


class THBankCode:
    BBL = "002"
    KTB = "006"
    TMB = "011"
    UOBT = "024"
    BAY = "025"
    GSB = "030"
    SCB = "014"
    KBANK = "004"


class TradeStatus:
    PENDING = 0
    PROCESSING = 2
    SUCCESS = 3
    FAILED = 4
    CLOSED = 5


class Currency:
    THB = "THB"
    MYR = "MYR"
    PHP = "PHP"


class PayeeAccountType:
    BANK_ACCOUNT = 1


class Timeliness:
    REAL_TIME = 0


def format_time(dt: datetime) -> str:
    return dt.strftime(TimeFormat)


def is_trade_success(status: Any) -> bool:
    if isinstance(status, bool) or not isinstance(status, (int, float)):
        return False
    return status == TradeStatus.SUCCESS
