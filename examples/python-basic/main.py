import os
import uuid

from flashpay import FlashPayConfig, create_flashpay_client

client = create_flashpay_client(FlashPayConfig.from_env())

out_trade_no = os.getenv("OUT_TRADE_NO", f"order-{uuid.uuid4().hex[:16]}")
qr = client.create_qr_payment(
    out_user_id=os.getenv("OUT_USER_ID", "platform-user-1"),
    out_trade_no=out_trade_no,
    payment_amount=int(os.getenv("PAYMENT_AMOUNT", "100")),
    currency_code="THB",
    subject="Example order",
)
print("trade_no:", qr.get("tradeNo"))
print("qr raw data:", qr.get("qrRawData"))

status = client.query_payment_result(out_trade_no=out_trade_no)
print("trade status:", status.get("tradeStatus"))
