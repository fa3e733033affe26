from __future__ import annotations

import json
import sys
from pathlib import Path

from flashpay import FlashPayConfig, InvalidSignatureError, create_flashpay_client


def main() -> None:
    notification = json.loads(Path(sys.argv[1]).read_text())
    client = create_flashpay_client(FlashPayConfig.from_env())
    try:
        result = client.handle_notification(notification)
    except InvalidSignatureError as exc:
        print(json.dumps({"accepted": False, "reason": str(exc)}, indent=2, sort_keys=True))
        sys.exit(1)
    print(json.dumps({"accepted": True, "result": result.__dict__}, indent=2, sort_keys=True))


if __name__ == "__main__":
    main()
