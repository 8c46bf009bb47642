"""
Stand-in malware scanner for local dev (STORAGE_BACKEND=local).
CLEAN moves the object from quarantine to permanent; THREAT_DETECTED deletes it.
Then it posts the verdict to the scan-result webhook like a real scanner would.
Run from backend/: python scripts/dev_scanner.py <storage_key> CLEAN [--api http://localhost:8000]
Pass --no-callback to simulate a lost webhook (the sweep should repair it).
"""
import argparse
import os
import sys

import httpx

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from scanvault.core.config import get_settings
from scanvault.services.storage import StorageArea
from scanvault.services.storage.local import LocalStorage
from scanvault.services.upload_validation import validate_storage_key

settings = get_settings()


def main() -> int:
    parser = argparse.ArgumentParser()
    parser.add_argument("storage_key")
    parser.add_argument("verdict", choices=["CLEAN", "THREAT_DETECTED"])
    parser.add_argument("--api", default=settings.public_base_url)
    parser.add_argument("--no-callback", action="store_true")
    args = parser.parse_args()

    validate_storage_key(args.storage_key)
    storage = LocalStorage()
    if not storage.exists(StorageArea.QUARANTINE, args.storage_key):
        print(f"Not in quarantine: {args.storage_key}")
        return 1
    if args.verdict == "CLEAN":
        storage.move(StorageArea.QUARANTINE, args.storage_key, StorageArea.PERMANENT)
        print(f"Moved to permanent: {args.storage_key}")
    else:
        storage.delete(StorageArea.QUARANTINE, args.storage_key)
        print(f"Deleted from quarantine: {args.storage_key}")

    if args.no_callback:
        print("Skipping webhook callback.")
        return 0
    if not settings.scan_webhook_secret:
        print("SCAN_WEBHOOK_SECRET is not set; the webhook would reject the callback.")
        return 1
    r = httpx.post(
        f"{args.api.rstrip('/')}/api/webhooks/scan-result",
        json={"storage_key": args.storage_key, "verdict": args.verdict},
        headers={settings.scan_webhook_header: settings.scan_webhook_secret},
        timeout=10.0,
    )
    print(f"Webhook responded {r.status_code}")
    return 0 if r.status_code == 204 else 1


if __name__ == "__main__":
    sys.exit(main())
