#!/usr/bin/env python3
"""
Create an order against a running server and poll until it resolves.

Usage:
    python backend/poll_payment.py 0.5 --user-id 42 --item donate
"""
import argparse
import sys
import time

import requests

TRANSIENT = {"pending", "api_error", "db_error"}


def create_order(base_url: str, amount: str, user_id: str, item: str) -> dict:
    response = requests.post(
        f"{base_url}/api/orders",
        json={"amount": amount, "user_id": user_id, "item": item},
        timeout=30,
    )
    if response.status_code != 201:
        print(f"❌ Error: HTTP {response.status_code}")
        print(response.text)
        sys.exit(1)
    return response.json()


def poll_payment(base_url: str, order_id: int, user_id: str, interval: float, attempts: int) -> dict:
    result = {"status": "pending"}
    for attempt in range(1, attempts + 1):
        try:
            response = requests.post(
                f"{base_url}/api/orders/{order_id}/check",
                params={"user_id": user_id},
                timeout=60,
            )
            result = response.json()
        except requests.exceptions.RequestException as e:
            print(f"   ⚠️  Request failed: {e}")
            result = {"status": "api_error"}

        print(f"   [{attempt}/{attempts}] status: {result.get('status')}")
        if result.get("status") not in TRANSIENT:
            return result
        time.sleep(interval)
    return result


def main():
    parser = argparse.ArgumentParser(description="Create a TON order and wait for payment")
    parser.add_argument("amount", help="Amount in TON, e.g. 0.5")
    parser.add_argument("--user-id", default="1")
    parser.add_argument("--item", default="donate")
    parser.add_argument("--base-url", default="http://localhost:8000")
    parser.add_argument("--interval", type=float, default=10.0, help="Seconds between checks")
    parser.add_argument("--attempts", type=int, default=60)
    args = parser.parse_args()

    order = create_order(args.base_url, args.amount, args.user_id, args.item)
    print(f"📨 Order {order['id']} created")
    print(f"   Pay {order['amount_ton']} TON to {order['recipient_address']} ({order['network']})")
    print(f"   Memo: {order['memo']}")
    print(f"🔗 {order['payment_uri']}")
    print("=" * 70)

    result = poll_payment(args.base_url, order["id"], args.user_id, args.interval, args.attempts)
    print("=" * 70)
    if result.get("status") == "paid":
        details = result.get("tx_details", {})
        print(f"✅ Paid by {details.get('sender')} in {details.get('tx_hash')}")
    else:
        print(f"⏹  Final status: {result.get('status')}")


if __name__ == "__main__":
    main()
