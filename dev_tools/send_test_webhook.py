#!/usr/bin/env python3
"""Отправка подписанного тестового вебхука на локальный ретранслятор."""

import argparse
import json
import os
import sys
import time
import uuid

import httpx
from dotenv import load_dotenv

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from indexnow_relay.core.routing import known_scopes
from indexnow_relay.webhook.auth import sign_payload


def build_payload(scope: str, entity_id: int, store_hash: str) -> dict:
    payload = {
        "scope": scope,
        "store_id": "1001",
        "hash": uuid.uuid4().hex,
        "created_at": int(time.time()),
        "producer": f"stores/{store_hash}",
        "data": {"type": scope.split("/")[-2], "id": entity_id},
    }
    if "/metafield/" in scope:
        payload["context"] = {"category_id": entity_id}
    if "/page/" in scope:
        payload["resource_id"] = entity_id
    return payload


def main() -> None:
    load_dotenv()

    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--url", default=f"http://localhost:{os.getenv('PORT', '8080')}/")
    parser.add_argument("--scope", default="store/product/updated", choices=known_scopes())
    parser.add_argument("--id", type=int, default=1, dest="entity_id")
    parser.add_argument("--repeat", type=int, default=1, help="Повторить ту же доставку N раз")
    args = parser.parse_args()

    secret = os.getenv("BIGCOMMERCE_WEBHOOK_SECRET")
    store_hash = os.getenv("BIGCOMMERCE_API_STORE_HASH", "test")
    if not secret:
        print("BIGCOMMERCE_WEBHOOK_SECRET is not set")
        sys.exit(1)

    body = json.dumps(build_payload(args.scope, args.entity_id, store_hash)).encode("utf-8")
    webhook_id = f"msg_{uuid.uuid4().hex}"
    timestamp = str(int(time.time()))

    headers = {
        "Content-Type": "application/json",
        "webhook-id": webhook_id,
        "webhook-timestamp": timestamp,
        "webhook-signature": sign_payload(body, webhook_id, timestamp, secret),
    }

    print(f"Sending {args.scope} (id={args.entity_id}) to {args.url}")
    for attempt in range(args.repeat):
        response = httpx.post(args.url, content=body, headers=headers, timeout=130)
        print(f"[{attempt + 1}] {response.status_code} {response.text}")


if __name__ == "__main__":
    main()
