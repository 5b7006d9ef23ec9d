#!/usr/bin/env python3
"""Quick health check for the bank rewards API observability endpoints.

Usage:
    python tooling/scripts/check_observability.py \
        --base-url https://staging-api.example.com \
        --api-key "$ADMIN_API_KEY"

The script validates:
  * The service health endpoint answers.
  * Loyalty rejections (insufficient points, missing rules, stock outs) stay
    below a share of all earn/redeem attempts.
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from typing import Any, Dict, Optional

import httpx


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Bank rewards observability checker")
    parser.add_argument(
        "--base-url",
        default="http://localhost:8000",
        help="Base URL of the bank rewards API service.",
    )
    parser.add_argument(
        "--api-key",
        default=None,
        help="Admin API key (required when the service enforces one).",
    )
    parser.add_argument(
        "--max-rejection-rate",
        type=float,
        default=0.25,
        help="Maximum allowed ratio (0-1) of rejected earn/redeem requests (default: 0.25).",
    )
    parser.add_argument(
        "--min-sample-size",
        type=int,
        default=20,
        help="Minimum number of attempts required before enforcing the rejection SLO (default: 20).",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=10.0,
        help="HTTP request timeout in seconds.",
    )
    return parser.parse_args()


async def _get_json(
    client: httpx.AsyncClient,
    path: str,
    *,
    headers: Optional[Dict[str, str]] = None,
) -> Dict[str, Any]:
    response = await client.get(path, headers=headers)
    response.raise_for_status()
    return response.json()


def _fail(message: str) -> None:
    print(f"[check-observability] ❌ {message}")
    sys.exit(1)


def _log_ok(message: str) -> None:
    print(f"[check-observability] ✅ {message}")


async def validate_health(client: httpx.AsyncClient) -> None:
    payload = await _get_json(client, "/healthz")
    if payload.get("status") != "ok":
        _fail(f"Health endpoint reported {payload.get('status')!r}")
    _log_ok(f"Service healthy (environment={payload.get('environment')}, version={payload.get('version')})")


async def validate_loyalty(
    client: httpx.AsyncClient,
    api_key: Optional[str],
    max_rejection_rate: float,
    min_sample_size: int,
) -> None:
    headers = {"X-API-Key": api_key} if api_key else None
    payload = await _get_json(client, "/api/v1/observability/loyalty", headers=headers)

    earned = int(payload.get("earn", {}).get("transactions", 0))
    redeemed = int(payload.get("redeem", {}).get("transactions", 0))
    rejections = payload.get("rejections", {}) or {}
    rejected = sum(int(value) for value in rejections.values())
    attempts = earned + redeemed + rejected

    if attempts < min_sample_size:
        _log_ok(
            f"Loyalty sample size below threshold ({attempts}/{min_sample_size}); "
            "skipping rejection SLO check"
        )
        return

    rate = rejected / attempts
    if rate > max_rejection_rate:
        worst = max(rejections.items(), key=lambda item: item[1])[0] if rejections else "n/a"
        _fail(
            f"Loyalty rejection rate {rate:.1%} exceeds threshold {max_rejection_rate:.1%} "
            f"(rejected={rejected}, attempts={attempts}, top_reason={worst})"
        )

    _log_ok(
        "Loyalty observability OK "
        f"(earned={earned}, redeemed={redeemed}, rejected={rejected}, rejection_rate={rate:.1%})"
    )


async def main() -> None:
    args = parse_args()

    async with httpx.AsyncClient(base_url=args.base_url, timeout=args.timeout) as client:
        await validate_health(client)
        await validate_loyalty(
            client,
            api_key=args.api_key,
            max_rejection_rate=args.max_rejection_rate,
            min_sample_size=args.min_sample_size,
        )


if __name__ == "__main__":
    asyncio.run(main())
