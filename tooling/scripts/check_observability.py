#!/usr/bin/env python3
"""Quick health check for the Smart Rewards observability endpoints.

Usage:
    python tooling/scripts/check_observability.py \
        --base-url https://staging-api.example.com \
        --api-key "$METRICS_API_KEY"

The script validates:
  * Readiness: the database is reachable and the service is not in error.
  * Badge pipeline: badge checks failing after point awards stay within thresholds.
  * Mukando payouts: failed group payouts stay within thresholds.
  * Redemptions: rejected verifications stay below a ratio of all verifications.
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from typing import Any, Dict, Optional

import httpx

VERIFY_REJECTIONS = ("verify_not_found", "verify_wrong_business", "verify_already_used", "verify_expired")


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Smart Rewards observability checker")
    parser.add_argument(
        "--base-url",
        default="http://localhost:8000",
        help="Base URL of the Smart Rewards API service.",
    )
    parser.add_argument(
        "--api-key",
        default=None,
        help="Metrics API key, required when the service sets METRICS_API_KEY.",
    )
    parser.add_argument(
        "--max-badge-check-failures",
        type=int,
        default=0,
        help="Maximum allowed badge check failures before failing (default: 0).",
    )
    parser.add_argument(
        "--max-payout-errors",
        type=int,
        default=0,
        help="Maximum allowed Mukando payout errors before failing (default: 0).",
    )
    parser.add_argument(
        "--max-verify-rejection-rate",
        type=float,
        default=0.5,
        help="Maximum ratio (0-1) of rejected redemption verifications (default: 0.5).",
    )
    parser.add_argument(
        "--verify-min-sample-size",
        type=int,
        default=10,
        help="Minimum number of verifications before enforcing the rejection ratio (default: 10).",
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
    print(f"[check-observability] FAIL {message}")
    sys.exit(1)


def _log_ok(message: str) -> None:
    print(f"[check-observability] OK {message}")


async def validate_readiness(client: httpx.AsyncClient) -> None:
    response = await client.get("/api/v1/health/readyz")
    payload = response.json()
    if payload.get("status") == "error":
        _fail(f"Service readiness is error: {payload.get('components')}")
    components = payload.get("components", {})
    _log_ok(
        f"Readiness {payload.get('status')} (database={components.get('database', {}).get('status')}, "
        f"mukando_rewards={components.get('mukando_rewards', {}).get('status')})"
    )


def validate_badges(snapshot: Dict[str, Any], max_failures: int) -> None:
    badges = snapshot.get("badges", {}) or {}
    failures = int(badges.get("check_failures", 0))
    if failures > max_failures:
        _fail(f"Badge check failures {failures} exceed threshold {max_failures}")
    _log_ok(f"Badge pipeline OK (awarded={badges.get('awarded', 0)}, check_failures={failures})")


def validate_mukando(snapshot: Dict[str, Any], max_errors: int) -> None:
    mukando = snapshot.get("mukando", {}) or {}
    errors = int(mukando.get("payout_errors", 0))
    if errors > max_errors:
        _fail(f"Mukando payout errors {errors} exceed threshold {max_errors}")
    _log_ok(f"Mukando payouts OK (payouts={mukando.get('payouts', 0)}, payout_errors={errors})")


def validate_redemptions(snapshot: Dict[str, Any], max_rejection_rate: float, min_sample_size: int) -> None:
    redemptions = snapshot.get("redemptions", {}) or {}
    rejected = sum(int(redemptions.get(event, 0)) for event in VERIFY_REJECTIONS)
    verified = int(redemptions.get("verified", 0))
    attempts = rejected + verified

    if attempts < min_sample_size:
        _log_ok(
            f"Redemption sample size below threshold ({attempts}/{min_sample_size}); "
            "skipping rejection ratio check"
        )
        return

    rate = rejected / attempts
    if rate > max_rejection_rate:
        _fail(
            "Redemption rejection rate {:.1%} exceeds threshold {:.1%} (rejected={}, verified={})".format(
                rate, max_rejection_rate, rejected, verified
            )
        )
    _log_ok(f"Redemptions OK (redeemed={redemptions.get('redeemed', 0)}, rejection_rate={rate:.1%})")


async def main() -> None:
    args = parse_args()
    headers = {"X-API-Key": args.api_key} if args.api_key else None

    async with httpx.AsyncClient(base_url=args.base_url, timeout=args.timeout) as client:
        await validate_readiness(client)
        snapshot = await _get_json(client, "/api/v1/observability/rewards", headers=headers)

    validate_badges(snapshot, args.max_badge_check_failures)
    validate_mukando(snapshot, args.max_payout_errors)
    validate_redemptions(snapshot, args.max_verify_rejection_rate, args.verify_min_sample_size)

    _log_ok("Observability checks completed successfully")


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except httpx.HTTPStatusError as exc:
        _fail(f"HTTP {exc.response.status_code} while calling {exc.request.url}")
    except Exception as exc:  # pragma: no cover
        _fail(f"Unexpected error: {exc}")
