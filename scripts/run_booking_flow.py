#!/usr/bin/env python3
"""
Drive one booking end to end against a running backend (no dashboard).

Usage:
  python3 scripts/run_booking_flow.py CUSTOMER_ID --service "Gold Package" \
      --date 2025-03-10 --time 10:00 --recipient-name "Jane" --recipient-phone 254712345678

Reads API_BASE_URL / API_TOKEN and the polling settings from the environment or .env.
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from datetime import date
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from bookflow.application.exceptions import BookflowError, PollingTimeoutError  # noqa: E402
from bookflow.core.config import settings  # noqa: E402
from bookflow.core.logging import configure_logging  # noqa: E402
from bookflow.wiring.dependencies import build_container  # noqa: E402


def _parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__, formatter_class=argparse.RawDescriptionHelpFormatter)
    parser.add_argument("customer_id")
    parser.add_argument("--service")
    parser.add_argument("--package-id")
    parser.add_argument("--date", required=True, help="YYYY-MM-DD")
    parser.add_argument("--time", required=True, help="HH:MM")
    parser.add_argument("--recipient-name", required=True)
    parser.add_argument("--recipient-phone", required=True)
    return parser.parse_args(argv)


async def _run(args: argparse.Namespace) -> int:
    container = build_container()
    patch = {
        "service": args.service,
        "package_id": args.package_id,
        "date": args.date,
        "time": args.time,
        "recipient_name": args.recipient_name,
        "recipient_phone": args.recipient_phone,
    }
    try:
        slots = await container.resolver.resolve(date.fromisoformat(args.date), args.service)
        print(f"{sum(s.available for s in slots)}/{len(slots)} slots open on {args.date}")

        outcome = await container.flow.run(args.customer_id, patch)
        booking = outcome.booking
        print(f"Payment {outcome.state.value} after {outcome.attempts} checks")
        if booking is not None:
            print(f"Booking {booking.id}: {booking.status.value}")
        if outcome.message:
            print(outcome.message)
        return 0
    except PollingTimeoutError as e:
        print(f"ℹ️  {e}")
        return 0
    except BookflowError as e:
        print(f"❌ {type(e).__name__}: {e}")
        return 1
    finally:
        await container.aclose()


def main() -> None:
    configure_logging(settings.LOG_LEVEL)
    sys.exit(asyncio.run(_run(_parse_args(sys.argv[1:]))))


if __name__ == "__main__":
    main()
