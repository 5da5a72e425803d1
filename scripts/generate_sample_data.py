#!/usr/bin/env python3
"""
Generate realistic sample measurements for one incubator.
Writes N days of per-minute readings and posts the latest reading as the
device state through the API, so the live view and alert log pick it up.
"""
import argparse
import math
import random
from datetime import datetime, timedelta, timezone

import httpx

from hatchwatch.database import SessionLocal
from hatchwatch.models import Measurement

BATCH_SIZE = 1000

PROFILE = {
    "temp": {"base": 37.7, "amplitude": 0.3, "noise": 0.08},
    "hum": {"base": 55.0, "amplitude": 6.0, "noise": 1.0},
}


def generate_value(t_hours: float, key: str) -> float:
    """Value at t hours from start: slow heater oscillation plus daily drift."""
    p = PROFILE[key]
    heater = math.sin(t_hours * 2 * math.pi / 0.75) * p["amplitude"] * 0.6
    daily = math.sin(t_hours * 2 * math.pi / 24) * p["amplitude"] * 0.4
    return p["base"] + heater + daily + random.gauss(0, p["noise"])


def write_measurements(device_id: str, days: int, now: datetime) -> int:
    session = SessionLocal()
    total = 0
    try:
        start = now - timedelta(days=days)
        minutes = days * 24 * 60
        batch = []
        for i in range(minutes):
            t_hours = i / 60
            batch.append(Measurement(
                device_id=device_id,
                ts=start + timedelta(minutes=i),
                # Occasional dropped reading
                temp=None if random.random() < 0.01 else round(generate_value(t_hours, "temp"), 2),
                hum=None if random.random() < 0.01 else round(generate_value(t_hours, "hum"), 1),
            ))
            if len(batch) >= BATCH_SIZE:
                session.add_all(batch)
                session.commit()
                total += len(batch)
                batch = []
        if batch:
            session.add_all(batch)
            session.commit()
            total += len(batch)
    finally:
        session.close()
    return total


def post_state(api_url: str, device_id: str, user: str, now: datetime) -> None:
    payload = {
        "temp": round(generate_value(0, "temp"), 2),
        "hum": round(generate_value(0, "hum"), 1),
        "target_temp": 37.8,
        "tol_temp": 0.5,
        "target_hum": 55.0,
        "tol_hum": 5.0,
        "updated_at": now.isoformat(),
    }
    try:
        res = httpx.post(
            f"{api_url}/devices/{device_id}/state",
            json=payload,
            headers={"X-User-Id": user},
            timeout=10.0,
        )
        print(f"  State update: {res.status_code}")
    except httpx.HTTPError as e:
        print(f"  Connection error: {e}")


def main():
    parser = argparse.ArgumentParser(description="Generate sample incubator data")
    parser.add_argument("--device-id", required=True)
    parser.add_argument("--user", required=True, help="User id the device is linked to")
    parser.add_argument("--days", type=int, default=7)
    parser.add_argument("--api-url", default="http://localhost:8000")
    args = parser.parse_args()

    print("=" * 60)
    print(f"Sample Data Generator for {args.device_id}")
    print("=" * 60)

    now = datetime.now(timezone.utc).replace(second=0, microsecond=0)
    count = write_measurements(args.device_id, args.days, now)
    print(f"  Wrote {count:,} measurements ({args.days} days × 1440 points)")
    post_state(args.api_url, args.device_id, args.user, now)


if __name__ == "__main__":
    main()
