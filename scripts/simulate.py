"""
Reservation Rush Simulation

Fires concurrent reservations at a running server to check that no dish is
over-reserved and no guest holds two units of the same dish.
Run from project root: python scripts/simulate.py --guests 30

Version: 1.0.0
"""

import argparse
import asyncio
import random
import sys
import time
from collections import Counter
from datetime import datetime
from typing import Any

import httpx

API_BASE_URL = "http://localhost:3000"

FIRST_NAMES = ["Ana", "Bruno", "Carla", "Diego", "Elisa", "Fábio", "Gabi", "Hugo", "Iara", "João"]
LAST_NAMES = ["Silva", "Souza", "Costa", "Lima", "Alves", "Rocha", "Pereira", "Gomes"]


def generate_guests(count: int) -> list[dict[str, str]]:
    """Unique name + phone pairs."""
    guests = []
    for i in range(count):
        nome = f"{random.choice(FIRST_NAMES)} {random.choice(LAST_NAMES)} {i}"
        guests.append({"nome": nome, "telefone": f"119{i:08d}"})
    return guests


async def register(client: httpx.AsyncClient, guest: dict[str, str]) -> bool:
    response = await client.post(f"{API_BASE_URL}/usuarios", json=guest)
    return response.status_code == 200


async def reserve(
    client: httpx.AsyncClient,
    guest: dict[str, str],
    comida_id: Any,
) -> dict[str, Any]:
    """Reserve one unit and report the outcome."""
    start_time = time.time()
    try:
        response = await client.post(
            f"{API_BASE_URL}/comidas/{comida_id}/reservar",
            json=guest,
            timeout=30.0,
        )
        elapsed = round(time.time() - start_time, 3)
        body = response.json()
        return {
            "guest": guest["telefone"],
            "comida_id": comida_id,
            "status": response.status_code,
            "error": body.get("error"),
            "time": elapsed,
        }
    except httpx.HTTPError as e:
        return {
            "guest": guest["telefone"],
            "comida_id": comida_id,
            "status": None,
            "error": str(e)[:100],
            "time": round(time.time() - start_time, 3),
        }


async def run_simulation(num_guests: int, clicks: int) -> int:
    """
    Register guests, then have every guest click "reserve" on random dishes
    ``clicks`` times, all at once.

    Returns:
        Number of consistency violations found (0 means the run passed)
    """
    print("=" * 70)
    print("RESERVATION RUSH")
    print("=" * 70)
    print(f"Guests: {num_guests}   Clicks per guest: {clicks}")
    print(f"Target: {API_BASE_URL}")
    print(f"Started: {datetime.now().strftime('%H:%M:%S')}")
    print("=" * 70)

    guests = generate_guests(num_guests)

    async with httpx.AsyncClient() as client:
        registered = await asyncio.gather(*(register(client, g) for g in guests))
        if not all(registered):
            print("Registration failed; is the server running?")
            return 1

        listing = await client.post(f"{API_BASE_URL}/comidas-usuario", json=guests[0])
        before = {c["id"]: c for c in listing.json()["comidas"]}
        food_ids = list(before)

        start_time = time.time()
        tasks = [
            reserve(client, guest, random.choice(food_ids))
            for guest in guests
            for _ in range(clicks)
        ]
        results = await asyncio.gather(*tasks)
        total_time = round(time.time() - start_time, 2)

        listing = await client.post(f"{API_BASE_URL}/comidas-usuario", json=guests[0])
        after = {c["id"]: c for c in listing.json()["comidas"]}

    outcomes = Counter(r["error"] or "ok" for r in results)
    print(f"\nRequests: {len(results)} in {total_time}s")
    for outcome, count in outcomes.most_common():
        print(f"   {outcome}: {count}")

    violations = 0
    successes = Counter(r["comida_id"] for r in results if r["status"] == 200)
    per_guest = Counter((r["guest"], r["comida_id"]) for r in results if r["status"] == 200)

    print("\nDish                          before  reserved  after")
    for comida_id, comida in before.items():
        reserved = successes.get(comida_id, 0)
        remaining = after[comida_id]["quantidade"]
        flag = ""
        if remaining < 0 or remaining != comida["quantidade"] - reserved:
            violations += 1
            flag = "  <-- inconsistent"
        print(f"{comida['nome'][:28]:<30}{comida['quantidade']:>6}{reserved:>10}{remaining:>7}{flag}")

    doubles = [key for key, count in per_guest.items() if count > 1]
    if doubles:
        violations += len(doubles)
        print(f"\n{len(doubles)} guests hold two units of the same dish: {doubles[:5]}")

    print("\n" + "=" * 70)
    print("PASSED" if violations == 0 else f"FAILED ({violations} violations)")
    print("=" * 70)
    return violations


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Concurrent reservation simulation")
    parser.add_argument("--guests", type=int, default=30, help="Number of guests")
    parser.add_argument("--clicks", type=int, default=3, help="Reservation attempts per guest")
    parser.add_argument("--url", default=API_BASE_URL, help="Server base URL")
    args = parser.parse_args()

    API_BASE_URL = args.url.rstrip("/")
    sys.exit(1 if asyncio.run(run_simulation(args.guests, args.clicks)) else 0)
