#!/usr/bin/env python3
"""BeatHard strike simulator.

Generates sensor strike traffic for both fighters and optionally drives the
battle through its rounds, for testing the server and display surfaces.

Usage:
    # Two fighters striking for one minute
    python -m tools.simulator.simulate --server http://localhost:8080 --duration 60

    # Full 3-round battle, advancing every 20 seconds
    python -m tools.simulator.simulate --server http://localhost:8080 --rounds 3 --round-seconds 20

    # Stress test: batches of 20 strikes at max rate
    python -m tools.simulator.simulate --server http://localhost:8080 --strikes-per-minute 600 --batch 20
"""

from __future__ import annotations

import argparse
import asyncio
import random
import time
from dataclasses import dataclass

import httpx

LIMBS = ("left_hand", "right_hand", "left_foot", "right_foot")


@dataclass
class SimFighter:
    fighter_id: str
    name: str
    power: float  # scales force and acceleration
    strikes_sent: int = 0
    errors: int = 0


def make_strike(fighter: SimFighter, timestamp_ms: int) -> dict:
    """Create a single strike payload as a sensor would report it."""
    kind = random.choices(["jab", "cross", "kick"], weights=[50, 35, 15])[0]
    base_force = {"jab": random.uniform(80, 200), "cross": random.uniform(180, 400),
                  "kick": random.uniform(300, 700)}[kind]
    force = base_force * fighter.power
    velocity = random.uniform(4.0, 12.0) if kind != "kick" else random.uniform(6.0, 15.0)

    strike = {
        "fighter_id": fighter.fighter_id,
        "competitor_name": fighter.name,
        "force": round(force, 1),
        "velocity": round(velocity, 2),
        "acceleration": round(force / random.uniform(6.0, 10.0), 2),
        "timestamp": timestamp_ms,
        "event_type": kind,
        "limb_name": random.choice(LIMBS),
    }
    # Some sensors occasionally miss a reading.
    if random.random() < 0.05:
        del strike[random.choice(["velocity", "acceleration"])]
    return strike


async def run_fighter(
    client: httpx.AsyncClient,
    fighter: SimFighter,
    server_url: str,
    strikes_per_minute: float,
    batch: int,
    end_time: float,
) -> None:
    """Simulate one fighter's sensors sending strikes."""
    interval = 60.0 / strikes_per_minute * batch

    while time.monotonic() < end_time:
        now_ms = int(time.time() * 1000)
        events = [make_strike(fighter, now_ms) for _ in range(batch)]
        payload = events[0] if batch == 1 else {"events": events}

        try:
            resp = await client.post(f"{server_url}/api/v1/hits", json=payload)
            if resp.status_code == 200:
                fighter.strikes_sent += len(events)
            else:
                fighter.errors += 1
        except httpx.RequestError:
            fighter.errors += 1

        await asyncio.sleep(interval * random.uniform(0.5, 1.5))


async def run_referee(client: httpx.AsyncClient, server_url: str, rounds: int, round_seconds: float) -> None:
    """Drive the battle: setup, start, then advance every round_seconds."""
    await client.post(f"{server_url}/api/v1/battle/setup", json={
        "competitor1": {"name": "SIM ROJO"},
        "competitor2": {"name": "SIM AZUL"},
        "battleConfig": {"mode": "rounds", "rounds": rounds},
    })
    await client.post(f"{server_url}/api/v1/views/cover")
    await client.post(f"{server_url}/api/v1/battle/start")
    await client.post(f"{server_url}/api/v1/views/stats", json={})

    for _ in range(rounds):
        await asyncio.sleep(round_seconds)
        resp = await client.post(f"{server_url}/api/v1/battle/next-round")
        outcome = resp.json().get("outcome")
        print(f"  next-round -> {resp.status_code} {outcome}")
        if outcome == "finished":
            break

    await client.post(f"{server_url}/api/v1/views/resumen")


async def run_simulation(args: argparse.Namespace) -> None:
    """Run the full simulation."""
    fighters = [
        SimFighter(fighter_id="fighter_1", name="SIM ROJO", power=random.uniform(0.8, 1.2)),
        SimFighter(fighter_id="fighter_2", name="SIM AZUL", power=random.uniform(0.8, 1.2)),
    ]
    duration = args.duration
    if args.rounds:
        duration = max(duration, args.rounds * args.round_seconds + 1)

    print(f"Starting simulation: {args.strikes_per_minute} strikes/min per fighter, batch {args.batch}")
    print(f"  Duration: {duration}s")
    print(f"  Server: {args.server}")
    if args.rounds:
        print(f"  Rounds: {args.rounds} x {args.round_seconds}s")
    print()

    start = time.monotonic()
    end_time = start + duration

    async with httpx.AsyncClient(timeout=10.0) as client:
        tasks = [
            run_fighter(client, fighter, args.server, args.strikes_per_minute, args.batch, end_time)
            for fighter in fighters
        ]
        if args.rounds:
            tasks.append(run_referee(client, args.server, args.rounds, args.round_seconds))
        await asyncio.gather(*tasks)

        elapsed = time.monotonic() - start
        total_strikes = sum(f.strikes_sent for f in fighters)
        total_errors = sum(f.errors for f in fighters)

        print(f"\nSimulation complete in {elapsed:.1f}s")
        print(f"  Total strikes sent: {total_strikes}")
        print(f"  Total errors: {total_errors}")
        print(f"  Throughput: {total_strikes / elapsed:.1f} strikes/sec")

        # Check server stats
        try:
            resp = await client.get(f"{args.server}/api/v1/stats")
        except httpx.RequestError as exc:
            print(f"\nCould not fetch server stats: {exc}")
            return
        if resp.status_code == 200:
            stats = resp.json()
            print("\nServer stats:")
            print(f"  Hits received: {stats['hits_received']}")
            print(f"  Hits rejected: {stats['hits_rejected']}")
            print(f"  Messages broadcast: {stats['messages_broadcast']}")
            print(f"  Frames dropped: {stats['frames_dropped']}")
            print(f"  Displays connected: {stats['displays']['connected']}")


def main():
    parser = argparse.ArgumentParser(description="BeatHard strike simulator")
    parser.add_argument("--server", default="http://localhost:8080", help="Server URL")
    parser.add_argument("--duration", type=int, default=60, help="Simulation duration in seconds")
    parser.add_argument("--strikes-per-minute", type=float, default=40, help="Strikes per minute per fighter")
    parser.add_argument("--batch", type=int, default=1, help="Strikes per request (default: 1)")
    parser.add_argument("--rounds", type=int, default=0,
                        help="Also drive a rounds-mode battle with this many rounds")
    parser.add_argument("--round-seconds", type=float, default=20.0, help="Seconds per simulated round")

    args = parser.parse_args()
    asyncio.run(run_simulation(args))


if __name__ == "__main__":
    main()
