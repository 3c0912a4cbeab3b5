#!/usr/bin/env python3
"""botwire — Loopback / ping example.

This script walks a robot through its whole lifecycle without any hardware:

  1. Build a robot with a loopback connection and a ping device
  2. Start it (connections, then devices, then work)
  3. Let the work routine ping the device a few times
  4. Halt it (devices, then connections)

Prerequisites:
  - ``pip install -e .`` from the repository root

Usage:
  python examples/loopback_ping.py
  python examples/loopback_ping.py --pings 5 --interval 0.2 --log-level debug
"""

from __future__ import annotations

import argparse
import asyncio
import json


def main() -> None:
    parser = argparse.ArgumentParser(description="botwire loopback / ping example")
    parser.add_argument("--pings", type=int, default=3, help="Number of pings to send")
    parser.add_argument(
        "--interval",
        type=float,
        default=0.5,
        help="Seconds between pings (default: 0.5)",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="botwire log level (default: BOTWIRE_LOGGING__LEVEL, else info)",
    )
    args = parser.parse_args()

    asyncio.run(run(args.pings, args.interval, args.log_level))


async def run(pings: int, interval: float, log_level: str | None) -> None:
    from botwire import Robot
    from botwire.logging import configure_logging

    configure_logging(level=log_level)
    finished = asyncio.Event()

    async def work(robot: Robot) -> None:
        for i in range(pings):
            print(f"  ping {i + 1}/{pings} → {robot.led.commands['ping']()}")
            await asyncio.sleep(interval)
        finished.set()

    # -----------------------------------------------------------------------
    # Step 1: Build the robot
    # -----------------------------------------------------------------------
    robot = Robot(
        name="pinger",
        connections={"core": {"adaptor": "loopback"}},
        devices={"led": {"driver": "ping", "connection": "core", "pin": 13}},
        work=work,
    )
    robot.on("ready", lambda r: print(f"{r} is ready"))
    print(json.dumps(robot.to_json(), indent=2))
    print()

    # -----------------------------------------------------------------------
    # Step 2: Start and let the work routine run
    # -----------------------------------------------------------------------
    await robot.start(lambda err, _results: err and print(f"start failed: {err.message}"))
    if not robot.running:
        return
    await finished.wait()

    # -----------------------------------------------------------------------
    # Step 3: Halt
    # -----------------------------------------------------------------------
    error = await robot.halt()
    print()
    print(f"Halted {robot} (error: {error}), {robot.led.pings} pings answered.")


if __name__ == "__main__":
    main()
