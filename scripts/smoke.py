# scripts/smoke.py
"""
Smoke Test Script for the InterestKit engine.

Replays a small, scripted browsing session against a fresh engine and prints
the resulting rankings, optionally fast-forwarding the clock to show decay.

Usage
-----
1. In-memory session:
    $ uv run python scripts/smoke.py

2. Persist to a directory and fast-forward two weeks:
    $ uv run python scripts/smoke.py --store-dir /tmp/ik --days 14
"""

import argparse
import json
import logging
import sys
from pathlib import Path

from dotenv import load_dotenv

from interestkit import FileStorage, InterestEngine, Interaction, MemoryStorage
from interestkit.engine import now_ms

load_dotenv()

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)

DAY_MS = 24 * 60 * 60 * 1000

SESSION = [
    Interaction(action="view", type="recipe", key="pumpkin-soup", meta={"title": "Pumpkin Soup"}),
    Interaction(
        action="click",
        type="recipe",
        key="pumpkin-soup",
        category="Soups",
        tags=["Fall", "One-Pot"],
        meta={"title": "Pumpkin Soup"},
    ),
    Interaction(action="click", type="video", key="knife-skills", meta={"title": "Knife Skills"}),
    Interaction(action="input", type="search", key="How to make a spicy ramen"),
    Interaction(action="change", type="diet", key="vegetarian"),
]


def main() -> None:
    """Execute the smoke session."""
    parser = argparse.ArgumentParser(description="Run InterestKit Smoke Test")
    parser.add_argument("--store-dir", type=str, help="Persist the snapshot under this directory")
    parser.add_argument("--days", type=float, default=0.0, help="Fast-forward before reading")
    args = parser.parse_args()

    offset = {"ms": 0}

    def clock() -> int:
        return now_ms() + offset["ms"]

    storage = FileStorage(Path(args.store_dir)) if args.store_dir else MemoryStorage()
    engine = InterestEngine(storage=storage, clock=clock, identity=lambda: "Smoke Kitchen")

    for event in SESSION:
        engine.track(event)

    offset["ms"] = int(args.days * DAY_MS)

    print("\n--- top items by weight ---")
    for key, weight in engine.get_top("items", 10):
        print(f"{key:>20}  {weight:g}")

    print(f"\n--- top items by affinity (+{args.days:g} days) ---")
    for item in engine.get_top_items(10):
        print(f"{item.key:>20}  {item.affinity:g}")

    print("\n--- snapshot ---")
    print(json.dumps(engine.export(), indent=2)[:2000])


if __name__ == "__main__":
    main()
