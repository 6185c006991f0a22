"""
Inventory Loading Diagnostic
Runs one connection test and one full inventory load against the configured
data service, then prints timings, strategy and stats.
"""

import os
import sys
import json
import logging
from datetime import datetime
from dotenv import load_dotenv

sys.path.insert(0, os.path.join(os.path.dirname(os.path.abspath(__file__)), "functions"))

from inventory_loader import InventoryLoadError, LoaderSettings, build_coordinator

# Load environment variables from .env file
load_dotenv()

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)


def main():
    print("=" * 60)
    print("Inventory Loading Diagnostic")
    print(f"Timestamp: {datetime.now().isoformat()}")
    print("=" * 60)

    settings = LoaderSettings.from_env()
    settings.require_service()

    with build_coordinator(settings) as coordinator:
        print("\n[1/3] Testing connection...")
        connection = coordinator.test_connection()
        print(f"  success={connection.success} response_time={connection.response_time_ms}ms")
        if connection.error:
            print(f"  error: {connection.error}")

        print("\n[2/3] Loading inventory...")
        try:
            snapshot = coordinator.fetch_inventory(profile=None)
        except InventoryLoadError as e:
            print(f"✗ Inventory loading failed: {e}")
            snapshot = None

        if snapshot is not None:
            print(f"✓ Strategy: {snapshot.meta.strategy_used.value}")
            print(f"  Products source: {snapshot.meta.products_source}")
            print(f"  Timings: {json.dumps(snapshot.meta.timings)}")
            print(f"  Stats: {json.dumps(snapshot.stats.model_dump())}")
            print("\n  Categories:")
            for category in snapshot.categories:
                print(f"    • {category.id}: {category.name}")

        print("\n[3/3] Debug stats...")
        print(json.dumps(coordinator.get_debug_stats().model_dump(mode="json"), indent=2))


if __name__ == "__main__":
    main()
