"""Orchestrator: ingest → transform → export."""

from __future__ import annotations

import sys
import time

from pipeline.ingest_classifications import ingest as ingest_classifications
from pipeline.transform import RAW_DIR, transform


def main() -> None:
    force = "--force" in sys.argv
    t0 = time.time()

    print("=" * 60)
    print("Company Finder Pipeline")
    print("=" * 60)

    print("\n── Step 1: Ingest TOL classifications ──")
    records = ingest_classifications(force=force)
    print(f"  {len(records):,} classifications ready\n")

    print("── Step 2: Check company exports ──")
    company_files = sorted(RAW_DIR.glob("companies*.csv"))
    print(f"  {len(company_files)} company files in {RAW_DIR}\n")

    print("── Step 3: Transform ──")
    transform()

    elapsed = time.time() - t0
    print(f"\nPipeline complete in {elapsed:.1f}s")


if __name__ == "__main__":
    main()
