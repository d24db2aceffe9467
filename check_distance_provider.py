#!/usr/bin/env python3
"""Manual check that the configured distance provider answers."""

import sys
from pathlib import Path

project_root = Path(__file__).parent
sys.path.insert(0, str(project_root / "src"))

from visit_planner.config import settings
from visit_planner.models.domain import Coordinate
from visit_planner.services.routing.distance import build_distance_source


def main():
    print("=" * 60)
    print("Distance Provider Check")
    print("=" * 60)
    print()

    provider = settings.resolved_distance_provider()
    print(f"1. Configured provider: {provider}")
    if provider == "haversine":
        print("   [WARN] No precise provider configured; set VISIT_PLANNER_GOOGLE_MAPS_API_KEY")
        print("          or VISIT_PLANNER_OSRM_BASE_URL to use driving distances")
    print()

    print("2. Requesting a 2x2 matrix...")
    coords = [
        Coordinate(40.7128, -74.0060),  # Manhattan
        Coordinate(40.6782, -73.9442),  # Brooklyn
    ]
    matrix = build_distance_source().matrix(coords, coords)
    print(f"   [OK] Source: {matrix.source} ({matrix.fallback_cells} cell(s) from fallback)")
    print(f"   [OK] Sample distance: {matrix.distances[0][1]:.2f} miles")
    if matrix.durations is not None:
        print(f"   [OK] Sample duration: {matrix.durations[0][1]:.1f} minutes")
    print()

    if provider != "haversine" and matrix.source == "haversine":
        print("[ERROR] Provider did not answer; results came from the haversine fallback.")
        return 1
    print("[SUCCESS] Distance lookups are working.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
