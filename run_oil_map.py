#!/usr/bin/env python3
# ~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~
#
# Author: Simran S. Sangha
# Copyright (c) 2026, by the California Institute of Technology. ALL RIGHTS
# RESERVED. United States Government Sponsorship acknowledged.
#
# ~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~
"""
Oil Production Map Runner
Wrapper script to scrape, clean, join and map country oil production.

Usage:
    python run_oil_map.py --output_dir oil_map_output
    python run_oil_map.py --world_map countries.geojson --apply_aliases
"""

import argparse
import logging
import sys
from pathlib import Path
from oil_analytics import OilProductionAnalyzer, WIKIPEDIA_URL


def main():
    """Main execution function."""
    parser = argparse.ArgumentParser(
        description="Map Oil Production by Country (EIA, 2019)"
    )

    parser.add_argument(
        "--url",
        type=str,
        default=WIKIPEDIA_URL,
        help=f"Page holding the production table (default: {WIKIPEDIA_URL})"
    )

    parser.add_argument(
        "--output_dir",
        type=str,
        default="oil_map_output",
        help="Directory to save results (default: oil_map_output)"
    )

    parser.add_argument(
        "--world_map",
        type=str,
        default=None,
        help="World polygon file or URL (default: Natural Earth 110m)"
    )

    parser.add_argument(
        "--apply_aliases",
        action="store_true",
        help="Rename known source country names to map region names"
    )

    parser.add_argument(
        "--draft",
        action="store_true",
        help="Render the unstyled draft map"
    )

    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Debug logging"
    )

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s"
    )

    # Validate a local world map path; URLs are left to geopandas
    if args.world_map and "://" not in args.world_map:
        if not Path(args.world_map).exists():
            print(f"Error: World map '{args.world_map}' does not exist.")
            sys.exit(1)

    print("--- Starting Oil Production Map ---")
    print(f"Source: {args.url}")
    print(f"Output: {args.output_dir}")
    print(f"World map: {args.world_map or 'Natural Earth 110m'}")

    analyzer = OilProductionAnalyzer(
        args.output_dir,
        url=args.url,
        world_map_path=args.world_map,
        apply_aliases=args.apply_aliases,
    )

    # 1. Scrape & Clean
    production = analyzer.process_data()

    if production.empty:
        print("No production rows found. Exiting.")
        sys.exit(0)

    # 2. Join
    joined, mismatches = analyzer.build_map_data(production)
    print(f"{len(mismatches)} countries have no map region.")

    # 3. Outputs
    analyzer.generate_outputs(production, joined, mismatches, draft=args.draft)

    print("--- Map Complete ---")


if __name__ == "__main__":
    main()
