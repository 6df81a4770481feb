# Path: scripts/import_catalog.py
# Purpose: CLI tool to import a catalog manifest and bring the vector indexes up to date.
# Layer: scripts.
# Details: Demonstrates how to wire the store, importer, and index maintainer together.

from __future__ import annotations

import argparse
import sys
from pathlib import Path

# Ensure project root is on sys.path when running as a script.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from shelfscan.bootstrap import build_services, configure_logging
from shelfscan.config import AppSettings
from shelfscan.core.indexing import CatalogImporter


def main() -> None:
    """Import products and bookings, then drain every index."""

    parser = argparse.ArgumentParser(description="Import a catalog into shelfscan")
    parser.add_argument("manifest", type=Path, help="JSON manifest listing products and bookings")
    parser.add_argument("--folder", type=Path, default=None, help="Folder the manifest's image paths are relative to")
    parser.add_argument("--database", type=str, default=None, help="Document store path")
    parser.add_argument("--batch-size", type=int, default=None, help="Stale entries embedded per committed batch")
    args = parser.parse_args()

    settings = AppSettings.from_env()
    if args.database:
        settings.database_path = args.database
    if args.batch_size:
        settings.indexing.batch_size = args.batch_size
    folder = args.folder or settings.catalog_folder
    configure_logging(settings.log_level)

    services = build_services(settings, start_maintainer=False)
    try:
        report = CatalogImporter(services.store, folder).import_manifest(args.manifest)
        committed = sum(services.maintainer.drain(index) for index in services.indexes)
    finally:
        services.close()

    print(f"Imported {report.imported} documents ({len(report.skipped)} skipped), computed {committed} vectors")


if __name__ == "__main__":
    main()
