# Path: scripts/quick_search_demo.py
# Purpose: Simple CLI to run a text or image search against the document store.
# Layer: scripts.
# Details: Demonstrates text and image search through the SearchCoordinator.

from __future__ import annotations

import argparse
import sys
from pathlib import Path

# Ensure project root is on sys.path when running as a script.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from PIL import Image

from shelfscan.bootstrap import build_services, configure_logging
from shelfscan.config import AppSettings


def main() -> None:
    """Execute a quick search from the command line."""

    parser = argparse.ArgumentParser(description="Run a quick search against the shelfscan catalog")
    group = parser.add_mutually_exclusive_group(required=True)
    group.add_argument("--text", type=str, help="Text query (prefix search over names and categories)")
    group.add_argument("--image", type=Path, help="Image file to search with")
    parser.add_argument("--database", type=str, default=None, help="Document store path")
    args = parser.parse_args()

    settings = AppSettings.from_env()
    if args.database:
        settings.database_path = args.database
    configure_logging(settings.log_level)

    services = build_services(settings, start_maintainer=False)
    try:
        if args.text is not None:
            results = services.coordinator.search_by_text(args.text)
        else:
            with Image.open(args.image) as image:
                results = services.coordinator.search_by_image(image)
    finally:
        services.close()

    for record in results:
        display = record.display
        print(f"id={record.id} title={display.title or 'n/a'} price={display.subtitle or 'n/a'} at={display.details or 'n/a'}")


if __name__ == "__main__":
    main()
