"""
IntelliPlan — Entry Point.

Single entry point: `python main.py <command>` runs the study-plan CLI.
"""

import logging
import sys

from src.config import settings

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL, logging.INFO),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)

from src.cli.commands import main

if __name__ == "__main__":
    sys.exit(main())
