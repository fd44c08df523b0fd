#!/usr/bin/env python
"""Recompute the popularity score of every public list.

Run after changing the popularity formula, or to repair scores written by
older code. Also runs nightly from the API scheduler.

Usage:
    python scripts/recompute_list_popularity.py
"""

import asyncio
import logging
import sys
from pathlib import Path

# Add app to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from app.config import get_settings
from app.core.cache import get_cache
from app.logging import configure_logging
from app.services.list_service import run_popularity_recompute

logger = logging.getLogger(__name__)


async def main():
    configure_logging(get_settings().log_level)
    try:
        processed = await run_popularity_recompute()
    except Exception:
        return 1
    finally:
        await get_cache().close()

    logger.info(f"Done: {processed} public lists recomputed")
    return 0


if __name__ == "__main__":
    exit_code = asyncio.run(main())
    sys.exit(exit_code)
