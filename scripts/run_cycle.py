#!/usr/bin/env python3
"""
Run one agent decision cycle from the command line.

Usage:
  python scripts/run_cycle.py
  python scripts/run_cycle.py --create-tables
  python scripts/run_cycle.py --show-status
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from app.config import settings
from app.core.logging import setup_logging
from app.infrastructure.db.database import Base, close_db, engine
from app.services.agent_service import AgentService


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run one DustMite decision cycle.")
    parser.add_argument("--create-tables", action="store_true", help="Create missing tables before running")
    parser.add_argument("--show-status", action="store_true", help="Print agent status after the cycle")
    return parser.parse_args()


async def run(args: argparse.Namespace) -> int:
    if args.create_tables:
        from app.infrastructure.db import models  # noqa: F401
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    service = AgentService.from_settings(settings)
    try:
        outcome = await service.trigger()
        print(json.dumps(outcome.to_dict(), indent=2))
        if args.show_status:
            print(json.dumps(await service.status(), indent=2))
    finally:
        await close_db()

    return 0 if outcome.status.value in ("COMPLETED", "SKIPPED_DUST") else 1


if __name__ == "__main__":
    setup_logging(settings.LOG_LEVEL)
    sys.exit(asyncio.run(run(parse_args())))
