"""Periodic expiry of tickets whose validity window has closed."""

import asyncio
from datetime import datetime
from typing import Optional

from loguru import logger
from starlette.concurrency import run_in_threadpool

from urban_transit.database import SessionLocal
from urban_transit.tickets.service import TicketService


def run_expiry_sweep(now: Optional[datetime] = None) -> int:
    """One pass over ACTIVE tickets in a fresh session"""
    db = SessionLocal()
    try:
        return TicketService(db).expire_tickets(now)
    finally:
        db.close()


async def ticket_expiry_loop(interval: int) -> None:
    """Background asyncio loop that expires tickets every ``interval`` seconds.

    Args:
        interval: Seconds between sweeps.
    """
    logger.info("Ticket expiry loop started (interval={}s)", interval)

    while True:
        try:
            await asyncio.sleep(interval)
            count = await run_in_threadpool(run_expiry_sweep)
            if count > 0:
                logger.info("Expiry sweep moved {} ticket(s) to EXPIRED", count)
        except asyncio.CancelledError:
            logger.info("Ticket expiry loop cancelled")
            break
        except Exception:
            logger.exception("Ticket expiry loop error")
