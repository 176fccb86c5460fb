"""
Run the periodic sweeps in-process for deployments without cron.

Slot holds are released every few minutes; waitlist entries expire at
midnight. ``--once`` runs both sweeps a single time and exits.
"""
import logging

from apscheduler.schedulers.blocking import BlockingScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger
from django.conf import settings
from django.core.management.base import BaseCommand
from django.db import close_old_connections

from clinic.services.scheduling import release_expired_holds
from clinic.services.waitlist import expire_stale

logger = logging.getLogger(__name__)


def sweep_holds() -> int:
    close_old_connections()
    try:
        released = release_expired_holds()
    finally:
        close_old_connections()
    logger.info("Hold sweep released %s slots", released)
    return released


def sweep_waitlist() -> int:
    close_old_connections()
    try:
        expired = expire_stale()
    finally:
        close_old_connections()
    logger.info("Waitlist sweep expired %s entries", expired)
    return expired


def build_scheduler(hold_minutes: int = 5) -> BlockingScheduler:
    scheduler = BlockingScheduler(timezone=settings.TIME_ZONE)
    scheduler.add_job(
        sweep_holds,
        IntervalTrigger(minutes=hold_minutes),
        id="release_expired_holds",
        name="Release expired slot holds",
        replace_existing=True,
        max_instances=1,
        coalesce=True,
    )
    scheduler.add_job(
        sweep_waitlist,
        CronTrigger(hour=0, minute=0, timezone=settings.TIME_ZONE),
        id="expire_waitlist",
        name="Expire stale waitlist entries",
        replace_existing=True,
        max_instances=1,
        coalesce=True,
    )
    return scheduler


class Command(BaseCommand):
    help = "Run the hold and waitlist sweeps on a schedule."

    def add_arguments(self, parser):
        parser.add_argument("--hold-minutes", type=int, default=5, help="Minutes between hold sweeps (default 5)")
        parser.add_argument("--once", action="store_true", help="Run both sweeps once and exit")

    def handle(self, *args, **options):
        if options["once"]:
            released = release_expired_holds()
            expired = expire_stale()
            self.stdout.write(self.style.SUCCESS(f"holds released={released} waitlist expired={expired}"))
            return

        minutes = max(1, options["hold_minutes"])
        scheduler = build_scheduler(minutes)
        self.stdout.write(self.style.SUCCESS(f"Scheduler started: holds every {minutes} min, waitlist daily at 00:00"))
        try:
            scheduler.start()
        except KeyboardInterrupt:
            scheduler.shutdown(wait=False)
            self.stdout.write("Scheduler stopped")
