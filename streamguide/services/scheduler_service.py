import logging
from datetime import datetime
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from streamguide.config import settings
from streamguide.services.epg_fetch_service import refresh_epg


logger = logging.getLogger(__name__)

REFRESH_JOB_ID = 'epg_refresh'


class EPGScheduler:
    """Runs the guide refresh on the configured cron schedule"""

    def __init__(self, cron: str | None = None):
        self.cron = cron or settings.epg_refresh_cron
        self.scheduler: AsyncIOScheduler | None = None

    async def _refresh_job(self) -> None:
        logger.info("Scheduled EPG refresh triggered")
        try:
            result = await refresh_epg()
            if "error" in result:
                logger.error(f"Scheduled refresh failed: {result['error']}")
            elif result.get("status") != "success":
                logger.warning(f"Scheduled refresh finished with status {result.get('status')}")
        except Exception as e:
            logger.error(f"Exception in scheduled refresh: {e}", exc_info=True)

    def start(self) -> None:
        if self.scheduler and self.scheduler.running:
            logger.warning("Scheduler already running")
            return

        try:
            trigger = CronTrigger.from_crontab(self.cron, timezone='UTC')
        except (ValueError, KeyError) as exc:
            logger.error("Invalid cron expression '%s': %s", self.cron, exc)
            raise

        self.scheduler = AsyncIOScheduler(timezone='UTC')
        self.scheduler.add_job(
            self._refresh_job,
            trigger=trigger,
            id=REFRESH_JOB_ID,
            max_instances=1,
            coalesce=True,
            misfire_grace_time=settings.epg_refresh_misfire_grace_sec
        )

        self.scheduler.start()
        next_time = self.get_next_run_time()
        logger.info(
            "Scheduler started. Next refresh: %s",
            next_time.isoformat() if next_time else "unknown"
        )

    def shutdown(self) -> None:
        if self.scheduler and self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            logger.info("Scheduler stopped")
        self.scheduler = None

    @property
    def running(self) -> bool:
        return bool(self.scheduler and self.scheduler.running)

    def get_next_run_time(self) -> datetime | None:
        if not self.scheduler:
            return None
        job = self.scheduler.get_job(REFRESH_JOB_ID)
        return job.next_run_time if job else None


epg_scheduler = EPGScheduler()
