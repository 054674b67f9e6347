import logging

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger

from config import get_settings
from database import session_scope
from services import AIInsightJobService


logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

DAILY_JOB_ID = "ai_daily_analysis"
SCAN_JOB_ID = "ai_five_hour_scan"


class SchedulerManager:
    def __init__(self, llm_factory=None) -> None:
        settings = get_settings()
        self.scheduler = BackgroundScheduler(timezone=settings.timezone)
        self.llm_factory = llm_factory

    def run_daily(self, source: str = "manual") -> dict[str, int]:
        logger.info(f"scheduler_start: job=daily source={source}")
        with session_scope() as session:
            return AIInsightJobService(session, self.llm_factory).run_daily()

    def run_five_hour_scan(self, source: str = "manual") -> dict[str, int]:
        logger.info(f"scheduler_start: job=five_hour source={source}")
        with session_scope() as session:
            return AIInsightJobService(session, self.llm_factory).run_five_hour_scan()

    def start(self) -> None:
        self.scheduler.add_job(
            self.run_daily,
            CronTrigger(hour=8, minute=0),
            args=["daily_08:00"],
            id=DAILY_JOB_ID,
            replace_existing=True,
            misfire_grace_time=3600,
        )
        self.scheduler.add_job(
            self.run_five_hour_scan,
            CronTrigger(hour="*/5", minute=0),
            args=["every_5_hours"],
            id=SCAN_JOB_ID,
            replace_existing=True,
            misfire_grace_time=600,
        )
        self.scheduler.start()
        logger.info("Scheduler started with daily 08:00 analysis and 5-hour scan")

    def stop(self) -> None:
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            logger.info("Scheduler stopped")
