"""APScheduler runner for the periodic health check.

The same job runs either in a ``BlockingScheduler`` (``--checks-only``) or a
``BackgroundScheduler`` started by the web app lifespan. One job id, one
instance at a time: a run still in progress when the next tick fires is
skipped and logged.
"""

from typing import Any, Callable, Optional, Union

import structlog
from apscheduler.events import (
    EVENT_JOB_ERROR,
    EVENT_JOB_EXECUTED,
    EVENT_JOB_MAX_INSTANCES,
    JobExecutionEvent,
    JobSubmissionEvent,
)
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.schedulers.blocking import BlockingScheduler
from apscheduler.triggers.cron import CronTrigger

from thermweb_monitor.scheduler.presets import SCHEDULE_PRESETS, get_preset

log = structlog.get_logger()

JOB_ID = "health_check"

Scheduler = Union[BackgroundScheduler, BlockingScheduler]


class SchedulerError(Exception):
    """Raised when the health check schedule is missing or invalid."""


def resolve_schedule(cron_expr: Optional[str], preset: Optional[str]) -> str:
    """Crontab expression for the configured schedule.

    Raises:
        SchedulerError: If both or neither are given, or the preset is unknown.
    """
    if cron_expr and preset:
        raise SchedulerError("Cannot specify both cron expression and preset")
    if cron_expr:
        return cron_expr
    if not preset:
        raise SchedulerError("No schedule configured: set schedule_cron or schedule_preset")

    expression = get_preset(preset)
    if expression is None:
        available = ", ".join(SCHEDULE_PRESETS)
        raise SchedulerError(f"Unknown schedule preset: '{preset}'. Available: {available}")
    return expression


def _log_job_executed(event: JobExecutionEvent) -> None:
    report = event.retval
    if report is None:
        log.info("scheduled_health_check_finished")
        return
    log.info(
        "scheduled_health_check_finished",
        succeeded=report.succeeded,
        transitions=len(report.transitions()),
        errors=len(report.errors),
    )


def _log_job_error(event: JobExecutionEvent) -> None:
    log.error("scheduled_health_check_crashed", error=str(event.exception))


def _log_job_skipped(event: JobSubmissionEvent) -> None:
    log.warning("scheduled_health_check_skipped", reason="previous run still in progress")


class ScheduledRunner:
    """Runs the health check on a cron schedule in the display timezone."""

    def __init__(self, timezone: str = "UTC", misfire_grace_time: int = 60) -> None:
        self.timezone = timezone
        self.misfire_grace_time = misfire_grace_time
        self._scheduler: Optional[Scheduler] = None

    @property
    def running(self) -> bool:
        return self._scheduler is not None and self._scheduler.running

    def _create_scheduler(self, background: bool = False) -> Scheduler:
        job_defaults = {
            "coalesce": True,
            "misfire_grace_time": self.misfire_grace_time,
            "max_instances": 1,
        }
        scheduler_cls = BackgroundScheduler if background else BlockingScheduler
        return scheduler_cls(timezone=self.timezone, job_defaults=job_defaults)

    def _build_trigger(self, expression: str) -> CronTrigger:
        # from_crontab() does not inherit the scheduler timezone
        try:
            return CronTrigger.from_crontab(expression, timezone=self.timezone)
        except ValueError as e:
            raise SchedulerError(f"Invalid cron expression '{expression}': {e}") from e

    def _schedule(
        self,
        background: bool,
        func: Callable[[], Any],
        cron_expr: Optional[str],
        preset: Optional[str],
    ) -> Scheduler:
        expression = resolve_schedule(cron_expr, preset)
        trigger = self._build_trigger(expression)

        scheduler = self._create_scheduler(background=background)
        scheduler.add_job(func, trigger, id=JOB_ID, name="Thermweb health check")
        scheduler.add_listener(_log_job_executed, EVENT_JOB_EXECUTED)
        scheduler.add_listener(_log_job_error, EVENT_JOB_ERROR)
        scheduler.add_listener(_log_job_skipped, EVENT_JOB_MAX_INSTANCES)

        log.info(
            "health_check_scheduled",
            cron=expression,
            preset=preset,
            timezone=self.timezone,
            mode="background" if background else "blocking",
        )
        self._scheduler = scheduler
        return scheduler

    def run(
        self,
        func: Callable[[], Any],
        cron_expr: Optional[str] = None,
        preset: Optional[str] = None,
    ) -> None:
        """Run the health check on schedule, blocking until interrupted.

        Raises:
            SchedulerError: If the schedule is missing or invalid
        """
        scheduler = self._schedule(False, func, cron_expr, preset)
        try:
            scheduler.start()
        except (KeyboardInterrupt, SystemExit):
            log.info("scheduler_shutdown", reason="interrupted")

    def start_background(
        self,
        func: Callable[[], Any],
        cron_expr: Optional[str] = None,
        preset: Optional[str] = None,
    ) -> None:
        """Start the schedule in a background thread and return.

        Raises:
            SchedulerError: If the schedule is missing or invalid
        """
        self._schedule(True, func, cron_expr, preset).start()

    def shutdown(self) -> None:
        """Stop the scheduler, waiting for a running health check to finish."""
        if self._scheduler is not None and self._scheduler.running:
            self._scheduler.shutdown(wait=True)
            log.info("scheduler_shutdown", reason="explicit shutdown")
