"""Background automation scheduler.

Each cycle runs four passes in order:
1. Follow-up cadence: templated automated emails on day 0, 7, 14 and 21
2. SLA monitoring: persist the re-evaluated SLA, alert once on a missed first contact
3. Scheduled custom reports: generate due reports and compute their next run
4. Retention: archive converted leads past the retention window

Passes are isolated from each other, and so is every lead or report inside a
pass: a failure is logged and counted, and the remaining work still runs.
"""

import calendar
import threading
import time
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone

import structlog

from leadflow.clock import Clock, utcnow
from leadflow.metrics import AUTOMATION_TASKS, SCHEDULER_ERRORS, CYCLE_DURATION
from leadflow.services.locks import TickLockBusy

logger = structlog.get_logger()

SLA_ALERT_MILESTONE = "sla_alert:first-contact"
DEFAULT_REPORT_TIME = "09:00"


@dataclass(frozen=True)
class FollowUp:
    day: int
    key: str
    subject: str
    body: str
    timeline: str | None = None  # forced onto the lead when sent


FOLLOWUPS = (
    FollowUp(0, "followup:day-0", "Welcome to {agency}", "Thank you for your inquiry. An agent will be in touch shortly."),
    FollowUp(7, "followup:day-7", "Market Insights for You", "Check out the latest trends in the areas you are interested in."),
    FollowUp(14, "followup:day-14", "Why {agency}?", "We offer the best property services in town."),
    FollowUp(21, "followup:day-21", "Still interested?", "Just checking in one last time.", timeline="long-term"),
)


@dataclass
class CycleReport:
    started_at: datetime
    tasks: dict[str, int] = field(default_factory=dict)  # pass name -> tasks executed
    errors: dict[str, int] = field(default_factory=dict)  # pass name -> failures

    @property
    def total_tasks(self) -> int:
        return sum(self.tasks.values())


# ----------------------------------------------------------------------
# Report scheduling
# ----------------------------------------------------------------------

def _add_months(value: datetime, months: int) -> datetime:
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return value.replace(year=year, month=month, day=day)


def _advance(base: datetime, frequency: str, steps: int) -> datetime:
    if frequency == "weekly":
        return base + timedelta(days=7 * steps)
    if frequency == "monthly":
        return _add_months(base, steps)
    if frequency == "quarterly":
        return _add_months(base, 3 * steps)
    return base + timedelta(days=steps)  # daily and unknown frequencies


def calculate_next_run(schedule: dict, now: datetime) -> datetime:
    """Today's HH:MM, moved forward by the schedule frequency until it is after ``now``."""
    hours, minutes = (int(part) for part in (schedule.get("time") or DEFAULT_REPORT_TIME).split(":"))
    base = now.replace(hour=hours, minute=minutes, second=0, microsecond=0)
    frequency = schedule.get("frequency", "daily")

    candidate = base
    steps = 0
    while candidate <= now:
        steps += 1
        candidate = _advance(base, frequency, steps)
    return candidate


def parse_timestamp(value) -> datetime | None:
    if not value:
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


# ----------------------------------------------------------------------
# Scheduler
# ----------------------------------------------------------------------

class AutomationScheduler:
    def __init__(
        self,
        lead_service,
        report_engine,
        notifier,
        state_store,
        clock: Clock = utcnow,
        interval_seconds: float = 300,
        tick_lock=None,
        agency_name: str = "our agency",
        agent_name: str = "Automation Bot",
    ):
        self.lead_service = lead_service
        self.report_engine = report_engine
        self.notifier = notifier
        self.state_store = state_store
        self.clock = clock
        self.interval_seconds = interval_seconds
        self.tick_lock = tick_lock
        self.agency_name = agency_name
        self.agent_name = agent_name

        self._cycle_lock = threading.Lock()
        self._thread: threading.Thread | None = None
        self._stop_event: threading.Event | None = None

        stored = state_store.load()
        self._last_run: str | None = stored.get("last_run")
        self._total_tasks = int(stored.get("total_tasks_executed", 0))

    # --- lifecycle ---

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """(Re)start the loop: runs a cycle right away, then every interval."""
        self.stop()
        stop_event = threading.Event()
        self._stop_event = stop_event
        self._thread = threading.Thread(
            target=self._loop, args=(stop_event,), name="automation-scheduler", daemon=True
        )
        self._thread.start()
        self._save_state()
        logger.info("automation_scheduler_started", interval_seconds=self.interval_seconds)

    def stop(self, timeout: float = 10.0) -> None:
        if self._thread is None:
            return
        self._stop_event.set()
        if self._thread is not threading.current_thread():
            self._thread.join(timeout=timeout)
        self._thread = None
        self._stop_event = None
        self._save_state()
        logger.info("automation_scheduler_stopped")

    def _loop(self, stop_event: threading.Event) -> None:
        self.run_cycle()
        while not stop_event.wait(self.interval_seconds):
            self.run_cycle()

    def get_state(self) -> dict:
        return {
            "last_run": self._last_run,
            "is_running": self.is_running,
            "total_tasks_executed": self._total_tasks,
        }

    def _save_state(self) -> None:
        try:
            self.state_store.save(self.get_state())
        except Exception as e:
            logger.error("automation_state_save_failed", error=str(e))

    # --- cycle ---

    def run_cycle(self, now: datetime | None = None) -> CycleReport | None:
        """Run one tick. Returns None when another tick is already running."""
        if not self._cycle_lock.acquire(blocking=False):
            logger.info("automation_cycle_skipped", reason="cycle_in_progress")
            return None
        try:
            if self.tick_lock is None:
                return self._run_passes(now or self.clock())
            try:
                with self.tick_lock.hold():
                    return self._run_passes(now or self.clock())
            except TickLockBusy:
                logger.info("automation_cycle_skipped", reason="locked_by_other_process")
                return None
        finally:
            self._cycle_lock.release()

    def _run_passes(self, now: datetime) -> CycleReport:
        report = CycleReport(started_at=now)
        logger.info("automation_cycle_started", now=now.isoformat())

        with CYCLE_DURATION.time():
            for name, run_pass in (
                ("followups", self.process_followups),
                ("sla", self.monitor_sla),
                ("reports", self.process_reports),
                ("retention", self.archive_converted),
            ):
                try:
                    report.tasks[name] = run_pass(now, report)
                except Exception as e:
                    report.tasks.setdefault(name, 0)
                    self._record_error(report, name)
                    logger.error("automation_pass_failed", pass_name=name, error=str(e), exc_info=True)

        self._total_tasks += report.total_tasks
        self._last_run = now.isoformat()
        self._save_state()
        logger.info(
            "automation_cycle_completed", tasks=report.tasks, errors=report.errors,
            total_tasks_executed=self._total_tasks,
        )
        return report

    @staticmethod
    def _record_error(report: CycleReport, pass_name: str) -> None:
        report.errors[pass_name] = report.errors.get(pass_name, 0) + 1
        SCHEDULER_ERRORS.labels(pass_name=pass_name).inc()

    # --- pass 1: follow-ups ---

    def process_followups(self, now: datetime, report: CycleReport) -> int:
        by_day = {f.day: f for f in FOLLOWUPS}
        sent = 0
        for lead in self.lead_service.active_leads():
            days = (now - lead.created_at).days
            followup = by_day.get(days)
            if followup is None or followup.key in (lead.automation_milestones or []):
                continue
            try:
                subject = followup.subject.format(agency=self.agency_name)
                recorded = self.lead_service.record_followup(
                    lead.id, followup.key, subject, followup.body,
                    agent_name=self.agent_name, timeline=followup.timeline, now=now,
                )
            except Exception as e:
                self._record_error(report, "followups")
                logger.error("followup_failed", lead_id=str(lead.id), day=days, error=str(e))
                continue
            if recorded:
                sent += 1
                AUTOMATION_TASKS.labels(task="followup").inc()
                logger.info("followup_email_sent", lead_id=str(lead.id), to=lead.email, subject=subject, day=days)
        return sent

    # --- pass 2: SLA ---

    def monitor_sla(self, now: datetime, report: CycleReport) -> int:
        alerts = 0
        for lead in self.lead_service.active_leads():
            try:
                refreshed = self.lead_service.refresh_sla(lead.id, now)
                current = refreshed.lead
                if (
                    current.status == "new"
                    and current.first_contact_at is None
                    and "first-contact" in refreshed.evaluation.breaches
                    and SLA_ALERT_MILESTONE not in (current.automation_milestones or [])
                ):
                    if self.lead_service.mark_milestone(
                        current.id, SLA_ALERT_MILESTONE, action="sla_alert",
                        note=f"overdue_by={refreshed.evaluation.breaches['first-contact']:.1f}h",
                    ):
                        alerts += 1
                        AUTOMATION_TASKS.labels(task="sla_alert").inc()
                        self.notifier.notify(
                            "warning", "SLA alert", f"Lead {current.name}: First Contact Overdue",
                            lead_id=str(current.id), agent=current.agent_name or None,
                            hours_overdue=round(refreshed.evaluation.breaches["first-contact"], 1),
                        )
            except Exception as e:
                self._record_error(report, "sla")
                logger.error("sla_check_failed", lead_id=str(lead.id), error=str(e))
        return alerts

    # --- pass 3: scheduled reports ---

    def process_reports(self, now: datetime, report: CycleReport) -> int:
        executed = 0
        for custom_report in self.report_engine.get_custom_reports():
            config = custom_report.get("config") or {}
            schedule = config.get("schedule") or {}
            if not schedule.get("enabled"):
                continue
            try:
                if self._execute_report(custom_report, config, schedule, now):
                    executed += 1
            except Exception as e:
                self._record_error(report, "reports")
                logger.error("scheduled_report_failed", report_id=custom_report.get("id"), error=str(e))
                try:
                    self.report_engine.record_failed_report(
                        custom_report.get("id"), custom_report.get("name", ""), "system", "scheduled", str(e),
                    )
                except Exception as record_error:
                    logger.error("failed_report_record_failed", report_id=custom_report.get("id"), error=str(record_error))
        return executed

    def _execute_report(self, custom_report: dict, config: dict, schedule: dict, now: datetime) -> bool:
        report_id = custom_report["id"]
        next_run = parse_timestamp(schedule.get("next_run"))
        if next_run is None:
            next_run = calculate_next_run(schedule, now)
            self.report_engine.update_custom_report(report_id, {
                "config": {**config, "schedule": {**schedule, "next_run": next_run.isoformat()}},
            })
        if next_run > now:
            return False

        logger.info("scheduled_report_executing", report_id=report_id, name=custom_report.get("name"))
        started = time.monotonic()
        generated = self.report_engine.generate_report(config, "system", "admin")
        generated = {**generated, "template_id": report_id, "template_name": custom_report.get("name")}
        self.report_engine.add_report_history(generated, "scheduled", int((time.monotonic() - started) * 1000))

        following = calculate_next_run(schedule, now)
        self.report_engine.update_custom_report(report_id, {
            "generation_count": (custom_report.get("generation_count") or 0) + 1,
            "last_generated": now.isoformat(),
            "config": {**config, "schedule": {**schedule, "next_run": following.isoformat()}},
        })
        AUTOMATION_TASKS.labels(task="report").inc()
        logger.info("scheduled_report_completed", report_id=report_id, next_run=following.isoformat())
        return True

    # --- pass 4: retention ---

    def archive_converted(self, now: datetime, report: CycleReport) -> int:
        days = self.lead_service.settings_store.get().auto_archive_after_days
        archived = 0
        for lead in self.lead_service.converted_before(now - timedelta(days=days)):
            try:
                self.lead_service.archive(lead.id, actor="scheduler")
            except Exception as e:
                self._record_error(report, "retention")
                logger.error("auto_archive_failed", lead_id=str(lead.id), error=str(e))
                continue
            archived += 1
            AUTOMATION_TASKS.labels(task="archive").inc()
            logger.info("lead_auto_archived", lead_id=str(lead.id), retention_days=days)
        return archived
