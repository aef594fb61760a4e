"""Prometheus metrics, exposed on /metrics."""

from prometheus_client import Counter, Histogram

LEADS_CREATED = Counter("leads_created_total", "Total leads created", ["source"])
LEAD_STATUS_CHANGES = Counter("lead_status_changes_total", "Lead status transitions", ["status"])
CONVERSIONS = Counter("lead_conversions_total", "Lead conversion attempts", ["intent", "outcome"])
AUTOMATION_TASKS = Counter("automation_tasks_total", "Automation tasks executed", ["task"])
SCHEDULER_ERRORS = Counter("scheduler_errors_total", "Errors raised inside scheduler passes", ["pass_name"])
CYCLE_DURATION = Histogram("automation_cycle_duration_seconds", "Automation cycle duration")
