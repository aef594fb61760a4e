"""Tests for SLA evaluation."""

from datetime import timedelta
from types import SimpleNamespace

from leadflow.services.sla import SLATargets, evaluate, next_checkpoint, sla_alerts, sla_status

from support import T0


def make_record(**overrides):
    data = {
        "id": "lead-1",
        "name": "Ali Raza",
        "agent_id": "agent-1",
        "agent_name": "Hamza",
        "priority": "medium",
        "status": "new",
        "created_at": T0,
        "first_contact_at": None,
        "qualified_at": None,
        "converted_at": None,
    }
    data.update(overrides)
    return SimpleNamespace(**data)


class TestEvaluate:
    def test_fresh_lead_is_compliant(self):
        result = evaluate(make_record(), T0 + timedelta(hours=1))
        assert result.sla_compliant is True
        assert result.overdue_by == 0

    def test_missed_first_contact(self):
        result = evaluate(make_record(), T0 + timedelta(hours=3), SLATargets(first_contact_hours=2))
        assert result.sla_compliant is False
        assert result.overdue_by == 1
        assert set(result.breaches) == {"first-contact"}

    def test_overdue_is_the_largest_breach(self):
        result = evaluate(make_record(), T0 + timedelta(hours=50))
        assert set(result.breaches) == {"first-contact", "qualification", "conversion"}
        assert result.overdue_by == 48

    def test_reached_milestones_are_never_penalised(self):
        record = make_record(first_contact_at=T0 + timedelta(hours=10))
        result = evaluate(record, T0 + timedelta(hours=12))
        assert result.sla_compliant is True

    def test_clock_skew_clamps_elapsed(self):
        result = evaluate(make_record(), T0 - timedelta(hours=1))
        assert result.hours_elapsed == 0
        assert result.sla_compliant is True


class TestStatus:
    def test_warning_near_deadline(self):
        status = sla_status(make_record(), T0 + timedelta(minutes=100))
        assert status.status == "warning"
        assert status.next_checkpoint == "first-contact"

    def test_overdue(self):
        status = sla_status(make_record(), T0 + timedelta(hours=5))
        assert status.status == "overdue"
        assert status.message == "Overdue by 3 hours"

    def test_compliant(self):
        status = sla_status(make_record(), T0 + timedelta(minutes=10))
        assert status.status == "compliant"

    def test_next_checkpoint_progression(self):
        assert next_checkpoint(make_record(first_contact_at=T0)) == "qualification"
        assert next_checkpoint(make_record(first_contact_at=T0, qualified_at=T0)) == "conversion"
        assert next_checkpoint(make_record(first_contact_at=T0, qualified_at=T0, converted_at=T0)) == "complete"


class TestAlerts:
    def test_sorted_most_overdue_first(self):
        older = make_record(id="old", created_at=T0 - timedelta(hours=10))
        newer = make_record(id="new")
        alerts = sla_alerts([newer, older], T0 + timedelta(hours=3))
        assert [a.lead_id for a in alerts] == ["old", "new"]
        assert alerts[0].hours_overdue >= alerts[-1].hours_overdue

    def test_closed_leads_are_skipped(self):
        record = make_record(status="lost")
        assert sla_alerts([record], T0 + timedelta(hours=100)) == []
