"""Tests for the lead lifecycle service."""

import uuid
from datetime import timedelta

import pytest
from sqlalchemy import select

from leadflow.exceptions import LeadConflictError, LeadNotFoundError, LeadStateError, LeadValidationError
from leadflow.models.audit import AuditLog
from leadflow.services.store import LeadFilter

from support import T0, VALID_LEAD, make_service


class TestCreate:
    def setup_method(self):
        self.service, self.clock = make_service()

    def test_create_defaults(self):
        result = self.service.create(dict(VALID_LEAD), actor="admin@example.com")
        assert result.ok
        lead = result.lead
        assert lead.status == "new"
        assert lead.qualification_score == 4
        assert lead.priority == "low"
        assert lead.phone_verified is False
        assert lead.email_verified is False
        assert lead.sla_compliant is True
        assert lead.created_at == T0
        assert lead.created_by == "admin@example.com"
        assert lead.interactions == []

    def test_invalid_fields_are_reported(self):
        result = self.service.create({"name": "A", "phone": "12", "email": "not-an-email"})
        assert not result.ok
        assert {e.field for e in result.errors} == {"name", "phone", "email"}
        assert self.service.count() == 0

    def test_verification_flags_from_input_are_ignored(self):
        result = self.service.create({**VALID_LEAD, "phone_verified": True})
        assert result.lead.phone_verified is False

    def test_phone_with_spaces_and_dashes_validates(self):
        result = self.service.create({**VALID_LEAD, "phone": "0300-123 4567"})
        assert result.ok

    def test_create_writes_audit_entry(self):
        lead = self.service.create(dict(VALID_LEAD)).lead
        with self.service.session_factory() as session:
            entries = session.execute(select(AuditLog).where(AuditLog.lead_id == lead.id)).scalars().all()
        assert [e.action for e in entries] == ["lead_created"]

    def test_auto_assign_picks_least_loaded_agent(self):
        self.service.settings_store.update({
            "auto_assign_enabled": True,
            "agents": [{"id": "a1", "name": "Hamza"}, {"id": "a2", "name": "Fatima"}],
        })
        first = self.service.create(dict(VALID_LEAD)).lead
        second = self.service.create(dict(VALID_LEAD)).lead
        assert first.agent_id == "a1"
        assert second.agent_id == "a2"

    def test_explicit_agent_wins_over_auto_assign(self):
        self.service.settings_store.update({"auto_assign_enabled": True, "agents": [{"id": "a1", "name": "Hamza"}]})
        lead = self.service.create({**VALID_LEAD, "agent_id": "a9", "agent_name": "Sana"}).lead
        assert lead.agent_id == "a9"


class TestUpdate:
    def setup_method(self):
        self.service, self.clock = make_service()
        self.lead = self.service.create(dict(VALID_LEAD)).lead

    def test_scoring_field_triggers_rescore(self):
        lead = self.service.update(self.lead.id, {"intent": "buying", "timeline": "immediate"})
        assert lead.qualification_score == 4 + 20 + 20
        assert lead.score_breakdown["intent_clarity"] == 20

    def test_non_scoring_field_keeps_score(self):
        lead = self.service.update(self.lead.id, {"notes": "Called twice"})
        assert lead.qualification_score == 4
        assert lead.notes == "Called twice"

    def test_unknown_fields_are_ignored(self):
        lead = self.service.update(self.lead.id, {"qualification_score": 99, "notes": "x"})
        assert lead.qualification_score == 4

    def test_invalid_email_raises(self):
        with pytest.raises(LeadValidationError) as exc:
            self.service.update(self.lead.id, {"email": "broken"})
        assert exc.value.errors[0].field == "email"

    def test_null_for_required_field_raises(self):
        with pytest.raises(LeadValidationError) as exc:
            self.service.update(self.lead.id, {"intent": None, "notes": None})
        assert [e.field for e in exc.value.errors] == ["intent", "notes"]
        assert self.service.get(self.lead.id).intent == "unknown"

    def test_null_for_optional_field_clears_it(self):
        self.service.update(self.lead.id, {"campaign": "spring"})
        lead = self.service.update(self.lead.id, {"campaign": None})
        assert lead.campaign is None

    def test_qualified_stamps_backfilled_milestones(self):
        self.clock.now = T0 + timedelta(hours=5)
        lead = self.service.update(self.lead.id, {"status": "qualified"})
        assert lead.status == "qualified"
        assert lead.qualified_at == self.clock.now
        assert lead.first_contact_at == self.clock.now

    def test_converted_is_not_a_manual_transition(self):
        with pytest.raises(LeadStateError):
            self.service.update(self.lead.id, {"status": "converted"})

    def test_stale_version_is_rejected(self):
        with pytest.raises(LeadConflictError):
            self.service.update(self.lead.id, {"notes": "x"}, expected_version=self.lead.row_version + 5)

    def test_version_advances_on_update(self):
        lead = self.service.update(self.lead.id, {"notes": "x"}, expected_version=self.lead.row_version)
        assert lead.row_version == self.lead.row_version + 1

    def test_unknown_lead(self):
        with pytest.raises(LeadNotFoundError):
            self.service.update(uuid.uuid4(), {"notes": "x"})

    def test_garbage_id_is_not_found(self):
        with pytest.raises(LeadNotFoundError):
            self.service.get("not-a-uuid")


class TestStatusManagement:
    def setup_method(self):
        self.service, self.clock = make_service()
        self.lead = self.service.create(dict(VALID_LEAD)).lead

    def test_mark_lost_requires_valid_reason(self):
        with pytest.raises(LeadValidationError):
            self.service.mark_lost(self.lead.id, "bored")

    def test_mark_lost_then_reactivate(self):
        lead = self.service.mark_lost(self.lead.id, "no-budget", "Budget too low")
        assert lead.status == "lost"
        assert lead.loss_reason == "no-budget"

        lead = self.service.reactivate(self.lead.id)
        assert lead.status == "new"
        assert lead.loss_reason is None
        assert lead.loss_notes is None

    def test_archived_lead_is_immutable(self):
        self.service.archive(self.lead.id)
        with pytest.raises(LeadStateError):
            self.service.update(self.lead.id, {"notes": "x"})
        with pytest.raises(LeadStateError):
            self.service.add_interaction(self.lead.id, {"type": "call", "summary": "hello"})

    def test_reactivate_active_lead_fails(self):
        with pytest.raises(LeadStateError):
            self.service.reactivate(self.lead.id)

    def test_reactivate_routed_lead_returns_to_converted(self):
        self.service.record_conversion(self.lead.id, {"contact_id": "contact-1"})
        self.service.archive(self.lead.id)
        lead = self.service.reactivate(self.lead.id)
        assert lead.status == "converted"

    def test_bulk_status_reports_failures(self):
        missing = uuid.uuid4()
        result = self.service.bulk_set_status([self.lead.id, missing], "qualifying")
        assert result.updated == [str(self.lead.id)]
        assert str(missing) in result.failed

    def test_bulk_assign(self):
        other = self.service.create(dict(VALID_LEAD)).lead
        result = self.service.bulk_assign([self.lead.id, other.id], "a1", "Hamza")
        assert len(result.updated) == 2
        assert self.service.get(other.id).agent_name == "Hamza"

    def test_delete(self):
        self.service.delete(self.lead.id)
        with pytest.raises(LeadNotFoundError):
            self.service.get(self.lead.id)


class TestInteractions:
    def setup_method(self):
        self.service, self.clock = make_service()
        self.lead = self.service.create(dict(VALID_LEAD)).lead

    def test_first_call_moves_new_lead_to_qualifying(self):
        self.clock.now = T0 + timedelta(hours=1)
        lead = self.service.add_interaction(self.lead.id, {"type": "call", "summary": "Intro call"})
        assert lead.status == "qualifying"
        assert lead.first_contact_at == self.clock.now
        assert [i.sequence for i in lead.interactions] == [1]

    def test_note_stamps_contact_but_keeps_status(self):
        lead = self.service.add_interaction(self.lead.id, {"type": "note", "summary": "Left voicemail"})
        assert lead.status == "new"
        assert lead.first_contact_at is not None

    def test_sequence_increments(self):
        self.service.add_interaction(self.lead.id, {"type": "note", "summary": "one"})
        lead = self.service.add_interaction(self.lead.id, {"type": "note", "summary": "two"})
        assert [i.sequence for i in lead.interactions] == [1, 2]

    def test_invalid_type(self):
        with pytest.raises(LeadValidationError):
            self.service.add_interaction(self.lead.id, {"type": "fax", "summary": "x"})

    def test_followup_recorded_once(self):
        assert self.service.record_followup(self.lead.id, "followup:day-0", "Welcome", "Hi", "Bot") is True
        assert self.service.record_followup(self.lead.id, "followup:day-0", "Welcome", "Hi", "Bot") is False

        lead = self.service.get(self.lead.id)
        assert len(lead.interactions) == 1
        assert lead.interactions[0].automated is True
        assert lead.interactions[0].summary == "Automated Email: Welcome"
        # automated mail is not a first contact
        assert lead.first_contact_at is None
        assert lead.status == "new"

    def test_followup_timeline_change_rescores(self):
        self.service.record_followup(self.lead.id, "followup:day-21", "Still interested?", "", "Bot", timeline="long-term")
        lead = self.service.get(self.lead.id)
        assert lead.timeline == "long-term"
        assert lead.score_breakdown["timeline_urgency"] == 6


class TestQueries:
    def setup_method(self):
        self.service, self.clock = make_service()
        self.low = self.service.create({**VALID_LEAD, "name": "Zara Low"}).lead
        self.high = self.service.create({
            **VALID_LEAD, "name": "Adeel High", "intent": "buying", "timeline": "immediate",
            "source": "referral", "details": {"budget_max": 1}, "email": "adeel@example.com",
        }).lead

    def test_sort_by_score(self):
        leads = self.service.list_leads(sort="score-high")
        assert [lead.id for lead in leads] == [self.high.id, self.low.id]

    def test_sort_by_name(self):
        leads = self.service.list_leads(sort="name-az")
        assert [lead.name for lead in leads] == ["Adeel High", "Zara Low"]

    def test_unknown_sort_raises(self):
        with pytest.raises(ValueError):
            self.service.list_leads(sort="sideways")

    def test_filter_by_intent_and_search(self):
        assert self.service.count(LeadFilter(intent=["buying"])) == 1
        leads = self.service.list_leads(LeadFilter(search="zara"))
        assert [lead.id for lead in leads] == [self.low.id]

    def test_refresh_sla_persists_breach(self):
        refreshed = self.service.refresh_sla(self.low.id, T0 + timedelta(hours=3))
        assert refreshed.evaluation.sla_compliant is False
        lead = self.service.get(self.low.id)
        assert lead.sla_compliant is False
        assert lead.overdue_by == 1

    def test_requiring_action_includes_uncontacted(self):
        ids = {lead.id for lead in self.service.requiring_action()}
        assert ids == {self.low.id, self.high.id}

    def test_record_conversion_once(self):
        lead = self.service.record_conversion(self.high.id, {"contact_id": "c-1", "property_id": None})
        assert lead.status == "converted"
        assert lead.routed_to["contact_id"] == "c-1"
        assert "property_id" not in lead.routed_to
        assert lead.converted_at is not None
        with pytest.raises(LeadStateError):
            self.service.record_conversion(self.high.id, {"contact_id": "c-2"})
