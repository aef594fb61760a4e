"""Tests for lead conversion into back-office records."""

from unittest.mock import MagicMock

import pytest

from leadflow.exceptions import LeadNotFoundError
from leadflow.services.conversion import ConversionEngine, find_duplicate, urgency_for, will_create

from support import VALID_LEAD, FakeBackOffice, make_service


class TestConvert:
    def setup_method(self):
        self.service, self.clock = make_service()
        self.backoffice = FakeBackOffice()
        self.notifier = MagicMock()
        self.engine = ConversionEngine(self.service, self.backoffice, notifier=self.notifier, clock=self.clock)

    def _qualified(self, **data):
        lead = self.service.create({**VALID_LEAD, **data}).lead
        return self.service.update(lead.id, {"status": "qualified"})

    def test_seller_creates_contact_and_property(self):
        lead = self._qualified(
            intent="selling",
            details={"property_address": "12 Main Boulevard", "expected_price": 30_000_000},
        )
        result = self.engine.convert(lead.id, "agent-1", "Hamza")

        assert result.success is True
        assert result.errors == []
        assert result.contact_id is not None
        assert result.property_id is not None
        assert result.buyer_requirement_id is None
        assert result.rent_requirement_id is None
        assert result.investor_id is None

        prop = self.backoffice.properties[0]
        assert prop["listing_type"] == "for-sale"
        assert prop["price"] == 30_000_000
        assert prop["current_owner_id"] == result.contact_id

        converted = self.service.get(lead.id)
        assert converted.status == "converted"
        assert converted.routed_to["property_id"] == result.property_id
        assert converted.routed_to["converted_by"] == "agent-1"
        self.notifier.notify.assert_called_once()

    def test_existing_phone_is_a_high_confidence_duplicate(self):
        self.backoffice.contacts.append({"id": "contact-existing", "name": "Someone Else", "phone": VALID_LEAD["phone"]})
        lead = self._qualified(intent="buying", details={"budget_min": 1})

        check = self.engine.check_duplicate_contact(lead)
        assert check.has_duplicate is True
        assert check.match_confidence == "high"
        assert check.duplicate_id == "contact-existing"

        # advisory only: conversion still goes ahead, with a warning
        result = self.engine.convert(lead.id, "agent-1", "Hamza")
        assert result.success is True
        assert any("duplicate" in w for w in result.warnings)

    def test_investor_creates_investor_and_buyer_requirement(self):
        lead = self._qualified(intent="investing", timeline="within-3-months", details={"investment_budget": 10_000_000})
        result = self.engine.convert(lead.id, "agent-1", "Hamza")

        assert result.investor_id is not None
        assert result.buyer_requirement_id is not None
        investor = self.backoffice.investors[0]
        assert investor["minimum_investment_amount"] == 1_000_000
        assert investor["maximum_investment_amount"] == 10_000_000
        requirement = self.backoffice.buyer_requirements[0]
        assert requirement["min_budget"] == 5_000_000
        assert requirement["urgency"] == "high"  # medium bumped one level
        assert requirement["investor_id"] == result.investor_id

    def test_renter_creates_rent_requirement(self):
        lead = self._qualified(intent="renting", details={"monthly_budget": 90_000})
        result = self.engine.convert(lead.id, "agent-1", "Hamza")
        assert result.rent_requirement_id is not None
        assert self.backoffice.rent_requirements[0]["monthly_budget"] == 90_000

    def test_unknown_intent_creates_contact_only(self):
        lead = self._qualified()
        result = self.engine.convert(lead.id, "agent-1", "Hamza")
        assert result.success is True
        assert list(self.backoffice.contacts)
        assert any("contact only" in w for w in result.warnings)

    def test_contact_failure_aborts(self):
        self.backoffice.fail.add("create_contact")
        lead = self._qualified(intent="buying")
        result = self.engine.convert(lead.id, "agent-1", "Hamza")
        assert result.success is False
        assert "Failed to create contact" in result.errors
        assert self.service.get(lead.id).status == "qualified"

    def test_intent_record_failure_keeps_contact(self):
        self.backoffice.fail.add("create_buyer_requirement")
        lead = self._qualified(intent="buying", details={"budget_max": 5})
        result = self.engine.convert(lead.id, "agent-1", "Hamza")

        assert result.success is True
        assert result.contact_id is not None
        assert result.errors
        assert "Contact was created but additional entities failed" in result.warnings
        assert self.service.get(lead.id).status == "converted"

    def test_lost_lead_is_rejected(self):
        lead = self.service.create(dict(VALID_LEAD)).lead
        self.service.mark_lost(lead.id, "spam")
        result = self.engine.convert(lead.id, "agent-1", "Hamza")
        assert result.success is False
        assert "Cannot convert a lost lead" in result.errors
        assert self.backoffice.contacts == []

    def test_second_conversion_is_rejected(self):
        lead = self._qualified(intent="buying")
        self.engine.convert(lead.id, "agent-1", "Hamza")
        result = self.engine.convert(lead.id, "agent-1", "Hamza")
        assert result.success is False
        assert "Lead has already been converted" in result.errors
        assert len(self.backoffice.contacts) == 1

    def test_conversion_note_is_appended(self):
        lead = self._qualified(intent="selling", details={"property_address": "x"})
        self.engine.convert(lead.id, "agent-1", "Hamza", additional_notes="Keys with guard")
        note = self.service.get(lead.id).interactions[-1]
        assert note.type == "note"
        assert "Keys with guard" in (note.summary + (note.notes or ""))

    def test_preview(self):
        lead = self._qualified(intent="investing")
        preview = self.engine.preview(lead.id)
        assert preview.will_create["investor"] is True
        assert preview.will_create["buyer_requirement"] is True
        assert preview.validation.valid is True
        assert preview.duplicate_check.has_duplicate is False

    def test_preview_unknown_lead(self):
        with pytest.raises(LeadNotFoundError):
            self.engine.preview("00000000-0000-0000-0000-000000000000")

    def test_duplicate_check_survives_backoffice_outage(self):
        self.backoffice.fail.add("list_contacts")
        lead = self._qualified()
        assert self.engine.check_duplicate_contact(lead).has_duplicate is False


class TestHelpers:
    def test_name_overlap_is_medium_confidence(self):
        lead = MagicMock(phone="03001234567", alternate_phone=None, email=None)
        lead.name = "Ali Raza"
        check = find_duplicate(lead, [{"id": "c1", "name": "Raza Ali Khan", "phone": "03111111111"}])
        assert check.has_duplicate is True
        assert check.match_confidence == "medium"

    def test_email_match_ignores_case(self):
        lead = MagicMock(phone="03001234567", alternate_phone=None, email="Ali@Example.com")
        lead.name = "Ali Raza"
        check = find_duplicate(lead, [{"id": "c1", "name": "X", "email": "ali@example.com"}])
        assert check.match_confidence == "high"

    def test_will_create(self):
        assert will_create("selling") == {
            "contact": True, "buyer_requirement": False, "rent_requirement": False,
            "property": True, "investor": False,
        }

    def test_urgency(self):
        assert urgency_for("immediate") == "high"
        assert urgency_for("within-3-months") == "medium"
        assert urgency_for("long-term") == "low"
