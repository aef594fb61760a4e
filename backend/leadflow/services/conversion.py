"""Lead conversion - turns a qualified lead into a contact plus intent records.

Conversion is best effort past the contact: the contact is the one mandatory
artifact, and a failure creating the intent-specific record is reported on
the result without undoing the contact.
"""

from dataclasses import dataclass, field

import structlog

from leadflow.clock import Clock, utcnow
from leadflow.exceptions import BackOfficeError, LeadConflictError, LeadStateError
from leadflow.metrics import CONVERSIONS
from leadflow.models.lead import Lead
from leadflow.services.notifications import format_conversion_message

logger = structlog.get_logger()

CONTACT_TYPES = {
    "buying": "client",
    "selling": "client",
    "renting": "client",
    "leasing-out": "client",
    "investing": "investor",
}

CONTACT_CATEGORIES = {
    "buying": "buyer",
    "selling": "seller",
    "renting": "tenant",
    "leasing-out": "landlord",
    "investing": "investor",
}

URGENCY_LEVELS = ("low", "medium", "high")


def urgency_for(timeline: str) -> str:
    if timeline in ("immediate", "within-1-month"):
        return "high"
    if timeline == "within-3-months":
        return "medium"
    return "low"


def _bump(urgency: str) -> str:
    index = URGENCY_LEVELS.index(urgency)
    return URGENCY_LEVELS[min(index + 1, len(URGENCY_LEVELS) - 1)]


@dataclass
class ValidationResult:
    valid: bool
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


@dataclass
class DuplicateCheck:
    has_duplicate: bool
    duplicate_id: str | None = None
    match_confidence: str = "low"


@dataclass
class ConversionResult:
    success: bool = False
    contact_id: str | None = None
    buyer_requirement_id: str | None = None
    rent_requirement_id: str | None = None
    property_id: str | None = None
    investor_id: str | None = None
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    duplicate_check: DuplicateCheck | None = None

    def routing(self) -> dict:
        return {
            "contact_id": self.contact_id,
            "buyer_requirement_id": self.buyer_requirement_id,
            "rent_requirement_id": self.rent_requirement_id,
            "property_id": self.property_id,
            "investor_id": self.investor_id,
        }


@dataclass
class ConversionPreview:
    lead: Lead
    will_create: dict[str, bool]
    validation: ValidationResult
    duplicate_check: DuplicateCheck


def validate(lead: Lead) -> ValidationResult:
    """Hard errors block conversion; warnings are data-quality hints."""
    errors = []
    warnings = []
    details = lead.details or {}

    if lead.status == "converted" or lead.routed_to:
        errors.append("Lead has already been converted")
    if lead.status == "lost":
        errors.append("Cannot convert a lost lead")
    if lead.status == "archived":
        errors.append("Cannot convert an archived lead")
    if not lead.name or len(lead.name.strip()) < 2:
        errors.append("Lead name is required")
    if not lead.phone:
        errors.append("Lead phone number is required")

    if not lead.phone_verified:
        warnings.append("Phone number is not verified")
    if not lead.email:
        warnings.append("No email address provided")
    if lead.intent == "unknown":
        warnings.append("Lead intent is unknown - will create contact only")
    if lead.qualification_score < 40:
        warnings.append("Lead has low qualification score - consider re-qualifying")

    if lead.intent == "buying" and not details.get("budget_min") and not details.get("budget_max"):
        warnings.append("No budget information for buyer")
    if lead.intent == "selling" and not details.get("property_address"):
        warnings.append("No property address for seller")
    if lead.intent == "renting" and not details.get("monthly_budget"):
        warnings.append("No budget information for renter")
    if lead.intent == "leasing-out" and not details.get("rental_property_address"):
        warnings.append("No property address for landlord")

    return ValidationResult(valid=not errors, errors=errors, warnings=warnings)


def _names_overlap(lead_name: str, contact_name: str) -> bool:
    lead_name = lead_name.lower().strip()
    contact_name = (contact_name or "").lower().strip()
    if not lead_name or not contact_name:
        return False
    if lead_name == contact_name:
        return True
    lead_words = lead_name.split()
    contact_words = contact_name.split()
    matching = [w for w in lead_words if any(c in w or w in c for c in contact_words)]
    return len(matching) >= len(lead_words) * 0.5


def find_duplicate(lead: Lead, contacts: list[dict]) -> DuplicateCheck:
    """Phone (either number, either side) or email match is high confidence;
    at least half the name words overlapping is medium."""
    lead_phones = {p for p in (lead.phone, lead.alternate_phone) if p}
    for contact in contacts:
        contact_phones = {p for p in (contact.get("phone"), contact.get("alternate_phone")) if p}
        if lead_phones & contact_phones:
            return DuplicateCheck(True, str(contact["id"]), "high")

    if lead.email:
        email = lead.email.lower()
        for contact in contacts:
            if (contact.get("email") or "").lower() == email:
                return DuplicateCheck(True, str(contact["id"]), "high")

    for contact in contacts:
        if _names_overlap(lead.name, contact.get("name")):
            return DuplicateCheck(True, str(contact["id"]), "medium")

    return DuplicateCheck(False, None, "low")


def will_create(intent: str) -> dict[str, bool]:
    return {
        "contact": True,
        "buyer_requirement": intent in ("buying", "investing"),
        "rent_requirement": intent == "renting",
        "property": intent in ("selling", "leasing-out"),
        "investor": intent == "investing",
    }


class ConversionEngine:
    def __init__(self, lead_service, backoffice, notifier=None, clock: Clock = utcnow):
        self.lead_service = lead_service
        self.backoffice = backoffice
        self.notifier = notifier
        self.clock = clock

    def validate(self, lead: Lead) -> ValidationResult:
        return validate(lead)

    def check_duplicate_contact(self, lead: Lead) -> DuplicateCheck:
        """Advisory only. A failing contact store means no duplicate found."""
        try:
            contacts = self.backoffice.list_contacts()
        except BackOfficeError as e:
            logger.warning("duplicate_check_failed", lead_id=str(lead.id), error=str(e))
            return DuplicateCheck(False, None, "low")
        return find_duplicate(lead, contacts)

    def preview(self, lead_id) -> ConversionPreview:
        lead = self.lead_service.get(lead_id)
        return ConversionPreview(
            lead=lead,
            will_create=will_create(lead.intent),
            validation=validate(lead),
            duplicate_check=self.check_duplicate_contact(lead),
        )

    def convert(self, lead_id, actor_id: str, actor_name: str, additional_notes: str | None = None) -> ConversionResult:
        lead = self.lead_service.get(lead_id)
        log = logger.bind(lead_id=str(lead.id), intent=lead.intent)

        validation = validate(lead)
        if not validation.valid:
            log.info("lead_conversion_rejected", errors=validation.errors)
            CONVERSIONS.labels(intent=lead.intent, outcome="rejected").inc()
            return ConversionResult(success=False, errors=validation.errors, warnings=validation.warnings)

        result = ConversionResult(warnings=list(validation.warnings))
        result.duplicate_check = self.check_duplicate_contact(lead)
        if result.duplicate_check.has_duplicate:
            result.warnings.append(
                f"Possible duplicate contact {result.duplicate_check.duplicate_id} "
                f"({result.duplicate_check.match_confidence} confidence)"
            )

        now = self.clock()
        try:
            contact = self.backoffice.create_contact(self._contact_payload(lead, now))
            result.contact_id = str(contact["id"])
        except BackOfficeError as e:
            log.error("contact_creation_failed", error=str(e))
            CONVERSIONS.labels(intent=lead.intent, outcome="failed").inc()
            result.errors.append("Failed to create contact")
            return result
        log.info("contact_created_from_lead", contact_id=result.contact_id)

        try:
            self._create_intent_records(lead, result)
        except BackOfficeError as e:
            log.error("intent_entity_creation_failed", error=str(e))
            result.errors.append(f"Failed to create {lead.intent} entity")
            result.warnings.append("Contact was created but additional entities failed")

        summary = self._summary_note(result, additional_notes)
        try:
            self.lead_service.record_conversion(
                lead.id, result.routing(), actor_id=actor_id, actor_name=actor_name, summary=summary,
            )
        except (LeadStateError, LeadConflictError) as e:
            # Lead changed underneath us; downstream records exist and are reported back
            log.error("lead_conversion_record_failed", error=str(e))
            CONVERSIONS.labels(intent=lead.intent, outcome="failed").inc()
            result.errors.append(str(e))
            return result

        result.success = True
        CONVERSIONS.labels(intent=lead.intent, outcome="converted").inc()
        log.info("lead_conversion_completed", contact_id=result.contact_id, errors=len(result.errors))

        if self.notifier:
            created = [name for name, value in result.routing().items() if value and name != "contact_id"]
            self.notifier.notify(
                "success", "Lead converted",
                format_conversion_message(lead.name, result.contact_id, created),
                lead_id=str(lead.id), agent=actor_name or None,
            )
        return result

    # ------------------------------------------------------------------
    # Payloads
    # ------------------------------------------------------------------

    def _create_intent_records(self, lead: Lead, result: ConversionResult) -> None:
        if lead.intent == "buying":
            record = self.backoffice.create_buyer_requirement(self._buyer_requirement_payload(lead, result.contact_id))
            result.buyer_requirement_id = str(record["id"])
        elif lead.intent == "renting":
            record = self.backoffice.create_rent_requirement(self._rent_requirement_payload(lead, result.contact_id))
            result.rent_requirement_id = str(record["id"])
        elif lead.intent == "selling":
            record = self.backoffice.create_property(self._property_payload(lead, result.contact_id, "for-sale"))
            result.property_id = str(record["id"])
        elif lead.intent == "leasing-out":
            record = self.backoffice.create_property(self._property_payload(lead, result.contact_id, "for-rent"))
            result.property_id = str(record["id"])
        elif lead.intent == "investing":
            investor = self.backoffice.create_investor(
                self._investor_payload(lead, result.contact_id), lead.agent_id, lead.agent_name,
            )
            result.investor_id = str(investor["id"])
            record = self.backoffice.create_buyer_requirement(
                self._investor_requirement_payload(lead, result.contact_id, result.investor_id)
            )
            result.buyer_requirement_id = str(record["id"])
        else:
            result.warnings.append("Lead converted to contact only - intent was unknown")

    @staticmethod
    def _lead_summary(lead: Lead) -> str:
        lines = [
            "=== Lead Information ===",
            f"Intent: {lead.intent}",
            f"Timeline: {lead.timeline}",
            f"Source: {lead.source}",
        ]
        if lead.source_details:
            lines.append(f"Source Details: {lead.source_details}")
        if lead.referred_by:
            lines.append(f"Referred by: {lead.referred_by}")
        lines.append(f"Qualification Score: {lead.qualification_score}/100")
        text = "\n".join(lines)
        if lead.initial_message:
            text += f"\n\n=== Initial Message ===\n{lead.initial_message}"
        if lead.notes:
            text += f"\n\n=== Qualification Notes ===\n{lead.notes}"
        return text

    def _contact_payload(self, lead: Lead, now) -> dict:
        return {
            "name": lead.name,
            "phone": lead.phone,
            "email": lead.email,
            "alternate_phone": lead.alternate_phone,
            "type": CONTACT_TYPES.get(lead.intent, "prospect"),
            "category": CONTACT_CATEGORIES.get(lead.intent, "other"),
            "status": "active",
            "source": lead.source,
            "agent_id": lead.agent_id,
            "agent_name": lead.agent_name,
            "tags": [],
            "notes": f"Converted from lead {lead.id} on {now.date().isoformat()}\n\n{self._lead_summary(lead)}",
            "lead_id": str(lead.id),
            "converted_from_lead": True,
            "lead_source": lead.source,
            "lead_initial_intent": lead.intent,
            "lead_qualification_score": lead.qualification_score,
            "lead_converted_at": now.isoformat(),
            "created_by": lead.created_by,
        }

    @staticmethod
    def _requirement_notes(lead: Lead) -> str:
        text = f"Created from lead {lead.id}\n\nLead Source: {lead.source}\nTimeline: {lead.timeline}\n" \
               f"Qualification Score: {lead.qualification_score}/100"
        if lead.notes:
            text += f"\n\nQualification Notes:\n{lead.notes}"
        if lead.initial_message:
            text += f"\n\nInitial Message:\n{lead.initial_message}"
        return text

    def _buyer_requirement_payload(self, lead: Lead, contact_id: str) -> dict:
        details = lead.details or {}
        return {
            "buyer_id": contact_id,
            "buyer_name": lead.name,
            "buyer_contact": lead.phone,
            "agent_id": lead.agent_id,
            "agent_name": lead.agent_name,
            "min_budget": details.get("budget_min") or 0,
            "max_budget": details.get("budget_max") or 0,
            "property_types": details.get("property_types") or [],
            "min_bedrooms": details.get("bedrooms") or 1,
            "max_bedrooms": details.get("bedrooms"),
            "min_bathrooms": details.get("bathrooms"),
            "preferred_locations": details.get("preferred_areas") or [],
            "must_have_features": details.get("must_have_features") or [],
            "nice_to_have_features": [],
            "urgency": urgency_for(lead.timeline),
            "pre_approved": False,
            "lead_id": str(lead.id),
            "additional_notes": self._requirement_notes(lead),
        }

    def _rent_requirement_payload(self, lead: Lead, contact_id: str) -> dict:
        details = lead.details or {}
        return {
            "contact_id": contact_id,
            "lead_id": str(lead.id),
            "created_from_lead": True,
            "monthly_budget": details.get("monthly_budget"),
            "preferred_areas": details.get("preferred_areas") or [],
            "property_types": details.get("property_types") or [],
            "bedrooms": details.get("bedrooms"),
            "bathrooms": details.get("bathrooms"),
            "must_have_features": details.get("must_have_features") or [],
            "lease_duration": details.get("lease_duration"),
            "move_in_date": details.get("move_in_date"),
            "timeline": lead.timeline,
            "urgency": urgency_for(lead.timeline),
            "status": "active",
            "notes": self._requirement_notes(lead),
            "created_by": lead.created_by,
        }

    def _property_payload(self, lead: Lead, contact_id: str, listing_type: str) -> dict:
        details = lead.details or {}
        for_sale = listing_type == "for-sale"
        description = "Listed from lead conversion"
        if details.get("reason_for_selling"):
            description += f"\n\nReason for selling: {details['reason_for_selling']}"
        if lead.notes:
            description += f"\n\nNotes:\n{lead.notes}"
        if lead.initial_message:
            description += f"\n\nInitial Message:\n{lead.initial_message}"
        return {
            "title": f"Property from {lead.name}",
            "address": details.get("property_address") if for_sale else details.get("rental_property_address"),
            "property_type": details.get("property_type") or "house",
            "price": details.get("expected_price") if for_sale else details.get("expected_rent"),
            "area": details.get("property_area"),
            "area_unit": details.get("property_area_unit") or "sqft",
            "listing_type": listing_type,
            "status": "available",
            "current_owner_id": contact_id,
            "listing_source": {"lead_id": str(lead.id), "contact_id": contact_id},
            "description": description,
            "created_by": lead.created_by,
        }

    def _investor_payload(self, lead: Lead, contact_id: str) -> dict:
        details = lead.details or {}
        capacity = details.get("investment_budget")
        return {
            "contact_id": contact_id,
            "name": lead.name,
            "email": lead.email,
            "phone": lead.phone,
            "investor_type": details.get("investor_type") or "individual",
            "risk_profile": details.get("risk_tolerance") or "moderate",
            "investment_type": details.get("investment_type"),
            "preferred_property_types": details.get("property_types") or [],
            "preferred_locations": details.get("preferred_areas") or [],
            "total_investment_capacity": capacity,
            "minimum_investment_amount": capacity * 0.1 if capacity else None,
            "maximum_investment_amount": capacity,
            "managing_agent_id": lead.agent_id,
            "managing_agent_name": lead.agent_name,
            "relationship_status": "active",
            "status": "active",
            "lead_id": str(lead.id),
            "notes": self._requirement_notes(lead),
        }

    def _investor_requirement_payload(self, lead: Lead, contact_id: str, investor_id: str) -> dict:
        details = lead.details or {}
        capacity = details.get("investment_budget")
        return {
            "buyer_id": contact_id,
            "buyer_name": lead.name,
            "buyer_contact": lead.phone,
            "agent_id": lead.agent_id,
            "agent_name": lead.agent_name,
            "min_budget": capacity * 0.5 if capacity else 0,
            "max_budget": capacity or 0,
            "property_types": details.get("property_types") or [],
            "min_bedrooms": 1,
            "preferred_locations": details.get("preferred_areas") or [],
            "must_have_features": [],
            "nice_to_have_features": [],
            "urgency": _bump(urgency_for(lead.timeline)),
            "pre_approved": True,
            "financing_type": "cash",
            "investor_id": investor_id,
            "lead_id": str(lead.id),
            "additional_notes": f"INVESTOR REQUIREMENT\nInvestor ID: {investor_id}\n\n{self._requirement_notes(lead)}",
        }

    @staticmethod
    def _summary_note(result: ConversionResult, additional_notes: str | None) -> str:
        parts = [f"Contact {result.contact_id}"]
        labels = (
            ("buyer_requirement_id", "Buyer Requirement"),
            ("rent_requirement_id", "Rent Requirement"),
            ("property_id", "Property"),
            ("investor_id", "Investor"),
        )
        for attr, label in labels:
            value = getattr(result, attr)
            if value:
                parts.append(f"{label} {value}")
        text = "Lead converted successfully. Converted to: " + ", ".join(parts)
        if additional_notes:
            text += f"\n\n{additional_notes}"
        return text
