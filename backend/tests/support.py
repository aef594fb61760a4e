"""Shared fakes for the test suite: an in-memory database, a settable clock
and an in-memory back office."""

import itertools
from datetime import datetime

from sqlalchemy.pool import StaticPool

from leadflow.config import Settings
from leadflow.database import Base, create_session_factory
from leadflow.exceptions import BackOfficeError
from leadflow.services.leads import LeadService
from leadflow.services.lead_settings import LeadSettingsStore

T0 = datetime(2025, 3, 1, 9, 0, 0)

VALID_LEAD = {
    "name": "Ali Raza",
    "phone": "03001234567",
    "source": "other",
    "intent": "unknown",
    "timeline": "unknown",
}


class FakeClock:
    def __init__(self, now: datetime = T0):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


def make_session_factory():
    factory = create_session_factory(
        "sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool,
    )
    Base.metadata.create_all(factory.kw["bind"])
    return factory


def make_service(clock=None, **config_overrides):
    """Build a LeadService over a fresh in-memory database."""
    clock = clock or FakeClock()
    config = Settings(**{"lead_settings_file": "", "auto_assign_enabled": False, **config_overrides})
    session_factory = make_session_factory()
    settings_store = LeadSettingsStore(session_factory, config)
    service = LeadService(session_factory, settings_store, clock=clock, phone_pattern=config.phone_pattern)
    return service, clock


class FakeBackOffice:
    """In-memory contacts/requirements/properties/investors plus a report engine.

    ``fail`` holds method names that should raise ``BackOfficeError``.
    """

    def __init__(self):
        self.contacts: list[dict] = []
        self.buyer_requirements: list[dict] = []
        self.rent_requirements: list[dict] = []
        self.properties: list[dict] = []
        self.investors: list[dict] = []
        self.reports: list[dict] = []
        self.report_updates: list[tuple[str, dict]] = []
        self.history: list[dict] = []
        self.failed_reports: list[dict] = []
        self.generated: list[dict] = []
        self.fail: set[str] = set()
        self._ids = itertools.count(1)

    def _check(self, name: str) -> None:
        if name in self.fail:
            raise BackOfficeError(f"{name} failed")

    def _store(self, bucket: list, prefix: str, data: dict) -> dict:
        record = {**data, "id": f"{prefix}-{next(self._ids)}"}
        bucket.append(record)
        return record

    # contacts
    def create_contact(self, data: dict) -> dict:
        self._check("create_contact")
        return self._store(self.contacts, "contact", data)

    def list_contacts(self) -> list[dict]:
        self._check("list_contacts")
        return list(self.contacts)

    def update_contact(self, contact_id: str, patch: dict) -> dict:
        self._check("update_contact")
        for contact in self.contacts:
            if contact["id"] == contact_id:
                contact.update(patch)
                return contact
        raise BackOfficeError(f"contact {contact_id} not found")

    def delete_contact(self, contact_id: str) -> None:
        self._check("delete_contact")
        self.contacts = [c for c in self.contacts if c["id"] != contact_id]

    # intent records
    def create_buyer_requirement(self, data: dict) -> dict:
        self._check("create_buyer_requirement")
        return self._store(self.buyer_requirements, "buyer-req", data)

    def create_rent_requirement(self, data: dict) -> dict:
        self._check("create_rent_requirement")
        return self._store(self.rent_requirements, "rent-req", data)

    def create_property(self, data: dict) -> dict:
        self._check("create_property")
        return self._store(self.properties, "property", data)

    def create_investor(self, data: dict, actor_id: str, actor_name: str) -> dict:
        self._check("create_investor")
        return self._store(self.investors, "investor", {**data, "created_by": actor_id})

    # reports
    def get_custom_reports(self) -> list[dict]:
        self._check("get_custom_reports")
        return [dict(r) for r in self.reports]

    def generate_report(self, config: dict, actor_id: str, role: str) -> dict:
        self._check("generate_report")
        report = {"id": f"generated-{next(self._ids)}", "config": config}
        self.generated.append(report)
        return report

    def update_custom_report(self, report_id: str, patch: dict) -> dict:
        self._check("update_custom_report")
        self.report_updates.append((report_id, patch))
        for report in self.reports:
            if report["id"] == report_id:
                report.update(patch)
                return report
        raise BackOfficeError(f"report {report_id} not found")

    def add_report_history(self, report: dict, trigger: str, duration_ms: int) -> None:
        self.history.append({"report": report, "trigger": trigger})

    def record_failed_report(self, report_id: str, name: str, actor: str, trigger: str, error: str) -> None:
        self.failed_reports.append({"report_id": report_id, "error": error})
