"""Back-office adapter - contacts, requirements, properties, investors and reports.

The lead engine does not own these records. It talks to them through the
narrow protocols below; ``BackOfficeClient`` implements all of them against
the back-office REST API.
"""

from typing import Protocol

import httpx
import structlog

from leadflow.exceptions import BackOfficeError

logger = structlog.get_logger()


class ContactStore(Protocol):
    def create_contact(self, data: dict) -> dict: ...
    def list_contacts(self) -> list[dict]: ...
    def update_contact(self, contact_id: str, patch: dict) -> dict: ...
    def delete_contact(self, contact_id: str) -> None: ...


class RequirementStore(Protocol):
    def create_buyer_requirement(self, data: dict) -> dict: ...
    def create_rent_requirement(self, data: dict) -> dict: ...


class PropertyStore(Protocol):
    def create_property(self, data: dict) -> dict: ...


class InvestorStore(Protocol):
    def create_investor(self, data: dict, actor_id: str, actor_name: str) -> dict: ...


class ReportEngine(Protocol):
    def get_custom_reports(self) -> list[dict]: ...
    def generate_report(self, config: dict, actor_id: str, role: str) -> dict: ...
    def update_custom_report(self, report_id: str, patch: dict) -> dict: ...
    def add_report_history(self, report: dict, trigger: str, duration_ms: int) -> None: ...
    def record_failed_report(self, report_id: str, name: str, actor: str, trigger: str, error: str) -> None: ...


class BackOffice(ContactStore, RequirementStore, PropertyStore, InvestorStore, Protocol):
    """Everything the conversion engine needs."""


class BackOfficeClient:
    """HTTP implementation of the back-office protocols."""

    def __init__(
        self,
        base_url: str,
        api_key: str = "",
        timeout: float = 10.0,
        transport: httpx.BaseTransport | None = None,
    ):
        headers = {"Content-Type": "application/json"}
        if api_key:
            headers["Authorization"] = f"Bearer {api_key}"
        self._client = httpx.Client(
            base_url=base_url.rstrip("/"), headers=headers, timeout=timeout, transport=transport
        )

    def close(self) -> None:
        self._client.close()

    def _request(self, method: str, path: str, **kwargs):
        try:
            resp = self._client.request(method, path, **kwargs)
            resp.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.error("backoffice_request_failed", method=method, path=path, status=e.response.status_code)
            raise BackOfficeError(f"{method} {path} returned {e.response.status_code}") from e
        except httpx.HTTPError as e:
            logger.error("backoffice_request_failed", method=method, path=path, error=str(e))
            raise BackOfficeError(f"{method} {path} failed: {e}") from e
        if resp.status_code == 204 or not resp.content:
            return None
        try:
            return resp.json()
        except ValueError as e:
            logger.error("backoffice_invalid_response", method=method, path=path, status=resp.status_code)
            raise BackOfficeError(f"{method} {path} returned a non-JSON body") from e

    def _create(self, path: str, data: dict) -> dict:
        result = self._request("POST", path, json=data)
        if not isinstance(result, dict) or not result.get("id"):
            raise BackOfficeError(f"POST {path} returned no id")
        logger.info("backoffice_record_created", path=path, record_id=result["id"])
        return result

    # Contacts
    def create_contact(self, data: dict) -> dict:
        return self._create("/contacts", data)

    def list_contacts(self) -> list[dict]:
        return self._request("GET", "/contacts") or []

    def update_contact(self, contact_id: str, patch: dict) -> dict:
        return self._request("PATCH", f"/contacts/{contact_id}", json=patch)

    def delete_contact(self, contact_id: str) -> None:
        self._request("DELETE", f"/contacts/{contact_id}")

    # Requirements, properties, investors
    def create_buyer_requirement(self, data: dict) -> dict:
        return self._create("/buyer-requirements", data)

    def create_rent_requirement(self, data: dict) -> dict:
        return self._create("/rent-requirements", data)

    def create_property(self, data: dict) -> dict:
        return self._create("/properties", data)

    def create_investor(self, data: dict, actor_id: str, actor_name: str) -> dict:
        return self._create("/investors", {**data, "created_by": actor_id, "created_by_name": actor_name})

    # Reports
    def get_custom_reports(self) -> list[dict]:
        return self._request("GET", "/reports/custom") or []

    def generate_report(self, config: dict, actor_id: str, role: str) -> dict:
        return self._request("POST", "/reports/generate", json={"config": config, "user_id": actor_id, "role": role})

    def update_custom_report(self, report_id: str, patch: dict) -> dict:
        return self._request("PATCH", f"/reports/custom/{report_id}", json=patch)

    def add_report_history(self, report: dict, trigger: str, duration_ms: int) -> None:
        self._request("POST", "/reports/history", json={
            "report": report, "trigger": trigger, "duration_ms": duration_ms,
        })

    def record_failed_report(self, report_id: str, name: str, actor: str, trigger: str, error: str) -> None:
        self._request("POST", "/reports/history/failed", json={
            "report_id": report_id, "name": name, "actor": actor, "trigger": trigger, "error": error,
        })
