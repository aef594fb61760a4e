"""Tests for the back-office HTTP client."""

import json

import httpx
import pytest

from leadflow.adapters.backoffice import BackOfficeClient
from leadflow.exceptions import BackOfficeError


class TestBackOfficeClient:
    def setup_method(self):
        self.requests = []
        self.responses = {}

        def handler(request: httpx.Request) -> httpx.Response:
            self.requests.append(request)
            key = (request.method, request.url.path)
            status, body = self.responses.get(key, (404, {"detail": "not found"}))
            if body is None:
                return httpx.Response(status)
            if isinstance(body, str):
                return httpx.Response(status, text=body)
            return httpx.Response(status, json=body)

        self.client = BackOfficeClient(
            "http://backoffice.test/api/", api_key="secret", transport=httpx.MockTransport(handler)
        )

    def teardown_method(self):
        self.client.close()

    def test_create_contact(self):
        self.responses[("POST", "/api/contacts")] = (201, {"id": "c-1", "name": "Ali"})
        contact = self.client.create_contact({"name": "Ali"})
        assert contact["id"] == "c-1"

        request = self.requests[0]
        assert request.headers["Authorization"] == "Bearer secret"
        assert json.loads(request.content) == {"name": "Ali"}

    def test_create_without_id_fails(self):
        self.responses[("POST", "/api/properties")] = (200, {"ok": True})
        with pytest.raises(BackOfficeError):
            self.client.create_property({"title": "x"})

    def test_http_error_maps_to_backoffice_error(self):
        self.responses[("POST", "/api/buyer-requirements")] = (500, {"detail": "boom"})
        with pytest.raises(BackOfficeError) as exc:
            self.client.create_buyer_requirement({})
        assert "500" in str(exc.value)

    def test_non_json_body_maps_to_backoffice_error(self):
        self.responses[("POST", "/api/contacts")] = (200, "<html>gateway</html>")
        with pytest.raises(BackOfficeError) as exc:
            self.client.create_contact({"name": "Ali"})
        assert "non-JSON" in str(exc.value)

    def test_transport_error_maps_to_backoffice_error(self):
        def broken(request):
            raise httpx.ConnectError("refused", request=request)

        client = BackOfficeClient("http://backoffice.test/api", transport=httpx.MockTransport(broken))
        with pytest.raises(BackOfficeError):
            client.list_contacts()
        client.close()

    def test_investor_carries_actor(self):
        self.responses[("POST", "/api/investors")] = (201, {"id": "i-1"})
        self.client.create_investor({"name": "Sara"}, "agent-1", "Hamza")
        body = json.loads(self.requests[0].content)
        assert body["created_by"] == "agent-1"
        assert body["created_by_name"] == "Hamza"

    def test_empty_responses(self):
        self.responses[("DELETE", "/api/contacts/c-1")] = (204, None)
        self.responses[("GET", "/api/reports/custom")] = (200, [])
        assert self.client.delete_contact("c-1") is None
        assert self.client.get_custom_reports() == []

    def test_report_history(self):
        self.responses[("POST", "/api/reports/history")] = (201, {"id": "h-1"})
        self.client.add_report_history({"id": "g-1"}, "scheduled", 120)
        body = json.loads(self.requests[0].content)
        assert body == {"report": {"id": "g-1"}, "trigger": "scheduled", "duration_ms": 120}
