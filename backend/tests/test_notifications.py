"""Tests for notification delivery and Slack formatting."""

import httpx
from unittest.mock import patch

from leadflow.services.notifications import Notifier, format_conversion_message, format_notification

WEBHOOK = "https://hooks.slack.test/services/T000/B000"


class TestNotifier:
    @patch("leadflow.services.notifications.httpx.Client")
    def test_posts_to_slack(self, client_cls):
        client = client_cls.return_value.__enter__.return_value
        Notifier(WEBHOOK, background=False).notify(
            "warning", "SLA breach", "Ali Raza has not been contacted", lead_id="l-1", agent=None,
        )

        client.post.assert_called_once()
        url = client.post.call_args.args[0]
        payload = client.post.call_args.kwargs["json"]
        assert url == WEBHOOK
        assert payload["text"] == ":warning: SLA breach: Ali Raza has not been contacted"
        assert payload["blocks"][0]["text"]["text"] == "SLA breach"
        assert payload["blocks"][2]["fields"] == [{"type": "mrkdwn", "text": "*Lead Id:* l-1"}]

    @patch("leadflow.services.notifications.httpx.Client")
    def test_no_webhook_only_logs(self, client_cls):
        Notifier("", background=False).notify("info", "High-priority lead", "Ali scored 80")
        client_cls.assert_not_called()

    @patch("leadflow.services.notifications.httpx.Client")
    def test_delivery_failure_is_swallowed(self, client_cls):
        client = client_cls.return_value.__enter__.return_value
        client.post.side_effect = httpx.ConnectError("refused")
        Notifier(WEBHOOK, background=False).notify("error", "Report failed", "Weekly pipeline")
        client.post.assert_called_once()


class TestFormatting:
    def test_context_fields_omitted_when_empty(self):
        text, blocks = format_notification("info", "Lead converted", "done", {})
        assert text == ":information_source: Lead converted: done"
        assert len(blocks) == 2

    def test_conversion_message(self):
        assert format_conversion_message("Ali", "c-1", ["property"]) == "Lead Ali converted to contact c-1 with property"
        assert format_conversion_message("Ali", "c-1", []) == "Lead Ali converted to contact c-1"
