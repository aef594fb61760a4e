"""Notification service - Slack webhook + internal logging.

Notifications are fire-and-forget: a failed delivery is logged and never
propagates to the lifecycle operation that triggered it.
"""

import threading

import httpx
import structlog

logger = structlog.get_logger()

LEVEL_EMOJI = {"info": ":information_source:", "success": ":white_check_mark:", "warning": ":warning:", "error": ":x:"}


def send_slack_notification(
    webhook_url: str,
    text: str,
    blocks: list | None = None,
    timeout: float = 10.0,
) -> bool:
    """Send a notification via Slack incoming webhook."""
    if not webhook_url:
        logger.info("slack_notification_skipped_no_webhook")
        return False

    payload: dict = {"text": text}
    if blocks:
        payload["blocks"] = blocks

    try:
        with httpx.Client(timeout=timeout) as client:
            resp = client.post(webhook_url, json=payload)
            resp.raise_for_status()
        logger.info("slack_notification_sent", text=text[:100])
        return True
    except httpx.HTTPError as e:
        logger.error("slack_notification_failed", error=str(e))
        return False


class Notifier:
    """Logs every notification and mirrors it to Slack when a webhook is set."""

    def __init__(self, webhook_url: str = "", timeout: float = 10.0, background: bool = True):
        self.webhook_url = webhook_url
        self.timeout = timeout
        self.background = background

    def notify(self, level: str, title: str, message: str, **context) -> None:
        log = logger.warning if level in ("warning", "error") else logger.info
        log("notification", level=level, title=title, message=message, **context)

        if not self.webhook_url:
            return
        text, blocks = format_notification(level, title, message, context)
        if self.background:
            thread = threading.Thread(
                target=send_slack_notification,
                args=(self.webhook_url, text, blocks, self.timeout),
                daemon=True,
            )
            thread.start()
        else:
            send_slack_notification(self.webhook_url, text, blocks, self.timeout)


def format_notification(level: str, title: str, message: str, context: dict) -> tuple[str, list]:
    """Format a generic notification for Slack."""
    text = f"{LEVEL_EMOJI.get(level, '')} {title}: {message}".strip()
    blocks = [
        {
            "type": "header",
            "text": {"type": "plain_text", "text": title}
        },
        {
            "type": "section",
            "text": {"type": "mrkdwn", "text": message}
        },
    ]
    fields = [
        {"type": "mrkdwn", "text": f"*{key.replace('_', ' ').title()}:* {value}"}
        for key, value in context.items()
        if value is not None
    ]
    if fields:
        blocks.append({"type": "section", "fields": fields[:10]})
    return text, blocks


def format_conversion_message(lead_name: str, contact_id: str, created: list[str]) -> str:
    extras = f" with {', '.join(created)}" if created else ""
    return f"Lead {lead_name} converted to contact {contact_id}{extras}"
