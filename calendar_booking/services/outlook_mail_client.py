import logging
from typing import Any

from calendar_booking.services.errors import MailError, ProviderUnavailable
from calendar_booking.services.graph_api_client import GraphApiClient
from calendar_booking.services.providers import MailProvider

logger = logging.getLogger(__name__)


class OutlookMailClient(MailProvider):
    def __init__(self, graph: GraphApiClient) -> None:
        self.graph = graph

    def send_mail(self, message: dict[str, Any]) -> None:
        try:
            self.graph.post_json(
                f"{self.graph.account_path}/sendMail",
                {"message": message, "saveToSentItems": True},
            )
        except ProviderUnavailable as exc:
            raise MailError(f"Failed to send email: {exc.message}", details=exc.details) from exc
        logger.info("Mail sent recipients=%d", len(message.get("toRecipients", [])))


def build_html_message(
    *,
    subject: str,
    html_content: str,
    to_email: str,
    to_name: str | None = None,
) -> dict[str, Any]:
    return {
        "subject": subject,
        "body": {"contentType": "html", "content": html_content},
        "toRecipients": [
            {
                "emailAddress": {
                    "address": to_email,
                    "name": (to_name or "").strip() or to_email,
                },
            },
        ],
    }
