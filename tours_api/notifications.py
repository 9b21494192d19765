"""
Outbound email for account notifications (password reset links).

The auth service only depends on the EmailSender interface. The concrete
HttpEmailSender posts to a transactional email HTTP API (Brevo-compatible
payload) using httpx's async client, so sending does not block the event
loop.

Every failure — missing API key, network error, non-2xx response — is
raised as EmailDeliveryError. The caller decides how to compensate.
"""

import logging

import httpx

from tours_api.config import settings

logger = logging.getLogger(__name__)


class EmailDeliveryError(Exception):
    """Raised when an email could not be handed to the email provider."""


class EmailSender:
    """Interface for anything that can deliver a plain-text email."""

    async def send(self, to_email: str, subject: str, message: str) -> None:
        raise NotImplementedError


class HttpEmailSender(EmailSender):
    """Sends email through a transactional email HTTP API."""

    def __init__(
        self,
        api_url: str,
        api_key: str | None,
        from_name: str,
        from_address: str,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.api_url = api_url
        self.api_key = api_key
        self.from_name = from_name
        self.from_address = from_address
        self.timeout = timeout
        self.transport = transport

    async def send(self, to_email: str, subject: str, message: str) -> None:
        if not self.api_key:
            raise EmailDeliveryError("EMAIL_API_KEY is not set")

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(
                    self.api_url,
                    headers={
                        "api-key": self.api_key,
                        "Content-Type": "application/json",
                    },
                    json={
                        "sender": {"name": self.from_name, "email": self.from_address},
                        "to": [{"email": to_email}],
                        "subject": subject,
                        "textContent": message,
                    },
                )
        except httpx.HTTPError as exc:
            raise EmailDeliveryError(f"Email transport failed: {exc}") from exc

        if response.status_code not in (200, 201, 202):
            raise EmailDeliveryError(
                f"Email provider returned {response.status_code}: {response.text}"
            )
        logger.info("Sent '%s' email", subject)


def build_email_sender() -> EmailSender:
    """Create the sender configured in settings."""
    return HttpEmailSender(
        api_url=settings.EMAIL_API_URL,
        api_key=settings.EMAIL_API_KEY,
        from_name=settings.EMAIL_FROM_NAME,
        from_address=settings.EMAIL_FROM_ADDRESS,
        timeout=settings.EMAIL_TIMEOUT_SECONDS,
    )
