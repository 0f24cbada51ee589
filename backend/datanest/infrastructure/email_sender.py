"""Transactional Email — fire-and-forget notifications over an HTTP email API.

Invariants:
    - send() never raises: delivery failures are logged and reported as False
    - Without an API key nothing leaves the process (logged instead)
"""

import logging

import httpx

logger = logging.getLogger(__name__)


class HttpEmailSender:
    """EmailSender posting to a Brevo-compatible /smtp/email endpoint."""

    def __init__(
        self,
        api_url: str,
        api_key: str,
        sender_email: str,
        sender_name: str = "DataNest",
        timeout_seconds: int = 10,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.api_url = api_url
        self.api_key = api_key
        self.sender_email = sender_email
        self.sender_name = sender_name
        self.timeout_seconds = timeout_seconds
        self._transport = transport

    async def send(self, to: str, subject: str, html: str) -> bool:
        if not self.api_key:
            logger.info(f"Email disabled, skipped '{subject}' to {to}")
            return False
        payload = {
            "sender": {"name": self.sender_name, "email": self.sender_email},
            "to": [{"email": to}],
            "subject": subject,
            "htmlContent": html,
        }
        headers = {
            "api-key": self.api_key,
            "accept": "application/json",
            "content-type": "application/json",
        }
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout_seconds, transport=self._transport,
            ) as client:
                response = await client.post(self.api_url, json=payload, headers=headers)
                response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error(f"Email to {to} failed: {e}")
            return False
        logger.info(f"Email '{subject}' sent to {to}")
        return True
