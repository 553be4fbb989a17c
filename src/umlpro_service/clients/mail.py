"""Transactional mail through the Resend HTTP API."""

from __future__ import annotations

from typing import Any
from urllib.parse import quote

import httpx
import structlog

from umlpro_service.errors import ExternalServiceError
from umlpro_service.settings import settings

log = structlog.get_logger(__name__)


class Mailer:
    """Sends account and invitation notifications.

    Every ``send_*`` call either succeeds or raises ExternalServiceError.
    No delivery guarantee is assumed beyond that.
    """

    def __init__(
        self,
        api_key: str | None = None,
        api_url: str | None = None,
        sender: str | None = None,
        app_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._api_key = api_key if api_key is not None else settings.resend_api_key
        self._api_url = (api_url or settings.resend_api_url).rstrip("/")
        self._sender = sender or settings.mail_from
        self._app_url = (app_url or settings.app_url).rstrip("/")
        self._timeout = timeout or settings.external_timeout_seconds
        self._transport = transport

    async def send_email(self, to: str, subject: str, html: str, text: str) -> dict[str, Any]:
        if not self._api_key:
            raise ExternalServiceError("RESEND_API_KEY is not configured")

        payload = {
            "from": self._sender,
            "to": [to],
            "subject": subject,
            "html": html,
            "text": text,
        }
        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                resp = await client.post(
                    f"{self._api_url}/emails",
                    json=payload,
                    headers={"Authorization": f"Bearer {self._api_key}"},
                )
        except httpx.HTTPError as exc:
            raise ExternalServiceError(f"Mail transport error: {exc}") from exc

        if resp.is_error:
            raise ExternalServiceError(f"Resend error: {resp.status_code} {resp.text}")

        log.info("mail_sent", subject=subject)
        return resp.json()

    async def send_team_invite(self, email: str, team_name: str, token: str) -> dict[str, Any]:
        accept_link = f"{self._app_url}/invite/accept?token={quote(token, safe='')}"
        subject = f"You're invited to join {team_name}"
        text = "\n".join(
            [
                f"You've been invited to join {team_name}.",
                "",
                f"Accept invite: {accept_link}",
                "",
                "If you don't have an account, sign up first.",
            ]
        )
        html = (
            '<div style="font-family: Arial, sans-serif; line-height: 1.6;">'
            f"<h2>You're invited to join {team_name}</h2>"
            "<p>Use the link below to accept your invite:</p>"
            f'<p><a href="{accept_link}">Accept invite</a></p>'
            "<p>If you don't have an account, sign up first.</p>"
            "</div>"
        )
        return await self.send_email(to=email, subject=subject, html=html, text=text)

    async def send_email_changed(
        self, to: str, old_email: str, context: str = "account settings"
    ) -> dict[str, Any]:
        subject = "Your email address was changed"
        text = (
            f"The email address on your account was changed from {old_email} to {to} "
            f"via {context}. If this wasn't you, contact support immediately."
        )
        html = f"<p>{text}</p>"
        return await self.send_email(to=to, subject=subject, html=html, text=text)

    async def send_username_changed(self, email: str, username: str) -> dict[str, Any]:
        subject = "Your username was changed"
        text = f"Your username is now {username}. If this wasn't you, contact support."
        return await self.send_email(to=email, subject=subject, html=f"<p>{text}</p>", text=text)

    async def send_password_changed(self, email: str) -> dict[str, Any]:
        subject = "Your password was changed"
        text = "The password on your account was just changed. If this wasn't you, reset it now."
        return await self.send_email(to=email, subject=subject, html=f"<p>{text}</p>", text=text)
