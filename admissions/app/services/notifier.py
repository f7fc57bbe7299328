"""
Outbound message adapter.

Posts a template message to the messaging provider:
    {apiKey, campaignName, destination, userName, templateParams}
Falls back to stub mode when no provider URL is configured.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Protocol, Sequence

import httpx

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NotificationResult:
    success: bool
    error: str | None = None
    raw_response: dict[str, Any] = field(default_factory=dict)


class Notifier(Protocol):
    async def send(
        self,
        template: str,
        destination: str,
        params: Sequence[str],
        user_name: str | None = None,
    ) -> NotificationResult: ...


class HttpNotifier:
    def __init__(self, url: str, api_key: str, timeout: float = 10.0):
        self.url = url
        self.api_key = api_key
        self.timeout = timeout

    async def send(
        self,
        template: str,
        destination: str,
        params: Sequence[str],
        user_name: str | None = None,
    ) -> NotificationResult:
        body: dict[str, Any] = {
            "apiKey": self.api_key,
            "campaignName": template,
            "destination": destination,
            "templateParams": list(params),
        }
        if user_name:
            body["userName"] = user_name

        if not self.url:
            logger.info("Notifier stub: template=%s destination=%s params=%s", template, destination, list(params))
            return NotificationResult(success=True, raw_response={"status": "sent", "stub": True})

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                resp = await client.post(self.url, json=body)
        except httpx.HTTPError as exc:
            logger.warning("Notifier request failed template=%s: %s", template, exc)
            return NotificationResult(success=False, error=f"notifier_unreachable:{exc.__class__.__name__}")

        if resp.status_code not in (200, 201):
            logger.warning("Notifier rejected template=%s status=%s body=%s", template, resp.status_code, resp.text[:300])
            return NotificationResult(success=False, error=f"notifier_api_error:{resp.status_code}")

        try:
            data = resp.json()
        except ValueError:
            data = {"body": resp.text[:300]}
        return NotificationResult(success=True, raw_response=data if isinstance(data, dict) else {"body": data})
