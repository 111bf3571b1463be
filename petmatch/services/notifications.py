# petmatch/services/notifications.py
"""
Push delivery for match alerts.

Delivery is fire-and-forget from the scanner's point of view: every outcome
comes back as a DeliveryResult, nothing is raised for a missing user, a
missing device token or a failed transport.
"""
import asyncio
import logging
from dataclasses import dataclass
from typing import Optional

import httpx

logger = logging.getLogger(__name__)

NOT_FOUND = "not_found"
TRANSPORT_ERROR = "transport_error"


@dataclass(frozen=True)
class DeliveryResult:
    ok: bool
    delivery_id: Optional[str] = None
    error: Optional[str] = None
    detail: str = ""

    @classmethod
    def delivered(cls, delivery_id: str) -> "DeliveryResult":
        return cls(ok=True, delivery_id=delivery_id)

    @classmethod
    def failed(cls, error: str, detail: str = "") -> "DeliveryResult":
        return cls(ok=False, error=error, detail=detail)


async def _device_token(repo, user_id: str):
    user = await repo.get_user(user_id)
    if not user:
        return None, DeliveryResult.failed(NOT_FOUND, f"user {user_id} not found")
    token = user.get("fcm_token")
    if not token:
        return None, DeliveryResult.failed(NOT_FOUND, f"no device token for user {user_id}")
    return token, None


class LoggingGateway:
    """Used when no push project is configured: resolve the device, log the message."""

    def __init__(self, repo):
        self.repo = repo

    async def send(self, user_id: str, title: str, body: str, context_id: Optional[str] = None) -> DeliveryResult:
        token, miss = await _device_token(self.repo, user_id)
        if miss:
            logger.warning("Notification skipped: %s", miss.detail)
            return miss
        logger.info("[PUSH SINK] user=%s title=%r body=%r context=%s", user_id, title, body, context_id)
        return DeliveryResult.delivered(f"log:{user_id}:{context_id or ''}")


class PushGateway:
    """Firebase Cloud Messaging (HTTP v1) over httpx, with bounded retry."""

    def __init__(self, repo, project_id: str, access_token: str,
                 endpoint: str = "https://fcm.googleapis.com", max_attempts: int = 3,
                 timeout: float = 10.0, transport: Optional[httpx.AsyncBaseTransport] = None,
                 sleep=asyncio.sleep):
        self.repo = repo
        self.url = f"{endpoint.rstrip('/')}/v1/projects/{project_id}/messages:send"
        self.access_token = access_token
        self.max_attempts = max(1, max_attempts)
        self.timeout = httpx.Timeout(timeout, connect=min(5.0, timeout))
        self.transport = transport
        self._sleep = sleep

    def _payload(self, token: str, title: str, body: str, context_id: Optional[str]) -> dict:
        return {
            "message": {
                "token": token,
                "notification": {"title": title, "body": body},
                "data": {"matchPetId": context_id or ""},
            }
        }

    async def _post(self, payload: dict) -> httpx.Response:
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.access_token}",
        }
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            return await client.post(self.url, json=payload, headers=headers)

    async def send(self, user_id: str, title: str, body: str, context_id: Optional[str] = None) -> DeliveryResult:
        token, miss = await _device_token(self.repo, user_id)
        if miss:
            logger.warning("Notification skipped: %s", miss.detail)
            return miss

        payload = self._payload(token, title, body, context_id)
        detail = ""
        for attempt in range(1, self.max_attempts + 1):
            try:
                r = await self._post(payload)
            except httpx.HTTPError as exc:
                detail = f"{type(exc).__name__}: {exc}"
            else:
                if 200 <= r.status_code < 300:
                    try:
                        delivery_id = (r.json() or {}).get("name", "")
                    except ValueError:
                        delivery_id = ""
                    logger.info("Notification sent to user %s: %s", user_id, delivery_id)
                    return DeliveryResult.delivered(delivery_id)
                detail = f"HTTP {r.status_code}: {r.text[:200]}"
                if r.status_code == 404:
                    # FCM answers 404 UNREGISTERED for stale device tokens
                    logger.warning("Device token for user %s is no longer registered", user_id)
                    return DeliveryResult.failed(NOT_FOUND, detail)
                if 400 <= r.status_code < 500 and r.status_code != 429:
                    break

            if attempt < self.max_attempts:
                await self._sleep(min(60, 2 ** attempt))  # backoff up to 60s

        logger.error("Failed to send notification to user %s: %s", user_id, detail)
        return DeliveryResult.failed(TRANSPORT_ERROR, detail)
