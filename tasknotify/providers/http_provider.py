"""Shared base for providers that deliver through an HTTP gateway."""

import logging
from typing import Any, Dict, Optional

import httpx

from tasknotify.providers.base_provider import NotificationProvider

logger = logging.getLogger(__name__)


class HttpProvider(NotificationProvider):
    """POSTs a JSON payload to a gateway endpoint; non-2xx responses are failures."""

    def __init__(
        self,
        service_endpoint: str,
        timeout: float = 10.0,
        dry_run: bool = True,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        super().__init__(dry_run=dry_run)
        self.service_endpoint = service_endpoint
        self.timeout = timeout
        self.transport = transport

    async def post(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        if self.dry_run:
            logger.info(f"[DRY RUN] {self.channel.value} to {self.service_endpoint}: {payload}")
            return {"success": True, "message_id": f"{self.channel.value}_dry_run", "provider": self.channel.value}

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(self.service_endpoint, json=payload)
                response.raise_for_status()
        except httpx.HTTPStatusError as e:
            return {"success": False, "error": f"{self.channel.value} gateway returned {e.response.status_code}"}
        except httpx.HTTPError as e:
            return {"success": False, "error": f"{self.channel.value} gateway unreachable: {e}"}

        body = response.json() if response.content else {}
        return {
            "success": True,
            "message_id": body.get("id") or body.get("message_id"),
            "provider": self.channel.value,
        }
