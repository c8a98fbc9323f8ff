from __future__ import annotations

import logging
from typing import List, Optional, Sequence, Union

import httpx
from pydantic import BaseModel, Field

from .errors import ResendApiError


class EmailMessage(BaseModel):
    to: List[str]
    subject: str
    html: str
    text: Optional[str] = None
    reply_to: Optional[str] = None
    tags: List[dict[str, str]] = Field(default_factory=list)


class ResendClient:
    """
    Thin async HTTP client for the Resend transactional email API.

    Responsibilities:
    - send: deliver one rendered email and return the Resend message id
    """

    def __init__(
        self,
        api_key: str,
        *,
        from_email: str,
        base_url: str = "https://api.resend.com",
        timeout: float = 10.0,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.from_email = from_email
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._logger = logging.getLogger(__name__)

    def _headers(self) -> dict[str, str]:
        return {"Content-Type": "application/json", "Authorization": f"Bearer {self.api_key}"}

    async def send(self, message: EmailMessage) -> Optional[str]:
        payload: dict[str, Union[str, Sequence[object]]] = {
            "from": self.from_email,
            "to": message.to,
            "subject": message.subject,
            "html": message.html,
        }
        if message.text:
            payload["text"] = message.text
        if message.reply_to:
            payload["reply_to"] = message.reply_to
        if message.tags:
            payload["tags"] = message.tags
        try:
            self._logger.debug("ResendClient.send: POST %s/emails to=%s", self.base_url, message.to)
            r = await self._client.post(f"{self.base_url}/emails", headers=self._headers(), json=payload)
            r.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise ResendApiError(
                f"Resend send failed: {e.response.status_code}",
                status_code=e.response.status_code,
                details=e.response.text,
            ) from e
        data = r.json() if r.content else {}
        return data.get("id") if isinstance(data, dict) else None

    async def aclose(self) -> None:
        await self._client.aclose()
