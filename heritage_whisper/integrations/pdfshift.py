from __future__ import annotations

import logging
from typing import Optional

import httpx

from .errors import PDFShiftApiError


class PDFShiftClient:
    """
    Thin async HTTP client for the PDFShift HTML-to-PDF conversion API.

    Responsibilities:
    - render_url: print a public page URL into a PDF document
    """

    def __init__(
        self,
        api_key: str,
        *,
        base_url: str = "https://api.pdfshift.io/v3",
        timeout: float = 120.0,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._logger = logging.getLogger(__name__)

    def _headers(self) -> dict[str, str]:
        return {"Content-Type": "application/json", "X-API-Key": self.api_key}

    async def render_url(
        self,
        source_url: str,
        *,
        page_format: str = "Letter",
        landscape: bool = False,
        wait_for_selector: Optional[str] = None,
    ) -> bytes:
        payload: dict[str, object] = {
            "source": source_url,
            "format": page_format,
            "landscape": landscape,
            "margin": {"top": "0", "right": "0", "bottom": "0", "left": "0"},
            "use_print": True,
        }
        if wait_for_selector:
            payload["wait_for"] = wait_for_selector
        try:
            self._logger.debug("PDFShiftClient.render_url: POST %s/convert/pdf source=%s", self.base_url, source_url)
            r = await self._client.post(f"{self.base_url}/convert/pdf", headers=self._headers(), json=payload)
            r.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise PDFShiftApiError(
                f"PDFShift render failed: {e.response.status_code}",
                status_code=e.response.status_code,
                details=e.response.text,
            ) from e
        if not r.content.startswith(b"%PDF"):
            raise PDFShiftApiError("PDFShift returned a non-PDF payload", status_code=r.status_code)
        return r.content

    async def aclose(self) -> None:
        await self._client.aclose()
