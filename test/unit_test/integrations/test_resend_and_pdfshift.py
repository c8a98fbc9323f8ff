"""Unit tests for the Resend and PDFShift HTTP clients."""

import json

import httpx
import pytest

from heritage_whisper.integrations import EmailMessage, PDFShiftApiError, PDFShiftClient, ResendApiError, ResendClient


class TestResendClient:
    @pytest.mark.asyncio
    async def test_send_builds_payload(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["auth"] = request.headers["Authorization"]
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"id": "email-1"})

        client = ResendClient(
            "re_key",
            from_email="HW <no-reply@example.com>",
            base_url="https://mock.resend.com/",
            client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
        )
        message_id = await client.send(
            EmailMessage(to=["a@example.com"], subject="Hi", html="<p>Hi</p>", text="Hi", tags=[{"name": "t", "value": "v"}])
        )

        assert message_id == "email-1"
        assert seen["url"] == "https://mock.resend.com/emails"
        assert seen["auth"] == "Bearer re_key"
        assert seen["body"] == {
            "from": "HW <no-reply@example.com>",
            "to": ["a@example.com"],
            "subject": "Hi",
            "html": "<p>Hi</p>",
            "text": "Hi",
            "tags": [{"name": "t", "value": "v"}],
        }

    @pytest.mark.asyncio
    async def test_send_error_raises(self):
        client = ResendClient(
            "re_key",
            from_email="hw@example.com",
            base_url="https://mock.resend.com",
            client=httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(422, text="invalid"))),
        )
        with pytest.raises(ResendApiError) as exc_info:
            await client.send(EmailMessage(to=["a@example.com"], subject="s", html="h"))
        assert exc_info.value.status_code == 422


class TestPDFShiftClient:
    @pytest.mark.asyncio
    async def test_render_url_returns_pdf(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["key"] = request.headers["X-API-Key"]
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, content=b"%PDF-1.7 body")

        client = PDFShiftClient(
            "pdf_key",
            base_url="https://mock.pdfshift.io/v3",
            client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
        )
        pdf = await client.render_url("http://localhost:3000/book/print", wait_for_selector="[data-print-ready]")

        assert pdf.startswith(b"%PDF")
        assert seen["key"] == "pdf_key"
        assert seen["body"]["source"] == "http://localhost:3000/book/print"
        assert seen["body"]["wait_for"] == "[data-print-ready]"
        assert seen["body"]["use_print"] is True

    @pytest.mark.asyncio
    async def test_render_url_rejects_non_pdf(self):
        client = PDFShiftClient(
            "pdf_key",
            base_url="https://mock.pdfshift.io/v3",
            client=httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(200, text="<html>"))),
        )
        with pytest.raises(PDFShiftApiError):
            await client.render_url("http://localhost:3000/book/print")

    @pytest.mark.asyncio
    async def test_render_url_http_error(self):
        client = PDFShiftClient(
            "pdf_key",
            base_url="https://mock.pdfshift.io/v3",
            client=httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(401, text="bad key"))),
        )
        with pytest.raises(PDFShiftApiError) as exc_info:
            await client.render_url("http://localhost:3000/book/print")
        assert exc_info.value.status_code == 401
