"""PDF export of the memory book."""

from __future__ import annotations

from fastapi import APIRouter, Response

from heritage_whisper.server.services.account import AccountService
from heritage_whisper.server.services.deps import ApiRateLimit, CurrentUserDep, PDFShiftDep, SessionDep

router = APIRouter(tags=["export"])


@router.post(
    "/pdf",
    response_class=Response,
    dependencies=[ApiRateLimit],
    summary="Export Book as PDF",
    description="Render the print view of the memory book through PDFShift.",
    response_description="The PDF document.",
    responses={
        200: {"content": {"application/pdf": {}}, "description": "PDF rendered"},
        502: {"description": "The rendering service failed"},
        503: {"description": "PDF export is not configured"},
    },
)
async def export_pdf(user: CurrentUserDep, session: SessionDep, pdfshift: PDFShiftDep) -> Response:
    """
    Export the book as PDF.

    Each export increments the user's ``pdf_exports_count``.
    """
    pdf = await AccountService(session, pdfshift=pdfshift).export_pdf(user)
    return Response(
        content=pdf,
        media_type="application/pdf",
        headers={"Content-Disposition": 'attachment; filename="heritage-whisper-book.pdf"'},
    )
