from __future__ import annotations

import io
from typing import Callable, Dict

import pandas as pd
from fastapi import HTTPException, status
from fastapi.responses import StreamingResponse

from vivaform_api.core.dates import utcnow

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
EXPORT_FORMATS = ("csv", "xlsx", "pdf")


def _attachment(filename: str) -> Dict[str, str]:
    return {"Content-Disposition": f'attachment; filename="{filename}"'}


def _csv(df: pd.DataFrame, filename_base: str) -> StreamingResponse:
    buffer = io.StringIO()
    df.to_csv(buffer, index=False)
    buffer.seek(0)
    return StreamingResponse(buffer, media_type="text/csv", headers=_attachment(f"{filename_base}.csv"))


def _xlsx(df: pd.DataFrame, filename_base: str) -> StreamingResponse:
    buffer = io.BytesIO()
    with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
        df.to_excel(writer, index=False, sheet_name="Export")
    buffer.seek(0)
    return StreamingResponse(buffer, media_type=XLSX_MEDIA_TYPE, headers=_attachment(f"{filename_base}.xlsx"))


def _pdf(df: pd.DataFrame, filename_base: str) -> StreamingResponse:
    # Simple landscape table
    from reportlab.lib import colors
    from reportlab.lib.pagesizes import landscape, letter
    from reportlab.lib.styles import getSampleStyleSheet
    from reportlab.platypus import Paragraph, SimpleDocTemplate, Table, TableStyle

    buffer = io.BytesIO()
    doc = SimpleDocTemplate(
        buffer, pagesize=landscape(letter), leftMargin=18, rightMargin=18, topMargin=18, bottomMargin=18
    )
    styles = getSampleStyleSheet()
    title = f"{filename_base.replace('_', ' ').title()} ({utcnow().strftime('%Y-%m-%d %H:%M UTC')})"
    table = Table([list(df.columns)] + df.astype(str).values.tolist(), repeatRows=1)
    table.setStyle(
        TableStyle(
            [
                ("BACKGROUND", (0, 0), (-1, 0), colors.lightgrey),
                ("TEXTCOLOR", (0, 0), (-1, 0), colors.black),
                ("ALIGN", (0, 0), (-1, -1), "LEFT"),
                ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
                ("FONTSIZE", (0, 0), (-1, -1), 7),
                ("BOTTOMPADDING", (0, 0), (-1, 0), 6),
                ("GRID", (0, 0), (-1, -1), 0.25, colors.grey),
            ]
        )
    )
    doc.build([Paragraph(title, styles["Title"]), table])
    buffer.seek(0)
    return StreamingResponse(buffer, media_type="application/pdf", headers=_attachment(f"{filename_base}.pdf"))


_WRITERS: Dict[str, Callable[[pd.DataFrame, str], StreamingResponse]] = {"csv": _csv, "xlsx": _xlsx, "pdf": _pdf}


# PUBLIC_INTERFACE
def export_dataframe(df: pd.DataFrame, filename_base: str, export_format: str) -> StreamingResponse:
    """
    Stream a DataFrame as a file download.

    Supported formats:
      - csv: text/csv
      - xlsx: spreadsheet written with openpyxl
      - pdf: simple tabular rendering with reportlab
    """
    writer = _WRITERS.get((export_format or "csv").lower())
    if writer is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Unsupported export format: {export_format}. Use one of {', '.join(EXPORT_FORMATS)}",
        )
    return writer(df, filename_base)
