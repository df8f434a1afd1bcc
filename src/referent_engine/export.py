"""
CSV / PDF rendering of a finalised assignment set.

CSV: every field is quoted (csv.QUOTE_ALL) and embedded double quotes are
doubled by the csv writer, whether or not a field strictly needs it.
Reference: Python csv docs — https://docs.python.org/3/library/csv.html

PDF: ReportLab platypus document with a title, generation date and a
striped table.
Reference: ReportLab User Guide, chapter 7 "Tables and TableStyles"

Both renderers build the whole payload in memory before returning, so a
failure never leaves a truncated file behind; write_export() then swaps the
file into place with os.replace().
"""

from __future__ import annotations

import csv
import io
import logging
import os
import re
import tempfile
from dataclasses import dataclass
from datetime import date, datetime
from pathlib import Path
from typing import List, Optional, Sequence, Union
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.lib.units import inch
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from referent_engine.models import AssignmentState, Referent, Student
from referent_engine.scoring import ScoreMatrix

logger = logging.getLogger(__name__)

CSV_HEADER = [
    "Student Name",
    "Student Email",
    "Referent Name",
    "Referent Email",
    "Program",
    "Assigned At",
    "Compatibility Score",
]
PDF_HEADER = ["Student", "Referent", "Assigned Date", "Score"]

_HEADER_FILL = colors.HexColor("#4F46E5")   # indigo
_STRIPE_FILL = colors.HexColor("#EEF2FF")


class ExportFailure(ValueError):
    """Raised when export input is empty/malformed or rendering fails."""


@dataclass(frozen=True)
class ExportRow:
    student_name:        str
    referent_name:       str
    program:             str
    assigned_at:         Union[str, datetime, date, None] = None
    student_email:       str                              = ""
    referent_email:      str                              = ""
    compatibility_score: Optional[int]                    = None


def _assigned_text(value: Union[str, datetime, date, None]) -> str:
    if value is None:
        return ""
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return str(value)


def _score_text(value: Optional[int]) -> str:
    return "" if value is None else str(value)


def build_rows(
    state:        AssignmentState,
    students:     Sequence[Student],
    referents:    Sequence[Referent],
    program_name: str,
    assigned_at:  Union[str, datetime, date, None] = None,
    scores:       Optional[ScoreMatrix]            = None,
) -> List[ExportRow]:
    """Flatten state into rows: referent order, then each referent's list order."""
    by_sid = {s.id: s for s in students}
    rows: List[ExportRow] = []
    for r in referents:
        for sid in state.get(r.id, []):
            s = by_sid.get(sid)
            if s is None:
                raise ExportFailure(f"Assignment references unknown student '{sid}'")
            rows.append(ExportRow(
                student_name        = s.name,
                student_email       = s.email,
                referent_name       = r.name,
                referent_email      = r.email,
                program             = program_name,
                assigned_at         = assigned_at,
                compatibility_score = (scores or {}).get(sid, {}).get(r.id),
            ))
    return rows


def _check_rows(rows: Sequence[ExportRow]) -> None:
    if not rows:
        raise ExportFailure("Nothing to export: the assignment list is empty")
    for i, row in enumerate(rows):
        if not isinstance(row, ExportRow):
            raise ExportFailure(f"Row {i} is not an ExportRow: {type(row).__name__}")
        if not row.student_name or not row.referent_name:
            raise ExportFailure(f"Row {i} is missing a student or referent name")


def to_csv(rows: Sequence[ExportRow]) -> str:
    _check_rows(rows)
    buf = io.StringIO()
    writer = csv.writer(buf, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(CSV_HEADER)
    for row in rows:
        writer.writerow([
            row.student_name,
            row.student_email,
            row.referent_name,
            row.referent_email,
            row.program,
            _assigned_text(row.assigned_at),
            _score_text(row.compatibility_score),
        ])
    text = buf.getvalue()
    logger.info(f"Exported {len(rows)} assignment(s) to CSV ({len(text)} chars)")
    return text


def to_pdf(rows: Sequence[ExportRow], title: str, generated_on: Optional[date] = None) -> bytes:
    _check_rows(rows)
    generated_on = generated_on or date.today()
    styles = getSampleStyleSheet()

    data = [PDF_HEADER] + [
        [
            row.student_name,
            row.referent_name,
            _assigned_text(row.assigned_at)[:10],
            f"{row.compatibility_score}%" if row.compatibility_score is not None else "",
        ]
        for row in rows
    ]
    table = Table(data, repeatRows=1)
    style = [
        ("BACKGROUND", (0, 0), (-1, 0), _HEADER_FILL),
        ("TEXTCOLOR",  (0, 0), (-1, 0), colors.white),
        ("FONTNAME",   (0, 0), (-1, 0), "Helvetica-Bold"),
        ("FONTSIZE",   (0, 0), (-1, -1), 9),
        ("GRID",       (0, 0), (-1, -1), 0.25, colors.lightgrey),
        ("VALIGN",     (0, 0), (-1, -1), "MIDDLE"),
    ]
    for i in range(2, len(data), 2):
        style.append(("BACKGROUND", (0, i), (-1, i), _STRIPE_FILL))
    table.setStyle(TableStyle(style))

    story = [
        Paragraph(escape(f"Assignment Report: {title}"), styles["Title"]),
        Paragraph(escape(f"Generated: {generated_on.isoformat()}"), styles["Normal"]),
        Spacer(1, 0.25 * inch),
        table,
    ]

    buffer = io.BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=A4,
        title=f"Assignment Report: {title}",
        leftMargin=0.75 * inch,
        rightMargin=0.75 * inch,
        topMargin=0.75 * inch,
        bottomMargin=0.75 * inch,
    )
    try:
        doc.build(story)
    except Exception as e:
        raise ExportFailure(f"PDF rendering failed: {e}") from e

    pdf_bytes = buffer.getvalue()
    logger.info(f"Exported {len(rows)} assignment(s) to PDF ({len(pdf_bytes)} bytes)")
    return pdf_bytes


def export_filename(program_name: str, ext: str = "csv") -> str:
    """assignments-<program-slug>.<ext>, e.g. assignments-idea-to-mvp.csv"""
    slug = re.sub(r"\s+", "-", (program_name or "").strip().lower()) or "program"
    return f"assignments-{slug}.{ext.lstrip('.')}"


def write_export(path: str | Path, payload: Union[str, bytes]) -> Path:
    """Write payload to path atomically; the old file stays intact on failure."""
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    data = payload.encode("utf-8") if isinstance(payload, str) else payload
    fd, tmp = tempfile.mkstemp(dir=p.parent, prefix=f".{p.name}-")
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
        os.replace(tmp, p)
    except BaseException:
        Path(tmp).unlink(missing_ok=True)
        raise
    return p
