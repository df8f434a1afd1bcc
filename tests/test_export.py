"""Tests for CSV / PDF export."""
import csv
import io
from datetime import date
from pathlib import Path

import pytest

from referent_engine.export import (CSV_HEADER, ExportFailure, ExportRow, build_rows,
    export_filename, to_csv, to_pdf, write_export)
from referent_engine.models import Referent, Student


def _amy_row(**overrides) -> ExportRow:
    fields = dict(
        student_name  = "Amy O'Neil",
        referent_name = "R1",
        program       = "Idea to MVP",
        assigned_at   = "2024-01-01T00:00:00Z",
    )
    fields.update(overrides)
    return ExportRow(**fields)


def test_single_row_csv() -> None:
    text = to_csv([_amy_row()])
    lines = text.splitlines()
    assert len(lines) == 2
    assert lines[0] == ",".join(f'"{h}"' for h in CSV_HEADER)
    assert lines[1] == '"Amy O\'Neil","","R1","","Idea to MVP","2024-01-01T00:00:00Z",""'

    parsed = list(csv.reader(io.StringIO(text)))
    assert parsed[1][0] == "Amy O'Neil"
    assert parsed[1][5] == "2024-01-01T00:00:00Z"


def test_embedded_quotes_are_doubled() -> None:
    text = to_csv([_amy_row(student_name='Amy "Ace" O\'Neil', program='Idea, to "MVP"')])
    assert '"Amy ""Ace"" O\'Neil"' in text
    assert '"Idea, to ""MVP"""' in text
    parsed = list(csv.reader(io.StringIO(text)))
    assert parsed[1][0] == 'Amy "Ace" O\'Neil'
    assert parsed[1][4] == 'Idea, to "MVP"'


def test_empty_export_fails() -> None:
    with pytest.raises(ExportFailure):
        to_csv([])
    with pytest.raises(ExportFailure):
        to_pdf([], "Idea to MVP")


def test_malformed_rows_fail() -> None:
    with pytest.raises(ExportFailure):
        to_csv([("Amy", "R1")])
    with pytest.raises(ExportFailure):
        to_csv([_amy_row(referent_name="")])


def test_build_rows_follows_referent_order() -> None:
    students  = [Student(id="S1", name="Amy", email="amy@x.org"), Student(id="S2", name="Bao")]
    referents = [Referent(id="R1", name="Alice"), Referent(id="R2", name="Bob", email="bob@x.org")]
    state  = {"R2": ["S2"], "R1": ["S1"]}
    scores = {"S1": {"R1": 88}}
    rows = build_rows(state, students, referents, "Idea to MVP", date(2024, 3, 1), scores)
    assert [(r.student_name, r.referent_name) for r in rows] == [("Amy", "Alice"), ("Bao", "Bob")]
    assert rows[0].compatibility_score == 88
    assert rows[1].compatibility_score is None
    assert rows[1].referent_email == "bob@x.org"
    assert '"2024-03-01"' in to_csv(rows)


def test_build_rows_unknown_student_fails() -> None:
    with pytest.raises(ExportFailure):
        build_rows({"R1": ["GHOST"]}, [], [Referent(id="R1", name="Alice")], "P")


def test_pdf_export() -> None:
    rows = [_amy_row(compatibility_score=91), _amy_row(student_name="Bao")]
    pdf = to_pdf(rows, "Idea to MVP", generated_on=date(2024, 1, 2))
    assert pdf.startswith(b"%PDF")
    assert len(pdf) > 500


def test_export_filename() -> None:
    assert export_filename("Idea to MVP") == "assignments-idea-to-mvp.csv"
    assert export_filename("Idea to MVP", ".pdf") == "assignments-idea-to-mvp.pdf"
    assert export_filename("") == "assignments-program.csv"


def test_write_export_is_atomic(tmp_path: Path) -> None:
    target = tmp_path / "out" / "assignments.csv"
    write_export(target, to_csv([_amy_row()]))
    assert target.read_text(encoding="utf-8").startswith('"Student Name"')
    write_export(target, b"%PDF-fake")
    assert target.read_bytes() == b"%PDF-fake"
    assert [p.name for p in target.parent.iterdir()] == ["assignments.csv"]
