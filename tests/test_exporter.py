import io
from datetime import date

import pandas as pd
import pytest
from openpyxl import load_workbook

import exporter
from filters import FilterSelection, apply_filters


@pytest.fixture
def records(applicant_docs):
    return [{"id": str(i), **d} for i, d in enumerate(applicant_docs)]


def test_status_defaults_in_export():
    rows = [{"id": "a", "email": "a@x.com"}, {"id": "b", "email": "b@x.com", "status": "Hired"}]
    only_new = apply_filters(rows, FilterSelection(status="New"))
    out = exporter.export_rows(only_new, "admin")
    assert len(out) == 1
    assert out[0]["Email"] == "a@x.com"
    assert out[0]["Status"] == "New"


def test_csv_matches_filtered_rows(records):
    hired = apply_filters(records, FilterSelection(status="Hired"))
    data = exporter.export(hired, "admin", exporter.CSV)
    frame = pd.read_csv(io.BytesIO(data), dtype=str)

    assert list(frame.columns) == exporter.COLUMNS["admin"]
    assert len(frame) == len(hired) == 2
    assert list(frame["Name"]) == ["Anita Rao", "Deepak Jain"]
    assert list(frame["Status"]) == ["Hired", "Hired"]
    assert list(frame["Application Date"]) == ["12/10/2026", "28/09/2026"]


def test_xlsx_sheet_and_rows(records):
    data = exporter.export(records, "agent", exporter.XLSX)
    wb = load_workbook(io.BytesIO(data))
    assert wb.sheetnames == ["Referrals"]
    ws = wb["Referrals"]
    rows = list(ws.iter_rows(values_only=True))
    assert list(rows[0]) == exporter.COLUMNS["agent"]
    assert len(rows) - 1 == len(records)
    assert rows[2][exporter.COLUMNS["agent"].index("Status")] == "New"


def test_empty_export_keeps_header():
    data = exporter.export([], "reference", exporter.XLSX)
    ws = load_workbook(io.BytesIO(data))["Applications"]
    rows = list(ws.iter_rows(values_only=True))
    assert list(rows[0]) == exporter.COLUMNS["reference"]
    assert len(rows) == 1


def test_reference_columns_include_notes():
    out = exporter.export_rows([{"id": "1", "fullName": "A", "notes": "call back"}], "reference")
    assert out[0]["Notes"] == "call back"
    assert "Email" in out[0] and "Age" not in out[0]


def test_legacy_registration_count_is_exported():
    out = exporter.export_rows([{"id": "1", "fullName": "A", "registrationCompleted": 3}], "admin")
    assert out[0]["Registrations"] == 3


def test_filename_is_latin1_safe():
    name = exporter.export_filename("reference", "csv", label="మీనా")
    assert name == "mana-reference-reference.csv"
    name.encode("latin-1")


def test_unknown_format():
    with pytest.raises(ValueError):
        exporter.export([], "admin", "pdf")


@pytest.mark.parametrize("role,ref,label,expected", [
    ("admin", None, None, "mana-levelup-all-applications.xlsx"),
    ("admin", "Ravi Teja", None, "mana-levelup-ravi-teja-applications.xlsx"),
    ("agent", None, "Ravi", "referrals-ravi-2026-10-18.xlsx"),
    ("reference", None, "Meena Kumari", "mana-reference-meena-kumari.xlsx"),
    ("admin", "మీనా", None, "mana-levelup-reference-applications.xlsx"),
    ("agent", None, "Rávi Téja", "referrals-r-vi-t-ja-2026-10-18.xlsx"),
])
def test_export_filename(role, ref, label, expected):
    assert exporter.export_filename(role, "xlsx", ref, label, today=date(2026, 10, 18)) == expected
