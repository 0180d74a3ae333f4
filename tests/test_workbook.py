"""Tests for the five-sheet matrix workbook."""
import pytest
from openpyxl import load_workbook

from conftest import ANALYSIS, MESSAGES
from mango_lollipop.schema import STAGE_LABELS, STAGE_ORDER, validate_message
from mango_lollipop.workbook import (
    CHANNEL_STRATEGY_COLUMNS,
    LIFECYCLE_COLUMNS,
    TRANSACTIONAL_COLUMNS,
    channel_strategy_rows,
    column_widths,
    event_taxonomy_rows,
    flatten_tag_definitions,
    generate_matrix_workbook,
    lifecycle_rows,
    tag_rows,
    transactional_rows,
    write_workbook,
)

SHEETS = ["Transactional Messages", "Lifecycle Matrix", "Event Taxonomy", "Tags", "Channel Strategy"]


def _build(messages=MESSAGES):
    return generate_matrix_workbook(messages, ANALYSIS["events"], flatten_tag_definitions(ANALYSIS), ANALYSIS)


class TestRows:

    def test_flatten_tag_definitions(self):
        """Sources first, then plan:, segment: and feature: prefixed values."""
        assert flatten_tag_definitions(ANALYSIS) == [
            "source:organic", "plan:free", "plan:trial", "segment:new", "feature:projects",
        ]

    def test_flatten_tag_definitions_missing_tags(self):
        assert flatten_tag_definitions({}) == []

    def test_transactional_rows(self):
        """Only transactional messages; an empty tag list renders as ''."""
        rows = transactional_rows(MESSAGES)
        assert len(rows) == 1
        assert rows[0]["ID"] == "TX-1"
        assert rows[0]["Trigger Event"] == "user.password_reset_requested"
        assert rows[0]["Tags"] == ""

    def test_lifecycle_rows(self):
        """Stage label, joined channels, guard/suppression conditions or the dash."""
        rows = lifecycle_rows(MESSAGES)
        assert [r["ID"] for r in rows] == ["AQ-1", "AQ-2", "AC-1", "RV-1"]
        aq1, aq2 = rows[0], rows[1]
        assert aq1["Stage"] == "Acquisition"
        assert aq1["Channels"] == "email, in-app"
        assert aq1["Guards"] == "—"
        assert aq1["Suppressions"] == "user.unsubscribed"
        assert aq2["Guards"] == "no project created"

    def test_event_taxonomy_rows(self):
        """One row per declared event, with the IDs of messages it triggers."""
        rows = event_taxonomy_rows(ANALYSIS["events"], MESSAGES)
        assert len(rows) == 5
        signed_up = next(r for r in rows if r["Event"] == "user.signed_up")
        assert signed_up == {"Category": "Identity", "Event": "user.signed_up", "Used By": "AQ-1, AQ-2, AC-1"}
        shared = next(r for r in rows if r["Event"] == "note.shared")
        assert shared["Used By"] == "—"

    def test_tag_rows_include_unused_definitions(self):
        """Declared tags appear sorted even when no message uses them."""
        rows = tag_rows(MESSAGES, flatten_tag_definitions(ANALYSIS))
        assert [r["Tag"] for r in rows] == [
            "feature:projects", "plan:free", "plan:trial", "segment:new", "source:organic",
        ]
        by_tag = {r["Tag"]: r for r in rows}
        assert by_tag["plan:free"]["Message Count"] == 2
        assert by_tag["plan:free"]["Used By"] == "AQ-1, AQ-2"
        assert by_tag["segment:new"]["Message Count"] == 0
        assert by_tag["segment:new"]["Used By"] == "—"

    def test_tag_rows_include_undeclared_message_tags(self):
        rows = tag_rows(MESSAGES, [])
        assert "plan:trial" in [r["Tag"] for r in rows]

    def test_channel_strategy_counts_every_channel(self):
        """A two-channel message counts once under each of its channels."""
        rows = channel_strategy_rows(MESSAGES)
        assert [r["Channel"] for r in rows] == ["email", "in-app", "push"]
        email = rows[0]
        assert email["Total Messages"] == 4
        assert email["Transactional"] == 1
        assert email["Acquisition"] == 2
        assert email["Activation"] == 0
        assert email["Revenue"] == 1
        push = rows[2]
        assert push["Total Messages"] == 1
        assert push["Revenue"] == 1

    def test_channel_strategy_stage_columns_sum_to_total(self):
        """Per-stage counts on each channel row add up to its total."""
        for row in channel_strategy_rows(MESSAGES):
            stage_total = sum(row[STAGE_LABELS[s]] for s in STAGE_ORDER)
            assert stage_total == row["Total Messages"], row["Channel"]


class TestColumnWidths:

    def test_padding(self):
        """Longest value plus two."""
        assert column_widths(["ID"], [{"ID": "AQ-10"}]) == [7]

    def test_header_counts(self):
        assert column_widths(["Trigger Event"], []) == [15]

    def test_capped(self):
        """Widths stop at the cap, default or given."""
        assert column_widths(["Body"], [{"Body": "x" * 500}]) == [60]
        assert column_widths(["Body"], [{"Body": "x" * 500}], max_width=20) == [20]


class TestGenerateMatrixWorkbook:

    def test_sheet_order(self):
        assert _build().sheetnames == SHEETS

    def test_headers(self):
        """First row of each sheet is its column list."""
        wb = _build()
        assert [c.value for c in wb["Transactional Messages"][1]] == TRANSACTIONAL_COLUMNS
        assert [c.value for c in wb["Lifecycle Matrix"][1]] == LIFECYCLE_COLUMNS
        assert [c.value for c in wb["Channel Strategy"][1]] == CHANNEL_STRATEGY_COLUMNS

    def test_empty_sheets_keep_headers(self):
        """A sheet with no rows still carries its header."""
        lifecycle_only = [m for m in MESSAGES if m["classification"] == "lifecycle"]
        ws = _build(lifecycle_only)["Transactional Messages"]
        assert ws.max_row == 1
        assert ws["A1"].value == "ID"

    def test_header_bold(self):
        assert _build()["Tags"]["A1"].font.bold

    def test_title_property(self):
        """Workbook title comes from the company name."""
        assert _build().properties.title == "Acme Notes Lifecycle Matrix"

    def test_round_trip_through_disk(self, tmp_path):
        """Saved workbook reloads with the same sheets, rows and widths."""
        path = tmp_path / "matrix.xlsx"
        write_workbook(_build(), path)
        wb = load_workbook(path)
        assert wb.sheetnames == SHEETS
        ws = wb["Lifecycle Matrix"]
        assert ws.max_row == 5
        assert ws["A2"].value == "AQ-1"
        assert ws.column_dimensions["A"].width == 6

    def test_leading_equals_stays_text(self, messages, tmp_path):
        """A name starting with '=' is stored as a string, not a formula."""
        messages[1]["name"] = "=1+1"
        path = tmp_path / "matrix.xlsx"
        write_workbook(_build(messages), path)
        cell = load_workbook(path)["Lifecycle Matrix"]["C2"]
        assert cell.value == "=1+1"
        assert cell.data_type == "s"

    def test_control_characters_dropped(self, messages, tmp_path):
        """A valid message with a control character still produces a workbook."""
        messages[1]["name"] = "Welcome\x0b"
        assert validate_message(messages[1]).valid
        wb = _build(messages)
        assert wb["Lifecycle Matrix"]["C2"].value == "Welcome"
        path = tmp_path / "matrix.xlsx"
        write_workbook(wb, path)
        assert load_workbook(path)["Lifecycle Matrix"]["C2"].value == "Welcome"

    def test_unwritable_path_raises(self, tmp_path):
        with pytest.raises(OSError):
            write_workbook(_build(), tmp_path / "missing" / "matrix.xlsx")
