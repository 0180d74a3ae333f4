"""Tests for the dashboard, overview and message viewer HTML builders."""
import json
import re

from conftest import AQ1_CONTENT, ANALYSIS, MESSAGES
from mango_lollipop.html_views import (
    build_stats,
    embed_json,
    esc,
    generate_dashboard,
    generate_message_viewer,
    generate_overview,
    implementation_order,
)
from mango_lollipop.message_content import strip_frontmatter


def _embedded(html_text, script_id):
    match = re.search(rf'<script id="{script_id}" type="application/json">(.*?)</script>', html_text, re.DOTALL)
    assert match, f"no #{script_id} block"
    return json.loads(match.group(1))


class TestHelpers:

    def test_esc(self):
        """HTML metacharacters escaped; None renders as empty."""
        assert esc("<b>A & B</b>") == "&lt;b&gt;A &amp; B&lt;/b&gt;"
        assert esc(None) == ""
        assert esc("") == ""

    def test_esc_keeps_falsy_values(self):
        """Zero and False are values, not blanks."""
        assert esc(0) == "0"
        assert esc(False) == "False"

    def test_embed_json_escapes_closing_tags(self):
        """No '</' survives, and the text still decodes to the same data."""
        out = embed_json({"body": "</script><script>alert(1)</script>"})
        assert "</" not in out
        assert json.loads(out) == {"body": "</script><script>alert(1)</script>"}

    def test_embed_json_escapes_comment_open(self):
        """'<!--' is written as a JSON escape and decodes back unchanged."""
        out = embed_json({"body": "<!--<script>"})
        assert "<!--" not in out
        assert json.loads(out) == {"body": "<!--<script>"}


class TestStats:

    def test_build_stats(self):
        """Totals, classification split and stage counts in stage order."""
        stats = build_stats(MESSAGES)
        assert stats["total"] == 5
        assert stats["tx_count"] == 1
        assert stats["lc_count"] == 4
        assert stats["by_stage"] == {"TX": 1, "AQ": 2, "AC": 1, "RV": 1}
        assert list(stats["by_stage"]) == ["TX", "AQ", "AC", "RV"]

    def test_every_channel_counted(self):
        """Multi-channel messages count under each channel."""
        assert build_stats(MESSAGES)["by_channel"] == {"email": 4, "in-app": 2, "push": 1}

    def test_tags(self):
        """Tags sorted and counted across messages."""
        stats = build_stats(MESSAGES)
        assert stats["all_tags"] == ["feature:projects", "plan:free", "plan:trial", "source:organic"]
        assert stats["tag_counts"]["plan:free"] == 2

    def test_stage_order_independent_of_input_order(self):
        """Stage keys follow stage order whatever the message order."""
        assert list(build_stats(list(reversed(MESSAGES)))["by_stage"]) == ["TX", "AQ", "AC", "RV"]

    def test_empty(self):
        stats = build_stats([])
        assert stats["total"] == 0
        assert stats["by_stage"] == {}
        assert stats["all_tags"] == []

    def test_implementation_order(self):
        """One step per populated stage: (step, stage, count)."""
        assert implementation_order(MESSAGES) == [(1, "TX", 1), (2, "AQ", 2), (3, "AC", 1), (4, "RV", 1)]


class TestDashboard:

    def test_embeds_messages_and_analysis(self):
        """Both JSON blocks decode to the inputs."""
        out = generate_dashboard(MESSAGES, ANALYSIS)
        assert _embedded(out, "msg-data") == MESSAGES
        assert _embedded(out, "analysis-data") == ANALYSIS

    def test_header(self):
        """Title and summary line come from the analysis and counts."""
        out = generate_dashboard(MESSAGES, ANALYSIS)
        assert "<title>Acme Notes - Lifecycle Messaging Dashboard</title>" in out
        assert "5 messages &bull; 1 transactional, 4 lifecycle" in out

    def test_filters_rendered(self):
        """Filter items only for stages present; channels and tags listed."""
        out = generate_dashboard(MESSAGES, ANALYSIS)
        assert 'data-stage="AQ"' in out
        assert 'data-stage="RT"' not in out
        assert 'data-channel="in-app"' in out
        assert 'data-tag="plan:free"' in out
        assert "clearAllFilters()" in out

    def test_sortable_columns(self):
        """Each sortable header calls sortTable with its key."""
        out = generate_dashboard(MESSAGES, ANALYSIS)
        for col in ("id", "stage", "name", "wait"):
            assert f"sortTable('{col}')" in out

    def test_links_to_viewer(self):
        assert "messages.html#" in generate_dashboard(MESSAGES, ANALYSIS)

    def test_script_injection_contained(self):
        """A closing script tag in copy cannot end the data block."""
        msgs = [dict(m) for m in MESSAGES]
        msgs[1]["body"] = "</script><script>alert(1)</script>"
        out = generate_dashboard(msgs, ANALYSIS)
        assert "</script><script>alert(1)" not in out
        assert _embedded(out, "msg-data")[1]["body"] == msgs[1]["body"]

    def test_comment_open_in_copy_keeps_data_block(self):
        """'<!--<script>' in message text leaves the data block readable."""
        msgs = [dict(m) for m in MESSAGES]
        msgs[1]["body"] = "<!--<script>"
        out = generate_dashboard(msgs, ANALYSIS)
        assert "<!--<script>" not in out
        assert _embedded(out, "msg-data")[1]["body"] == "<!--<script>"
        assert _embedded(out, "analysis-data") == ANALYSIS

    def test_company_name_escaped(self, analysis):
        """Company name is HTML-escaped in the title."""
        analysis["company"]["name"] = "A<b>"
        out = generate_dashboard(MESSAGES, analysis)
        assert "<title>A&lt;b&gt; - Lifecycle Messaging Dashboard</title>" in out

    def test_empty_matrix(self):
        """No messages still renders with an empty data block."""
        out = generate_dashboard([], ANALYSIS)
        assert _embedded(out, "msg-data") == []
        assert "0 messages" in out


class TestOverview:

    def test_sections(self):
        """Company, counts, implementation order and recommendations all present."""
        out = generate_overview(MESSAGES, ANALYSIS)
        assert "Company Overview" in out
        assert "B2B SaaS note-taking" in out
        assert "projects, sharing, search" in out
        assert "Total Messages:</strong> 5 (1 transactional, 4 lifecycle)" in out
        assert "Recommended Implementation Order" in out
        assert "<li>Add an upgrade nudge before trial end</li>" in out

    def test_inventory_in_matrix_order(self):
        """Inventory rows follow matrix order."""
        out = generate_overview(MESSAGES, ANALYSIS)
        positions = [out.index(f">{m['id']}</td>") for m in MESSAGES]
        assert positions == sorted(positions)

    def test_no_recommendations_section_when_empty(self, analysis):
        analysis["recommendations"] = []
        assert "Recommendations</h2>" not in generate_overview(MESSAGES, analysis)

    def test_embeds_data(self):
        """Overview carries the same msg-data block as the dashboard."""
        out = generate_overview(MESSAGES, ANALYSIS)
        assert _embedded(out, "msg-data") == MESSAGES


class TestMessageViewer:

    def test_sidebar_grouped_by_stage(self):
        """Sidebar links grouped in stage order."""
        out = generate_message_viewer(MESSAGES, ANALYSIS, {})
        assert 'href="#AQ-1"' in out
        assert 'id="sb-RV-1"' in out
        assert out.index('id="sb-TX-1"') < out.index('id="sb-AQ-1"') < out.index('id="sb-AC-1"')

    def test_content_parsed_at_build_time(self):
        """Copy is parsed in Python and embedded per message ID."""
        out = generate_message_viewer(MESSAGES, ANALYSIS, {"AQ-1": strip_frontmatter(AQ1_CONTENT)})
        content = _embedded(out, "content-data")
        assert content["AQ-1"]["subject"] == "Welcome to Acme, {{first_name}}"
        assert content["TX-1"] is None

    def test_placeholder_when_no_copy(self):
        """Without copy every entry is null and the placeholder text is present."""
        out = generate_message_viewer(MESSAGES, ANALYSIS)
        assert "Message copy not yet generated" in out
        assert all(v is None for v in _embedded(out, "content-data").values())

    def test_keyboard_navigation_script(self):
        """Arrow keys, j/k and hash navigation wired in the page script."""
        out = generate_message_viewer(MESSAGES, ANALYSIS, {})
        for key in ("'ArrowDown'", "'ArrowUp'", "'j'", "'k'"):
            assert key in out
        assert "hashchange" in out

    def test_back_link(self):
        assert 'href="dashboard.html"' in generate_message_viewer(MESSAGES, ANALYSIS, {})
