"""
Static HTML outputs for a project.

    dashboard.html — filterable, sortable message matrix
    overview.html  — printable one-pager with implementation order
    messages.html  — per-message channel previews with #ID routing

Everything is embedded (data, CSS, script) so the files open straight from
disk over file:// with no server and no fetch().
"""
import html
import json
import logging
from typing import Dict, List, Optional

from .config import PROJECT_VERSION
from .message_content import parse_all_content, primary_channel
from .schema import CHANNELS, STAGE_LABELS, STAGE_ORDER, Analysis, Message, message_channels
from .view_state import fragment_for

logger = logging.getLogger(__name__)

STAGE_META = {
    "TX": {"label": STAGE_LABELS["TX"], "color": "#666", "bg": "#f0f0f0"},
    "AQ": {"label": STAGE_LABELS["AQ"], "color": "#28a745", "bg": "#d4edda"},
    "AC": {"label": STAGE_LABELS["AC"], "color": "#007bff", "bg": "#cce5ff"},
    "RV": {"label": STAGE_LABELS["RV"], "color": "#ffc107", "bg": "#fff3cd"},
    "RT": {"label": STAGE_LABELS["RT"], "color": "#fd7e14", "bg": "#ffe5cc"},
    "RF": {"label": STAGE_LABELS["RF"], "color": "#6f42c1", "bg": "#e8d5f5"},
}
_FALLBACK_META = {"color": "#666", "bg": "#f0f0f0"}

FOOTER = (
    '<footer class="page-footer">Mango Lollipop &mdash; lifecycle messaging for SaaS'
    f' &middot; v{PROJECT_VERSION}</footer>'
)


def esc(s):
    return "" if s is None else html.escape(str(s))


def embed_json(data) -> str:
    """JSON safe to drop inside a <script> element."""
    dumped = json.dumps(data, ensure_ascii=False)
    # "<!--" inside a script puts the HTML parser in escaped state
    return dumped.replace("</", "<\\/").replace("<!--", "<\\u0021--")


def stage_badge(stage: str) -> str:
    meta = STAGE_META.get(stage, dict(_FALLBACK_META, label=stage))
    return (
        f'<span class="stage-badge" style="background:{meta["bg"]};color:{meta["color"]}">'
        f'{esc(meta["label"])}</span>'
    )


# ── Aggregates ─────────────────────────────────────────────────

def build_stats(messages: List[Message]) -> Dict:
    """Counts shared by the dashboard and the overview."""
    by_stage = {}
    for stage in STAGE_ORDER:
        count = sum(1 for m in messages if m.get("stage") == stage)
        if count:
            by_stage[stage] = count

    channel_counts = {}
    tag_counts = {}
    for m in messages:
        for ch in message_channels(m):
            channel_counts[ch] = channel_counts.get(ch, 0) + 1
        for tag in m.get("tags", []):
            tag_counts[tag] = tag_counts.get(tag, 0) + 1

    known = [ch for ch in CHANNELS if ch in channel_counts]
    extra = sorted(ch for ch in channel_counts if ch not in CHANNELS)
    by_channel = {ch: channel_counts[ch] for ch in known + extra}

    return {
        "total": len(messages),
        "tx_count": sum(1 for m in messages if m.get("classification") == "transactional"),
        "lc_count": sum(1 for m in messages if m.get("classification") == "lifecycle"),
        "by_stage": by_stage,
        "by_channel": by_channel,
        "all_tags": sorted(tag_counts),
        "tag_counts": tag_counts,
    }


def implementation_order(messages: List[Message]):
    """[(priority, stage, count)]: transactional first, then the AARRR funnel."""
    by_stage = build_stats(messages)["by_stage"]
    return [
        (priority, stage, by_stage[stage])
        for priority, stage in enumerate((s for s in STAGE_ORDER if s in by_stage), 1)
    ]


# ── Dashboard ──────────────────────────────────────────────────

_DASHBOARD_CSS = """
.stage-badge{display:inline-block;padding:2px 8px;border-radius:9999px;font-size:.75rem;font-weight:600}
.tag-pill{display:inline-block;padding:1px 6px;border-radius:9999px;font-size:.7rem;background:#e5e7eb;color:#374151;cursor:pointer;margin:1px}
.tag-pill.active{background:#3b82f6;color:#fff}
.filter-item{display:flex;justify-content:space-between;align-items:center;padding:3px 6px;border-radius:6px;cursor:pointer;font-size:.875rem}
.filter-item:hover{background:#f3f4f6}
.filter-item.active{background:#dbeafe}
.collapse-btn{cursor:pointer;user-select:none;display:flex;align-items:center;justify-content:space-between;width:100%}
.collapse-btn .arrow{transition:transform .15s;font-size:.7rem;color:#9ca3af}
.collapse-btn .arrow.open{transform:rotate(90deg)}
.collapse-body.collapsed{display:none}
.msg-row{cursor:pointer}
.msg-row:hover{background:#f9fafb}
.msg-detail{display:none}
.msg-detail.open{display:table-row}
.sortable{cursor:pointer;user-select:none}
.sortable:hover{color:#3b82f6}
.sortable::after{content:' \\2195';font-size:.7em;opacity:.4}
.page-footer{text-align:center;padding:16px;font-size:.75rem;color:#9ca3af;border-top:1px solid #e5e7eb}
"""

# Mirrors view_state.DashboardState / visible_messages
_DASHBOARD_JS = """
const allMessages = JSON.parse(document.getElementById('msg-data').textContent);
const state = { view: 'all', activeStages: new Set(), activeChannels: new Set(), activeTags: new Set(),
                sortCol: 'id', sortAsc: true, expanded: new Set() };

function toggleCollapse(id) {
  document.getElementById(id).classList.toggle('collapsed');
  document.getElementById('arrow-' + id).classList.toggle('open');
}

function setView(view) {
  state.view = view;
  ['all', 'tx', 'lc'].forEach(v => document.getElementById('btn-' + v).classList.toggle('bg-blue-100', v === view));
  render();
}

function toggleIn(set, value, el) {
  if (set.has(value)) { set.delete(value); el.classList.remove('active'); }
  else { set.add(value); el.classList.add('active'); }
  render();
}
function toggleStage(el) { toggleIn(state.activeStages, el.dataset.stage, el); }
function toggleChannel(el) { toggleIn(state.activeChannels, el.dataset.channel, el); }
function toggleTag(el) { toggleIn(state.activeTags, el.dataset.tag, el); }

function clearAllFilters() {
  state.activeStages.clear(); state.activeChannels.clear(); state.activeTags.clear();
  document.querySelectorAll('.filter-item.active, .tag-pill.active').forEach(el => el.classList.remove('active'));
  setView('all');
}

function sortTable(col) {
  if (state.sortCol === col) state.sortAsc = !state.sortAsc;
  else { state.sortCol = col; state.sortAsc = true; }
  render();
}

function toggleDetail(id) {
  if (state.expanded.has(id)) state.expanded.delete(id); else state.expanded.add(id);
  const el = document.getElementById('detail-' + id);
  if (el) el.classList.toggle('open', state.expanded.has(id));
}

function esc(s) { const d = document.createElement('div'); d.textContent = s == null ? '' : s; return d.innerHTML; }
function msgChannels(m) { return (m.channels && m.channels.length) ? m.channels : (m.channel ? [m.channel] : []); }
function conditions(items) { return items && items.length ? items.map(i => esc(i.condition)).join('; ') : '\\u2014'; }

function visibleMessages() {
  let msgs = allMessages.slice();
  if (state.view === 'tx') msgs = msgs.filter(m => m.classification === 'transactional');
  if (state.view === 'lc') msgs = msgs.filter(m => m.classification === 'lifecycle');
  if (state.activeStages.size) msgs = msgs.filter(m => state.activeStages.has(m.stage));
  if (state.activeChannels.size) msgs = msgs.filter(m => msgChannels(m).some(c => state.activeChannels.has(c)));
  if (state.activeTags.size) msgs = msgs.filter(m => (m.tags || []).some(t => state.activeTags.has(t)));
  const key = m => { const v = m[state.sortCol]; return v == null ? '' : (typeof v === 'string' ? v.toLowerCase() : String(v)); };
  msgs.sort((a, b) => {
    const va = key(a), vb = key(b);
    if (va < vb) return state.sortAsc ? -1 : 1;
    if (va > vb) return state.sortAsc ? 1 : -1;
    return 0;
  });
  return msgs;
}

function render() {
  const tbody = document.getElementById('matrix-body');
  tbody.innerHTML = '';
  const msgs = visibleMessages();
  document.getElementById('visible-count').textContent = msgs.length;
  for (const m of msgs) {
    const meta = stageMeta[m.stage] || { label: m.stage, color: '#666', bg: '#f0f0f0' };
    const tr = document.createElement('tr');
    tr.className = 'msg-row border-t';
    tr.innerHTML =
      '<td class="px-3 py-2 font-mono text-xs">' + esc(m.id) + '</td>' +
      '<td class="px-3 py-2"><span class="stage-badge" style="background:' + meta.bg + ';color:' + meta.color + '">' + esc(meta.label) + '</span></td>' +
      '<td class="px-3 py-2 font-medium">' + esc(m.name) + '</td>' +
      '<td class="px-3 py-2 text-xs text-gray-600">' + esc(m.trigger.event) + '</td>' +
      '<td class="px-3 py-2 font-mono text-xs">' + esc(m.wait) + '</td>' +
      '<td class="px-3 py-2 text-xs">' + esc(msgChannels(m).join(', ')) + '</td>' +
      '<td class="px-3 py-2 text-xs">' + esc(m.cta.text) + '</td>' +
      '<td class="px-3 py-2">' + (m.tags || []).map(t => '<span class="tag-pill">' + esc(t) + '</span>').join(' ') + '</td>';
    tr.addEventListener('click', () => toggleDetail(m.id));
    tbody.appendChild(tr);

    const detail = document.createElement('tr');
    detail.id = 'detail-' + m.id;
    detail.className = 'msg-detail bg-gray-50' + (state.expanded.has(m.id) ? ' open' : '');
    detail.innerHTML =
      '<td colspan="8" class="px-6 py-4 text-sm"><div class="grid grid-cols-2 gap-4">' +
      (m.subject ? '<div><strong>Subject:</strong> ' + esc(m.subject) + '</div>' : '') +
      '<div><strong>From:</strong> ' + esc(m.from) + '</div>' +
      '<div><strong>Segment:</strong> ' + esc(m.segment) + '</div>' +
      '<div><strong>Goal:</strong> ' + esc(m.goal) + '</div>' +
      '<div><strong>Format:</strong> ' + esc(m.format) + '</div>' +
      '<div><strong>Guards:</strong> ' + conditions(m.guards) + '</div>' +
      '<div><strong>Suppressions:</strong> ' + conditions(m.suppressions) + '</div>' +
      '<div class="col-span-2"><strong>Comments:</strong> ' + esc(m.comments) + '</div></div>' +
      (m.body ? '<div class="mt-3"><strong>Body:</strong><pre class="mt-1 p-3 bg-white border rounded text-xs whitespace-pre-wrap">' + esc(m.body) + '</pre></div>' : '') +
      '<div class="mt-3"><a href="messages.html#' + encodeURIComponent(m.id) + '" class="text-blue-500 text-xs hover:underline">Open full preview &rarr;</a></div>' +
      '</td>';
    tbody.appendChild(detail);
  }
}

setView('all');
"""


def _filter_item(attr, value, label_html, count):
    handler = {"stage": "toggleStage", "channel": "toggleChannel"}[attr]
    return (
        f'          <div class="filter-item" data-{attr}="{esc(value)}" onclick="{handler}(this)">'
        f'{label_html}<span class="text-xs text-gray-400">{count}</span></div>'
    )


def _collapsible(section_id, title, body_html):
    return f"""      <div>
        <button class="collapse-btn" onclick="toggleCollapse('{section_id}')">
          <span class="text-sm font-semibold text-gray-500 uppercase">{title}</span>
          <span class="arrow open" id="arrow-{section_id}">&#9654;</span>
        </button>
        <div id="{section_id}" class="collapse-body mt-1">
{body_html}
        </div>
      </div>"""


def generate_dashboard(messages: List[Message], analysis: Analysis) -> str:
    stats = build_stats(messages)
    company = analysis["company"]

    stage_items = "\n".join(
        _filter_item("stage", stage, stage_badge(stage), count)
        for stage, count in stats["by_stage"].items()
    )
    channel_items = "\n".join(
        _filter_item("channel", ch, f"<span>{esc(ch)}</span>", count)
        for ch, count in stats["by_channel"].items()
    )
    tag_items = "\n".join(
        f'          <span class="tag-pill" data-tag="{esc(tag)}" onclick="toggleTag(this)">{esc(tag)} '
        f'<span class="text-gray-400">({stats["tag_counts"][tag]})</span></span>'
        for tag in stats["all_tags"]
    )

    parts = []
    parts.append(f"""<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="UTF-8">
<meta name="viewport" content="width=device-width, initial-scale=1.0">
<title>{esc(company["name"])} - Lifecycle Messaging Dashboard</title>
<script src="https://cdn.tailwindcss.com"></script>
<style>{_DASHBOARD_CSS}</style>
</head>
<body class="bg-gray-50 text-gray-900">
<script id="msg-data" type="application/json">{embed_json(messages)}</script>
<script id="analysis-data" type="application/json">{embed_json(analysis)}</script>
""")

    parts.append(f"""<header class="bg-white border-b px-6 py-4 flex items-center justify-between">
  <div>
    <h1 class="text-xl font-bold">{esc(company["name"])} &mdash; Lifecycle Messaging Dashboard</h1>
    <p class="text-sm text-gray-500">{esc(company.get("product_type"))} &bull; {stats["total"]} messages &bull; {stats["tx_count"]} transactional, {stats["lc_count"]} lifecycle</p>
  </div>
  <div class="flex gap-2">
    <button id="btn-all" class="px-3 py-1 text-sm rounded border border-gray-300 bg-white hover:bg-gray-100" onclick="setView('all')">All</button>
    <button id="btn-tx" class="px-3 py-1 text-sm rounded border border-gray-300 bg-white hover:bg-gray-100" onclick="setView('tx')">Transactional</button>
    <button id="btn-lc" class="px-3 py-1 text-sm rounded border border-gray-300 bg-white hover:bg-gray-100" onclick="setView('lc')">Lifecycle</button>
  </div>
</header>
""")

    parts.append('<div class="flex">\n    <aside class="w-56 bg-white border-r p-4 min-h-screen space-y-1">')
    parts.append(_collapsible("stage-filter", "Stage", stage_items))
    parts.append(_collapsible("channel-filter", "Channel", channel_items))
    parts.append(_collapsible("tag-filter", "Tags", tag_items))
    parts.append('      <button class="mt-2 text-xs text-blue-500 hover:underline" onclick="clearAllFilters()">Clear all filters</button>')
    parts.append("    </aside>")

    header_cells = []
    for col, label in [("id", "ID"), ("stage", "Stage"), ("name", "Name"), ("trigger", "Trigger"),
                       ("wait", "Wait"), ("channels", "Channel"), ("cta", "CTA"), ("tags", "Tags")]:
        if col in ("id", "stage", "name", "wait"):
            header_cells.append(f'<th class="px-3 py-2 sortable" data-col="{col}" onclick="sortTable(\'{col}\')">{label}</th>')
        else:
            header_cells.append(f'<th class="px-3 py-2">{label}</th>')

    parts.append(f"""    <main class="flex-1 p-6 space-y-8">
      <section>
        <h2 class="text-lg font-semibold mb-3">Message Matrix <span class="text-sm text-gray-400">(<span id="visible-count">{stats["total"]}</span> shown)</span></h2>
        <div class="bg-white rounded-lg border overflow-x-auto">
          <table class="w-full text-sm" id="matrix-table">
            <thead class="bg-gray-50 text-left text-xs text-gray-500 uppercase"><tr>{"".join(header_cells)}</tr></thead>
            <tbody id="matrix-body"></tbody>
          </table>
        </div>
      </section>
    </main>
</div>
""")

    parts.append(f"<script>\nconst stageMeta = {embed_json(STAGE_META)};\n{_DASHBOARD_JS}</script>")
    parts.append(FOOTER)
    parts.append("</body>\n</html>\n")
    return "\n".join(parts)


# ── Overview ───────────────────────────────────────────────────

_OVERVIEW_CSS = """
@media print{body{font-size:11px}.page-break{page-break-before:always}}
.stage-badge{display:inline-block;padding:2px 8px;border-radius:9999px;font-size:.75rem;font-weight:600}
.tag-pill{display:inline-block;padding:1px 6px;border-radius:9999px;font-size:.7rem;background:#e5e7eb;color:#374151;margin:1px}
.page-footer{text-align:center;padding:24px 0 8px;margin-top:2rem;border-top:1px solid #e5e7eb;font-size:.8rem;color:#9ca3af}
"""


def generate_overview(messages: List[Message], analysis: Analysis) -> str:
    stats = build_stats(messages)
    company = analysis["company"]

    parts = []
    parts.append(f"""<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="UTF-8">
<meta name="viewport" content="width=device-width, initial-scale=1.0">
<title>{esc(company["name"])} - Lifecycle Messaging Overview</title>
<script src="https://cdn.tailwindcss.com"></script>
<style>{_OVERVIEW_CSS}</style>
</head>
<body class="bg-white text-gray-900 max-w-4xl mx-auto p-8">
<script id="msg-data" type="application/json">{embed_json(messages)}</script>
<script id="analysis-data" type="application/json">{embed_json(analysis)}</script>

<header class="border-b pb-4 mb-6">
  <h1 class="text-2xl font-bold">{esc(company["name"])}</h1>
  <p class="text-gray-500">Lifecycle Messaging Overview</p>
</header>
""")

    features = ", ".join(esc(f) for f in company.get("key_features", []))
    parts.append(f"""<section class="mb-8">
  <h2 class="text-lg font-semibold mb-2">Company Overview</h2>
  <div class="grid grid-cols-2 gap-4 text-sm">
    <div><strong>Product Type:</strong> {esc(company.get("product_type"))}</div>
    <div><strong>Target Audience:</strong> {esc(company.get("target_audience"))}</div>
    <div><strong>Value Prop:</strong> {esc(company.get("key_value_prop"))}</div>
    <div><strong>Aha Moment:</strong> {esc(company.get("aha_moment"))}</div>
    <div><strong>Pricing:</strong> {esc(company.get("pricing_model"))}</div>
    <div><strong>Key Features:</strong> {features}</div>
  </div>
</section>
""")

    stage_tiles = "\n".join(
        f'    <div class="text-center">{stage_badge(stage)}<div class="text-lg font-bold mt-1">{count}</div></div>'
        for stage, count in stats["by_stage"].items()
    )
    parts.append(f"""<section class="mb-8">
  <h2 class="text-lg font-semibold mb-2">AARRR Strategy Summary</h2>
  <div class="text-sm space-y-1">
    <p><strong>Total Messages:</strong> {stats["total"]} ({stats["tx_count"]} transactional, {stats["lc_count"]} lifecycle)</p>
    <p><strong>Channels:</strong> {esc(", ".join(analysis.get("channels", [])))}</p>
    <div class="flex gap-4 mt-2">
{stage_tiles}
    </div>
  </div>
</section>

<div class="page-break"></div>
""")

    parts.append("""<section class="mb-8">
  <h2 class="text-lg font-semibold mb-2">Message Inventory</h2>
  <table class="w-full text-sm border">
    <thead class="bg-gray-50 text-xs text-gray-500 uppercase"><tr>
      <th class="px-3 py-2 text-left">ID</th><th class="px-3 py-2 text-left">Stage</th>
      <th class="px-3 py-2 text-left">Name</th><th class="px-3 py-2 text-left">Trigger</th>
      <th class="px-3 py-2 text-left">Wait</th><th class="px-3 py-2 text-left">Channel</th>
    </tr></thead>
    <tbody>""")
    for m in messages:
        parts.append(
            f'<tr class="border-t"><td class="px-3 py-1 font-mono text-xs">{esc(m["id"])}</td>'
            f'<td class="px-3 py-1">{stage_badge(m["stage"])}</td>'
            f'<td class="px-3 py-1">{esc(m.get("name"))}</td>'
            f'<td class="px-3 py-1 text-xs">{esc(m["trigger"]["event"])}</td>'
            f'<td class="px-3 py-1 font-mono text-xs">{esc(m["wait"])}</td>'
            f'<td class="px-3 py-1 text-xs">{esc(", ".join(message_channels(m)))}</td></tr>'
        )
    parts.append("    </tbody>\n  </table>\n</section>")

    tag_summary = " ".join(
        f'<span class="tag-pill">{esc(tag)} ({stats["tag_counts"][tag]})</span>' for tag in stats["all_tags"]
    )
    parts.append(f"""<section class="mb-8">
  <h2 class="text-lg font-semibold mb-2">Tag Summary</h2>
  <div>{tag_summary or '<span class="text-gray-400">No tags</span>'}</div>
</section>
""")

    order_rows = "\n".join(
        f'<tr><td class="px-3 py-1">{priority}</td><td class="px-3 py-1">{stage_badge(stage)}</td>'
        f'<td class="px-3 py-1">{count} messages</td></tr>'
        for priority, stage, count in implementation_order(messages)
    )
    parts.append(f"""<section class="mb-8">
  <h2 class="text-lg font-semibold mb-2">Recommended Implementation Order</h2>
  <table class="text-sm">
    <thead class="text-xs text-gray-500 uppercase"><tr><th class="px-3 py-1 text-left">Priority</th><th class="px-3 py-1 text-left">Stage</th><th class="px-3 py-1 text-left">Scope</th></tr></thead>
    <tbody>
{order_rows}
    </tbody>
  </table>
</section>
""")

    recommendations = analysis.get("recommendations") or []
    if recommendations:
        items = "\n".join(f"    <li>{esc(r)}</li>" for r in recommendations)
        parts.append(f"""<section class="mb-8">
  <h2 class="text-lg font-semibold mb-2">Recommendations</h2>
  <ul class="list-disc list-inside text-sm space-y-1">
{items}
  </ul>
</section>
""")

    parts.append(FOOTER)
    parts.append("</body>\n</html>\n")
    return "\n".join(parts)


# ── Message viewer ─────────────────────────────────────────────

_VIEWER_CSS = """
body{margin:0;font-family:-apple-system,BlinkMacSystemFont,'Segoe UI',Roboto,sans-serif}
.viewer-header{display:flex;align-items:center;justify-content:space-between;padding:12px 24px;background:#fff;border-bottom:1px solid #e5e7eb}
.viewer-header a{color:#3b82f6;text-decoration:none;font-size:.875rem}
.viewer-layout{display:flex;min-height:calc(100vh - 57px)}
.viewer-sidebar{width:260px;min-width:260px;background:#fff;border-right:1px solid #e5e7eb;overflow-y:auto;padding:12px 8px}
.stage-group{margin-bottom:8px}
.stage-group-header{display:flex;align-items:center;justify-content:space-between;padding:4px 8px}
.stage-badge{display:inline-block;padding:2px 8px;border-radius:9999px;font-size:.7rem;font-weight:600}
.msg-link{display:flex;align-items:center;gap:6px;padding:5px 8px;border-radius:6px;text-decoration:none;color:#374151;font-size:.8rem}
.msg-link:hover{background:#f3f4f6}
.msg-link.active{background:#dbeafe;color:#1d4ed8}
.msg-link-id{font-family:monospace;font-size:.7rem;color:#9ca3af;min-width:38px}
.msg-link-name{flex:1;white-space:nowrap;overflow:hidden;text-overflow:ellipsis}
.msg-link-ch{font-size:.65rem;color:#9ca3af;text-transform:uppercase}
.preview-main{flex:1;background:#f3f4f6;padding:32px;overflow-y:auto}
.preview-empty{display:flex;align-items:center;justify-content:center;height:60vh;color:#9ca3af}
.preview-wrapper{max-width:740px;margin:0 auto}
.preview-cta{display:inline-block;padding:10px 24px;border-radius:6px;color:#fff;font-weight:600;font-size:.9rem;background:#3b82f6}
.token{background:#fef3c7;color:#92400e;padding:1px 4px;border-radius:3px;font-family:monospace;font-size:.85em}
.no-content-notice{background:#f9fafb;border:2px dashed #d1d5db;border-radius:8px;padding:24px;text-align:center;color:#6b7280;margin:20px}
.email-frame{background:#fff;border-radius:12px;box-shadow:0 4px 24px rgba(0,0,0,.08);overflow:hidden;max-width:640px;margin:0 auto}
.email-header{padding:16px 20px;border-bottom:1px solid #f3f4f6;font-size:.85rem;color:#6b7280}
.email-label{font-weight:600;color:#374151;display:inline-block;width:70px}
.email-subject-line{font-size:1.1rem;font-weight:600;color:#111827}
.email-preheader{font-size:.8rem;color:#9ca3af;padding:0 20px;margin-top:4px}
.email-body{padding:24px 20px;font-size:.9rem;line-height:1.7;color:#374151}
.inapp-backdrop{background:rgba(0,0,0,.3);border-radius:12px;padding:60px 20px;display:flex;justify-content:center}
.inapp-modal{background:#fff;border-radius:16px;padding:28px 24px;max-width:380px;width:100%}
.inapp-title{font-size:1.1rem;font-weight:700;margin-bottom:12px}
.inapp-body{font-size:.9rem;color:#4b5563;line-height:1.6;margin-bottom:20px}
.phone{background:#fff;border-radius:32px;max-width:340px;margin:0 auto;overflow:hidden;border:6px solid #1a1a1a}
.sms-header{background:#f2f2f7;padding:12px 16px;text-align:center;font-weight:600}
.sms-body{padding:20px 16px;min-height:200px}
.sms-bubble{background:#e5e5ea;padding:10px 14px;border-radius:18px;font-size:.9rem;line-height:1.5;max-width:85%;display:inline-block}
.push-phone{background:linear-gradient(135deg,#667eea 0%,#764ba2 100%);padding:40px 12px 20px;min-height:300px}
.push-card{background:rgba(255,255,255,.95);border-radius:14px;padding:12px;display:flex;gap:10px}
.push-icon{width:36px;height:36px;border-radius:8px;background:#f97316;color:#fff;display:flex;align-items:center;justify-content:center;font-weight:700}
.push-app-name{font-size:.7rem;color:#6b7280;text-transform:uppercase}
.push-title{font-size:.85rem;font-weight:600}
.push-body-text{font-size:.8rem;color:#4b5563}
.details-card{background:#fff;border-radius:12px;padding:20px 24px;margin-top:24px}
.details-grid{display:grid;grid-template-columns:1fr 1fr;gap:8px 24px;font-size:.85rem}
.nav-bar{display:flex;justify-content:space-between;margin-top:20px}
.nav-btn{padding:6px 14px;border-radius:6px;border:1px solid #d1d5db;background:#fff;color:#374151;font-size:.8rem;text-decoration:none}
.channel-label{display:inline-block;padding:3px 10px;border-radius:9999px;font-size:.7rem;font-weight:700;text-transform:uppercase;background:#dbeafe;color:#1d4ed8}
.page-footer{text-align:center;padding:24px;font-size:.8rem;color:#9ca3af;border-top:1px solid #e5e7eb}
"""

# Mirrors view_state.ViewerState; parsed copy comes precomputed from message_content
_VIEWER_JS = """
const messages = JSON.parse(document.getElementById('msg-data').textContent);
const parsedContent = JSON.parse(document.getElementById('content-data').textContent);
const NOT_GENERATED = 'Message copy not yet generated.';

function esc(s) { const d = document.createElement('div'); d.textContent = s == null ? '' : s; return d.innerHTML; }
function primaryChannel(m) { return m.channel || (m.channels && m.channels[0]) || 'email'; }

function md(text) {
  if (!text) return '';
  return esc(text)
    .replace(/\\*\\*\\[(.+?)\\]\\*\\*/g, '<span class="preview-cta">$1</span>')
    .replace(/\\*\\*(.+?)\\*\\*/g, '<strong>$1</strong>')
    .replace(/\\*(.+?)\\*/g, '<em>$1</em>')
    .replace(/\\{\\{(\\w+)\\}\\}/g, '<span class="token">{{$1}}</span>')
    .replace(/\\n\\n/g, '</p><p>')
    .replace(/\\n/g, '<br>');
}

function placeholder(msg) {
  return '<div class="no-content-notice">' + NOT_GENERATED +
    '<br><br><span style="font-size:.8rem">Run the <strong>generate-messages</strong> skill to create copy.</span></div>' +
    (msg.comments ? '<p style="color:#6b7280;font-size:.85rem"><strong>Notes:</strong> ' + esc(msg.comments) + '</p>' : '');
}

function renderEmail(msg, p) {
  const subject = (p && p.subject) || msg.subject || '(Subject not generated)';
  const preheader = (p && p.preheader) || msg.preheader || '';
  return '<div class="email-frame"><div class="email-header">' +
    '<div><span class="email-label">From:</span> ' + esc(msg.from) + '</div>' +
    '<div><span class="email-label">To:</span> {{first_name}} &lt;user@example.com&gt;</div>' +
    '<div><span class="email-label">Subject:</span> <span class="email-subject-line">' + md(subject) + '</span></div></div>' +
    (preheader ? '<div class="email-preheader">' + md(preheader) + '</div>' : '') +
    '<div class="email-body">' + (p ? '<p>' + md(p.body) + '</p>' : placeholder(msg)) + '</div></div>';
}

function renderInApp(msg, p) {
  const title = (p && p.title) || msg.name || 'Notification';
  const cta = (p && p.cta) || msg.cta.text || 'OK';
  return '<div class="inapp-backdrop"><div class="inapp-modal">' +
    '<div class="inapp-title">' + md(title) + '</div>' +
    (p ? '<div class="inapp-body">' + md(p.body_text || p.body) + '</div>' : placeholder(msg)) +
    '<span class="preview-cta" style="display:block;text-align:center">' + esc(cta) + '</span></div></div>';
}

function renderSms(msg, p) {
  return '<div class="phone"><div class="sms-header">' + esc(msg.from || productName) + '</div>' +
    '<div class="sms-body"><div class="sms-bubble">' + (p ? md(p.body) : '<em>' + NOT_GENERATED + '</em>') + '</div></div></div>';
}

function renderPush(msg, p) {
  const title = (p && p.title) || msg.name || 'Notification';
  return '<div class="phone push-phone"><div class="push-card">' +
    '<div class="push-icon">' + esc(productName.charAt(0).toUpperCase()) + '</div><div>' +
    '<div class="push-app-name">' + esc(productName) + ' &middot; now</div>' +
    '<div class="push-title">' + md(title) + '</div>' +
    '<div class="push-body-text">' + (p ? md(p.body_text || p.body) : '<em>' + NOT_GENERATED + '</em>') + '</div>' +
    '</div></div></div>';
}

const renderers = { 'email': renderEmail, 'in-app': renderInApp, 'sms': renderSms, 'push': renderPush };

function conditions(items) { return items && items.length ? items.map(i => esc(i.condition)).join('; ') : '\\u2014'; }

function renderDetails(msg) {
  const row = (label, value) => '<div><strong>' + label + ':</strong></div><div>' + value + '</div>';
  return '<div class="details-card"><h3>Message Details</h3><div class="details-grid">' +
    row('Trigger', esc(msg.trigger.event) + ' (' + esc(msg.trigger.type) + ')') +
    row('Wait', esc(msg.wait)) + row('Segment', esc(msg.segment)) + row('Format', esc(msg.format)) +
    row('Guards', conditions(msg.guards)) + row('Suppressions', conditions(msg.suppressions)) +
    row('Goal', esc(msg.goal)) + (msg.comments ? row('Comments', esc(msg.comments)) : '') +
    row('Tags', (msg.tags || []).map(esc).join(', ') || '\\u2014') +
    '</div></div>';
}

let currentIdx = -1;

function renderMessage(id) {
  const idx = messages.findIndex(m => m.id === id);
  if (idx < 0) return;
  currentIdx = idx;
  const msg = messages[idx];
  const channel = primaryChannel(msg);
  const p = parsedContent[id] || null;
  const meta = stageMeta[msg.stage] || { label: msg.stage, color: '#666', bg: '#f0f0f0' };

  const header = '<div style="margin-bottom:8px;display:flex;gap:8px">' +
    '<span class="stage-badge" style="background:' + meta.bg + ';color:' + meta.color + '">' + esc(meta.label) + '</span>' +
    '<span class="channel-label">' + esc(channel) + '</span>' +
    '<span style="font-family:monospace;font-size:.8rem;color:#9ca3af">' + esc(msg.id) + '</span></div>' +
    '<h2 style="font-size:1.25rem;font-weight:700;margin:0 0 20px">' + esc(msg.name) + '</h2>';

  const preview = (renderers[channel] || renderEmail)(msg, p);
  const prevId = idx > 0 ? messages[idx - 1].id : null;
  const nextId = idx < messages.length - 1 ? messages[idx + 1].id : null;
  const nav = '<div class="nav-bar">' +
    (prevId ? '<a href="#' + encodeURIComponent(prevId) + '" class="nav-btn">&larr; ' + esc(prevId) + '</a>' : '<span></span>') +
    (nextId ? '<a href="#' + encodeURIComponent(nextId) + '" class="nav-btn">' + esc(nextId) + ' &rarr;</a>' : '<span></span>') +
    '</div>';

  const wrapper = document.getElementById('preview-wrapper');
  wrapper.innerHTML = header + preview + renderDetails(msg) + nav;
  wrapper.style.display = 'block';
  document.getElementById('empty-state').style.display = 'none';

  document.querySelectorAll('.msg-link.active').forEach(el => el.classList.remove('active'));
  const item = document.getElementById('sb-' + id);
  if (item) { item.classList.add('active'); item.scrollIntoView({ block: 'nearest' }); }
}

function onHashChange() {
  const id = location.hash.slice(1);
  if (id) renderMessage(decodeURIComponent(id));
}
window.addEventListener('hashchange', onHashChange);

document.addEventListener('keydown', e => {
  if (currentIdx < 0) return;
  let target = -1;
  if (e.key === 'ArrowDown' || e.key === 'j') target = currentIdx + 1;
  if (e.key === 'ArrowUp' || e.key === 'k') target = currentIdx - 1;
  if (target === -1 && !(e.key === 'ArrowUp' || e.key === 'k')) return;
  e.preventDefault();
  if (target >= 0 && target < messages.length) location.hash = '#' + encodeURIComponent(messages[target].id);
});

if (location.hash) onHashChange();
"""


def _sidebar(messages: List[Message]) -> str:
    groups = []
    for stage in STAGE_ORDER:
        stage_messages = [m for m in messages if m.get("stage") == stage]
        if not stage_messages:
            continue
        links = "\n".join(
            f'      <a href="{esc(fragment_for(m["id"]))}" class="msg-link" id="sb-{esc(m["id"])}" data-id="{esc(m["id"])}">'
            f'<span class="msg-link-id">{esc(m["id"])}</span>'
            f'<span class="msg-link-name">{esc(m.get("name"))}</span>'
            f'<span class="msg-link-ch">{esc(primary_channel(m))}</span></a>'
            for m in stage_messages
        )
        groups.append(f"""    <div class="stage-group">
      <div class="stage-group-header">{stage_badge(stage)}<span class="text-xs text-gray-400">{len(stage_messages)}</span></div>
{links}
    </div>""")
    return "\n".join(groups)


def generate_message_viewer(
    messages: List[Message],
    analysis: Analysis,
    message_content: Optional[Dict[str, str]] = None,
) -> str:
    """Channel previews. `message_content` maps ID → Markdown body (see message_content.load_message_content)."""
    company = analysis["company"]
    parsed = parse_all_content(messages, message_content or {})
    missing = sorted(mid for mid, p in parsed.items() if p is None)
    if missing:
        logger.info("No copy yet for %d messages: %s", len(missing), ", ".join(missing))

    parts = []
    parts.append(f"""<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="UTF-8">
<meta name="viewport" content="width=device-width, initial-scale=1.0">
<title>{esc(company["name"])} - Message Previews</title>
<style>{_VIEWER_CSS}</style>
</head>
<body>
<script id="msg-data" type="application/json">{embed_json(messages)}</script>
<script id="content-data" type="application/json">{embed_json(parsed)}</script>

<div class="viewer-header">
  <div style="display:flex;align-items:center;gap:16px">
    <a href="dashboard.html">&larr; Dashboard</a>
    <h1 style="font-size:1rem;font-weight:700;margin:0">{esc(company["name"])} &mdash; Message Previews</h1>
  </div>
  <span style="font-size:.8rem;color:#9ca3af">{len(messages)} messages</span>
</div>

<div class="viewer-layout">
  <div class="viewer-sidebar">
{_sidebar(messages)}
  </div>
  <div class="preview-main" id="preview-main">
    <div class="preview-empty" id="empty-state">Select a message from the sidebar to preview</div>
    <div class="preview-wrapper" id="preview-wrapper" style="display:none"></div>
  </div>
</div>
""")

    parts.append(
        "<script>\n"
        f"const productName = {embed_json(company['name'])};\n"
        f"const stageMeta = {embed_json(STAGE_META)};\n"
        f"{_VIEWER_JS}</script>"
    )
    parts.append(FOOTER)
    parts.append("</body>\n</html>\n")
    return "\n".join(parts)
