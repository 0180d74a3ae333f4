"""
Matrix workbook — matrix.xlsx with five sheets.

    Transactional Messages | Lifecycle Matrix | Event Taxonomy | Tags | Channel Strategy

Each sheet is first built as a list of flat row dicts (the *_rows functions),
then written through openpyxl. Input is assumed to be validated.
"""
import logging
from typing import Dict, List, Optional

from openpyxl import Workbook
from openpyxl.cell.cell import ILLEGAL_CHARACTERS_RE
from openpyxl.styles import Font
from openpyxl.utils import get_column_letter

from .config import COLUMN_MAX_WIDTH
from .schema import (
    CHANNELS,
    EVENT_CATEGORIES,
    STAGE_LABELS,
    STAGE_ORDER,
    Analysis,
    EventTaxonomy,
    Message,
    message_channels,
)

logger = logging.getLogger(__name__)

EMPTY = "—"

TRANSACTIONAL_COLUMNS = ["ID", "Name", "Trigger Event", "Trigger Type", "Wait", "Channels", "CTA", "From", "Tags"]
LIFECYCLE_COLUMNS = [
    "ID", "Stage", "Name", "Trigger Event", "Trigger Type", "Wait", "Guards", "Suppressions",
    "Channels", "CTA", "Goal", "Segment", "Tags", "Format", "From",
]
EVENT_TAXONOMY_COLUMNS = ["Category", "Event", "Used By"]
TAG_COLUMNS = ["Tag", "Message Count", "Used By"]
CHANNEL_STRATEGY_COLUMNS = ["Channel", "Total Messages"] + [STAGE_LABELS[s] for s in STAGE_ORDER]


# ── Cell helpers ───────────────────────────────────────────────

def _conditions(items) -> str:
    if not items:
        return EMPTY
    return "; ".join(item["condition"] for item in items)


def _joined(values) -> str:
    return ", ".join(values)


def flatten_tag_definitions(analysis: Analysis) -> List[str]:
    """analysis.tags as one list: sources as-is, then plan:/segment:/feature: prefixed."""
    tags = analysis.get("tags") or {}
    flat = list(tags.get("sources") or [])
    flat += [f"plan:{p}" for p in tags.get("plans") or []]
    flat += [f"segment:{s}" for s in tags.get("segments") or []]
    flat += [f"feature:{f}" for f in tags.get("features") or []]
    return flat


# ── Sheet rows ─────────────────────────────────────────────────

def transactional_rows(messages: List[Message]) -> List[Dict]:
    return [
        {
            "ID": m["id"],
            "Name": m["name"],
            "Trigger Event": m["trigger"]["event"],
            "Trigger Type": m["trigger"]["type"],
            "Wait": m["wait"],
            "Channels": _joined(message_channels(m)),
            "CTA": m["cta"]["text"],
            "From": m["from"],
            "Tags": _joined(m["tags"]),
        }
        for m in messages
        if m["classification"] == "transactional"
    ]


def lifecycle_rows(messages: List[Message]) -> List[Dict]:
    return [
        {
            "ID": m["id"],
            "Stage": STAGE_LABELS.get(m["stage"], m["stage"]),
            "Name": m["name"],
            "Trigger Event": m["trigger"]["event"],
            "Trigger Type": m["trigger"]["type"],
            "Wait": m["wait"],
            "Guards": _conditions(m["guards"]),
            "Suppressions": _conditions(m["suppressions"]),
            "Channels": _joined(message_channels(m)),
            "CTA": m["cta"]["text"],
            "Goal": m["goal"],
            "Segment": m["segment"],
            "Tags": _joined(m["tags"]),
            "Format": m["format"],
            "From": m["from"],
        }
        for m in messages
        if m["classification"] == "lifecycle"
    ]


def event_taxonomy_rows(events: EventTaxonomy, messages: List[Message]) -> List[Dict]:
    rows = []
    for category in EVENT_CATEGORIES:
        for event in events.get(category) or []:
            used_by = [m["id"] for m in messages if m["trigger"]["event"] == event]
            rows.append({
                "Category": category.capitalize(),
                "Event": event,
                "Used By": _joined(used_by) or EMPTY,
            })
    return rows


def tag_rows(messages: List[Message], tag_definitions: List[str]) -> List[Dict]:
    all_tags = set(tag_definitions)
    for m in messages:
        all_tags.update(m["tags"])

    rows = []
    for tag in sorted(all_tags):
        used_by = [m["id"] for m in messages if tag in m["tags"]]
        rows.append({
            "Tag": tag,
            "Message Count": len(used_by),
            "Used By": _joined(used_by) or EMPTY,
        })
    return rows


def channel_strategy_rows(messages: List[Message]) -> List[Dict]:
    rows = []
    for channel in CHANNELS:
        with_channel = [m for m in messages if channel in message_channels(m)]
        if not with_channel:
            continue
        row = {"Channel": channel, "Total Messages": len(with_channel)}
        for stage in STAGE_ORDER:
            row[STAGE_LABELS[stage]] = sum(1 for m in with_channel if m["stage"] == stage)
        rows.append(row)
    return rows


# ── Workbook ───────────────────────────────────────────────────

def column_widths(columns: List[str], rows: List[Dict], max_width: int = COLUMN_MAX_WIDTH) -> List[int]:
    """Longest rendered value per column (header included) plus padding, capped."""
    widths = []
    for col in columns:
        longest = len(col)
        for row in rows:
            longest = max(longest, len(str(row.get(col, ""))))
        widths.append(min(longest + 2, max_width))
    return widths


def _cell_value(value):
    # Control characters are not allowed in xlsx XML
    if isinstance(value, str):
        return ILLEGAL_CHARACTERS_RE.sub("", value)
    return value


def _append_sheet(wb: Workbook, title: str, columns: List[str], rows: List[Dict]):
    ws = wb.create_sheet(title=title)
    ws.append(columns)
    for cell in ws[1]:
        cell.font = Font(bold=True)
    for row in rows:
        ws.append([_cell_value(row.get(col, "")) for col in columns])
        # Message text is data; a leading "=" must not become a formula
        for cell in ws[ws.max_row]:
            if isinstance(cell.value, str) and cell.value.startswith("="):
                cell.data_type = "s"
    for idx, width in enumerate(column_widths(columns, rows), 1):
        ws.column_dimensions[get_column_letter(idx)].width = width
    return ws


def generate_matrix_workbook(
    messages: List[Message],
    events: EventTaxonomy,
    tag_definitions: List[str],
    analysis: Optional[Analysis] = None,
) -> Workbook:
    wb = Workbook()
    wb.remove(wb.active)

    _append_sheet(wb, "Transactional Messages", TRANSACTIONAL_COLUMNS, transactional_rows(messages))
    _append_sheet(wb, "Lifecycle Matrix", LIFECYCLE_COLUMNS, lifecycle_rows(messages))
    _append_sheet(wb, "Event Taxonomy", EVENT_TAXONOMY_COLUMNS, event_taxonomy_rows(events, messages))
    _append_sheet(wb, "Tags", TAG_COLUMNS, tag_rows(messages, tag_definitions))
    _append_sheet(wb, "Channel Strategy", CHANNEL_STRATEGY_COLUMNS, channel_strategy_rows(messages))

    if analysis:
        company = analysis.get("company") or {}
        if company.get("name"):
            wb.properties.title = f"{company['name']} Lifecycle Matrix"

    logger.debug("Built workbook with %d sheets from %d messages", len(wb.sheetnames), len(messages))
    return wb


def write_workbook(workbook: Workbook, path) -> None:
    """Save to disk. OSError from an unwritable path propagates."""
    workbook.save(str(path))
    logger.info("Wrote workbook %s", path)
