"""
Journey map — Mermaid flowchart of the customer journey.

Messages are grouped into one subgraph per stage (TX, AQ, AC, RV, RT, RF),
chained in matrix order within each stage, and decorated with suppression
exits and guard diamonds. Same input order, same text.

Input is assumed to be validated (see schema.validate_message).
"""
import re
from typing import Dict, List

from .schema import STAGE_LABELS, STAGE_ORDER, Message, message_channels

STAGE_STYLE = {
    "TX": {"emoji": "⚪", "fill": "#f0f0f0", "stroke": "#999"},
    "AQ": {"emoji": "\U0001f7e2", "fill": "#d4edda", "stroke": "#28a745"},
    "AC": {"emoji": "\U0001f7e5", "fill": "#cce5ff", "stroke": "#007bff"},
    "RV": {"emoji": "\U0001f7e1", "fill": "#fff3cd", "stroke": "#ffc107"},
    "RT": {"emoji": "\U0001f7e0", "fill": "#ffe5cc", "stroke": "#fd7e14"},
    "RF": {"emoji": "\U0001f7e3", "fill": "#e8d5f5", "stroke": "#6f42c1"},
}

CHANNEL_ICONS = {
    "email": "\U0001f4e7",
    "in-app": "\U0001f4f1",
    "push": "\U0001f514",
    "sms": "\U0001f4ac",
}

_NON_ALNUM_RE = re.compile(r"[^a-zA-Z0-9]")
_LABEL_BRACKETS_RE = re.compile(r"[\[\](){}]")


def sanitize_id(message_id: str) -> str:
    """Strip everything but ASCII letters and digits. Collisions are not resolved."""
    return _NON_ALNUM_RE.sub("", message_id)


def sanitize_label(text: str) -> str:
    return _LABEL_BRACKETS_RE.sub("", text.replace('"', "'"))


def channel_indicators(msg: Message) -> str:
    return "".join(CHANNEL_ICONS.get(ch, "") for ch in message_channels(msg))


def group_by_stage(messages: List[Message]) -> Dict[str, List[Message]]:
    """Stage buckets in STAGE_ORDER, preserving matrix order inside each bucket."""
    return {stage: [m for m in messages if m.get("stage") == stage] for stage in STAGE_ORDER}


def generate_journey_map(messages: List[Message]) -> str:
    """Render the messages as a Mermaid `graph TD` description."""
    lines = ["graph TD"]
    grouped = group_by_stage(messages)

    # Subgraphs, one per non-empty stage
    for stage in STAGE_ORDER:
        stage_messages = grouped[stage]
        if not stage_messages:
            continue
        style = STAGE_STYLE[stage]
        lines.append("")
        lines.append(f'    subgraph {stage}["{style["emoji"]} {STAGE_LABELS[stage]}"]')
        for msg in stage_messages:
            node_id = sanitize_id(msg["id"])
            label = sanitize_label(msg.get("name", ""))
            lines.append(f"        {node_id}[{channel_indicators(msg)} {msg['id']}: {label}]")
        lines.append("    end")

    lines.append("")

    # Sequential edges inside a stage, labelled with the wait of the later message
    for stage in STAGE_ORDER:
        stage_messages = grouped[stage]
        for prev, nxt in zip(stage_messages, stage_messages[1:]):
            lines.append(f"    {sanitize_id(prev['id'])} -->|{nxt['wait']}| {sanitize_id(nxt['id'])}")

    # Suppressions: every instance gets its own Skip node
    skip_counter = 0
    for msg in messages:
        node_id = sanitize_id(msg["id"])
        for sup in msg.get("suppressions", []):
            skip_counter += 1
            condition = sanitize_label(sup.get("condition", ""))
            lines.append(f"    {node_id} -.->|suppressed: {condition}| SKIP{skip_counter}[Skip]")

    # The one cross-stage flow: end of acquisition into activation
    aq_messages = grouped["AQ"]
    ac_messages = grouped["AC"]
    if aq_messages and ac_messages:
        last_aq = sanitize_id(aq_messages[-1]["id"])
        first_ac = ac_messages[0]
        lines.append(f"    {last_aq} -->|{first_ac['wait']}| {sanitize_id(first_ac['id'])}")

    # Guard diamonds (success path only)
    for msg in messages:
        node_id = sanitize_id(msg["id"])
        for n, guard in enumerate(msg.get("guards", []), 1):
            condition = sanitize_label(guard.get("condition", ""))
            lines.append(f"    G_{node_id}_{n}{{{condition}}} -->|Yes| {node_id}")

    lines.append("")
    for stage in STAGE_ORDER:
        if not grouped[stage]:
            continue
        style = STAGE_STYLE[stage]
        lines.append(f"    style {stage} fill:{style['fill']},stroke:{style['stroke']}")

    return "\n".join(lines)


def journey_map_markdown(messages: List[Message], title: str = "Customer Journey") -> str:
    """Wrap the diagram in a Markdown page with a fenced mermaid block."""
    stage_counts = [
        f"{STAGE_LABELS[stage]}: {len(bucket)}"
        for stage, bucket in group_by_stage(messages).items()
        if bucket
    ]
    parts = [
        f"# {title}",
        "",
        f"{len(messages)} messages ({', '.join(stage_counts) or 'none'})",
        "",
        "```mermaid",
        generate_journey_map(messages),
        "```",
        "",
    ]
    return "\n".join(parts)
