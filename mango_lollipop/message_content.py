"""
Per-message copy written by the generate-messages skill.

Layout on disk:
    messages/<STAGE>/<ID>-<slug>.md

Each file is Markdown with optional YAML frontmatter, and one "## <Channel>"
section per channel. Parsing is lax: a pattern that
does not match simply leaves that field out.
"""
import logging
import re
from pathlib import Path
from typing import Dict, Optional

from .config import MESSAGES_DIRNAME
from .schema import STAGE_ORDER, Message, message_channels

logger = logging.getLogger(__name__)

CHANNEL_SECTION_NAMES = {
    "email": "Email",
    "in-app": "In-App",
    "sms": "SMS",
    "push": "Push Notification",
}

_ID_PREFIX_RE = re.compile(r"^([A-Z]+-\d+)")
_FRONTMATTER_RE = re.compile(r"^---\n[\s\S]*?\n---\n([\s\S]*)$")
_SECTION_SPLIT_RE = re.compile(r"^## ", re.MULTILINE)
_TRAILING_RULE_RE = re.compile(r"\n---\s*$")

# (result key, pattern), applied in order; the first match is removed from the body
_LABELLED_FIELDS = [
    ("subject", re.compile(r"\*\*Subject:\*\*\s*(.+)")),
    ("preheader", re.compile(r"\*\*Preheader:\*\*\s*(.+)")),
    ("title", re.compile(r"\*\*Title:\*\*\s*(.+)")),
    ("body_text", re.compile(r"\*\*Body:\*\*\s*(.+)")),
    ("cta", re.compile(r"\*\*CTA:\*\*\s*(.+)")),
]
_CTA_BUTTON_RE = re.compile(r"\*\*\[(.+?)\]\*\*")


def strip_frontmatter(raw: str) -> str:
    match = _FRONTMATTER_RE.match(raw)
    return match.group(1).strip() if match else raw


def message_id_from_filename(filename: str) -> Optional[str]:
    match = _ID_PREFIX_RE.match(filename)
    return match.group(1) if match else None


def load_message_content(project_dir) -> Dict[str, str]:
    """Map message ID → Markdown body (frontmatter stripped) for every messages/<STAGE>/*.md."""
    content = {}
    messages_dir = Path(project_dir) / MESSAGES_DIRNAME
    if not messages_dir.is_dir():
        return content

    for stage in STAGE_ORDER:
        stage_dir = messages_dir / stage
        if not stage_dir.is_dir():
            continue
        for path in sorted(stage_dir.glob("*.md")):
            message_id = message_id_from_filename(path.name)
            if not message_id:
                logger.debug("Skipping %s: no message ID prefix", path)
                continue
            content[message_id] = strip_frontmatter(path.read_text(encoding="utf-8"))

    logger.info("Loaded copy for %d messages from %s", len(content), messages_dir)
    return content


def primary_channel(msg: Message) -> str:
    if msg.get("channel"):
        return msg["channel"]
    channels = message_channels(msg)
    return channels[0] if channels else "email"


def parse_channel_content(raw: Optional[str], channel: str) -> Optional[Dict[str, str]]:
    """Pull the section for `channel` out of a message file and split its labelled lines.

    Returns None when there is no content at all. Keys present only on a match:
    subject, preheader, title, body_text, cta, cta_button. `raw` is the section
    text, `body` whatever is left after the labelled lines are removed.
    """
    if not raw:
        return None

    section_name = CHANNEL_SECTION_NAMES.get(channel, channel)
    body = raw
    for section in _SECTION_SPLIT_RE.split(raw):
        if section.startswith(section_name):
            body = section[len(section_name):].strip()
            break

    body = _TRAILING_RULE_RE.sub("", body).strip()
    result = {"raw": body}

    for key, pattern in _LABELLED_FIELDS:
        match = pattern.search(body)
        if match:
            result[key] = match.group(1).strip()
            body = body.replace(match.group(0), "", 1)

    button = _CTA_BUTTON_RE.search(body)
    if button:
        result["cta_button"] = button.group(1).strip()

    result["body"] = body.strip()
    return result


def parse_all_content(messages, message_content: Dict[str, str]) -> Dict[str, Optional[Dict[str, str]]]:
    """Parsed section for every message, keyed by ID, using each message's primary channel."""
    return {
        m["id"]: parse_channel_content(message_content.get(m["id"]), primary_channel(m))
        for m in messages
    }
