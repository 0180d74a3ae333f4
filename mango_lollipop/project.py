"""
Project directory operations — everything that touches the filesystem.

A project directory holds:
    mango-lollipop.json          project config, written by init
    analysis.json, matrix.json   written by the assistant skills
    matrix.xlsx, *.html, journey-map.md   written here, from the two JSON files
    messages/<STAGE>/*.md        per-message copy
    CLAUDE.md, .claude/skills/   skill instructions, copied in by init

The builders (workbook, journey_map, html_views) stay pure; this module
reads their inputs and writes their outputs.
"""
import errno
import json
import logging
import shutil
from collections import Counter
from datetime import datetime, timezone
from pathlib import Path

from .config import (
    ANALYSIS_FILENAME,
    CONFIG_FILENAME,
    DASHBOARD_FILENAME,
    JOURNEY_MAP_FILENAME,
    MATRIX_FILENAME,
    MESSAGES_DIRNAME,
    OVERVIEW_FILENAME,
    PROJECT_VERSION,
    SCAFFOLD_DIR,
    VIEWER_FILENAME,
    WORKBOOK_FILENAME,
)
from .html_views import generate_dashboard, generate_message_viewer, generate_overview
from .journey_map import journey_map_markdown
from .message_content import load_message_content
from .schema import STAGE_ORDER, message_channels, validate_analysis, validate_message
from .workbook import flatten_tag_definitions, generate_matrix_workbook, write_workbook

logger = logging.getLogger(__name__)

# Which skill produces each input file
PRODUCED_BY = {
    ANALYSIS_FILENAME: "start",
    MATRIX_FILENAME: "generate-matrix",
}


class ProjectFileMissing(FileNotFoundError):
    """A project input file is absent. The message names the skill that writes it."""

    def __init__(self, project_dir, filename):
        self.project_dir = Path(project_dir)
        self.filename = filename
        skill = PRODUCED_BY.get(filename)
        hint = f" Run the {skill} skill first." if skill else ""
        self.message = f"No {filename} in {self.project_dir}.{hint}"
        super().__init__(errno.ENOENT, self.message, str(self.project_dir / filename))

    def __str__(self):
        return self.message


# ── init ───────────────────────────────────────────────────────

def _copy_missing(src: Path, dest: Path, copied: list):
    if dest.exists():
        logger.debug("Keeping existing %s", dest)
        return
    dest.parent.mkdir(parents=True, exist_ok=True)
    shutil.copy2(src, dest)
    copied.append(dest)


def init_project(name="my-project", parent=None):
    """Create the project skeleton. Returns the project directory.

    Existing files are never overwritten, so re-running init on a live
    project only fills in what is missing.
    """
    project_dir = (Path(parent) if parent else Path.cwd()) / name
    project_dir = project_dir.resolve()
    project_dir.mkdir(parents=True, exist_ok=True)

    for stage in STAGE_ORDER:
        (project_dir / MESSAGES_DIRNAME / stage).mkdir(parents=True, exist_ok=True)

    copied = []
    claude_md = SCAFFOLD_DIR / "CLAUDE.md"
    if claude_md.exists():
        _copy_missing(claude_md, project_dir / "CLAUDE.md", copied)
    for skill in sorted((SCAFFOLD_DIR / "skills").glob("*.md")):
        _copy_missing(skill, project_dir / ".claude" / "skills" / skill.name, copied)
    logger.info("Copied %d scaffold files into %s", len(copied), project_dir)

    config_path = project_dir / CONFIG_FILENAME
    if not config_path.exists():
        config = {
            "name": name,
            "version": PROJECT_VERSION,
            "created": datetime.now(timezone.utc).isoformat(),
            "stage": "initialized",
            "path": None,
            "channels": [],
            "analysis": None,
            "matrix": None,
        }
        config_path.write_text(json.dumps(config, indent=2) + "\n", encoding="utf-8")

    return project_dir


# ── Loading ────────────────────────────────────────────────────

def load_json(path):
    with open(path, encoding="utf-8") as f:
        return json.load(f)


def _require(project_dir: Path, filename: str) -> Path:
    path = project_dir / filename
    if not path.exists():
        raise ProjectFileMissing(project_dir, filename)
    return path


def load_project(project_dir):
    """(analysis, messages) from a project directory. Matrix first: it is the usual thing missing."""
    project_dir = Path(project_dir)
    matrix = load_json(_require(project_dir, MATRIX_FILENAME))
    analysis = load_json(_require(project_dir, ANALYSIS_FILENAME))
    return analysis, matrix.get("messages", [])


def validate_project(project_dir):
    """ValidationResult for analysis.json and for each message, keyed by file name / message ID."""
    analysis, messages = load_project(project_dir)
    results = {ANALYSIS_FILENAME: validate_analysis(analysis)}
    for idx, msg in enumerate(messages):
        key = msg.get("id") if isinstance(msg, dict) and isinstance(msg.get("id"), str) else f"#{idx}"
        results[key] = validate_message(msg)
    invalid = sum(1 for r in results.values() if not r.valid)
    logger.info("Validated %d records in %s, %d invalid", len(results), project_dir, invalid)
    return results


# ── Exports ────────────────────────────────────────────────────

def export_excel(project_dir):
    project_dir = Path(project_dir)
    analysis, messages = load_project(project_dir)
    wb = generate_matrix_workbook(
        messages,
        analysis.get("events") or {},
        flatten_tag_definitions(analysis),
        analysis,
    )
    out_path = project_dir / WORKBOOK_FILENAME
    write_workbook(wb, out_path)
    return out_path


def export_html(project_dir):
    """Write dashboard, overview and message viewer. Returns the three paths in that order."""
    project_dir = Path(project_dir)
    analysis, messages = load_project(project_dir)
    content = load_message_content(project_dir)

    outputs = [
        (DASHBOARD_FILENAME, generate_dashboard(messages, analysis)),
        (OVERVIEW_FILENAME, generate_overview(messages, analysis)),
        (VIEWER_FILENAME, generate_message_viewer(messages, analysis, content)),
    ]
    paths = []
    for filename, html_text in outputs:
        path = project_dir / filename
        path.write_text(html_text, encoding="utf-8")
        logger.info("Wrote %s (%d bytes)", path, len(html_text))
        paths.append(path)
    return paths


def export_journey_map(project_dir):
    project_dir = Path(project_dir)
    analysis, messages = load_project(project_dir)
    company_name = (analysis.get("company") or {}).get("name")
    title = f"{company_name} Customer Journey" if company_name else "Customer Journey"
    path = project_dir / JOURNEY_MAP_FILENAME
    path.write_text(journey_map_markdown(messages, title), encoding="utf-8")
    logger.info("Wrote %s", path)
    return path


# ── status ─────────────────────────────────────────────────────

def summarize(messages):
    """Counts printed by `status`."""
    by_stage = Counter(m.get("stage") for m in messages)
    channel_uses = Counter(ch for m in messages for ch in message_channels(m))
    tag_counts = Counter(tag for m in messages for tag in m.get("tags", []))
    return {
        "total": len(messages),
        "transactional": sum(1 for m in messages if m.get("classification") == "transactional"),
        "lifecycle": sum(1 for m in messages if m.get("classification") == "lifecycle"),
        "by_stage": {stage: by_stage[stage] for stage in STAGE_ORDER if by_stage[stage]},
        "by_channel": dict(channel_uses),
        "top_tags": tag_counts.most_common(10),
    }


def status_messages(config, project_dir):
    """Messages for `status`: the config's embedded matrix, else matrix.json beside it, else None."""
    matrix = config.get("matrix")
    if isinstance(matrix, dict) and matrix.get("messages"):
        return matrix["messages"]
    matrix_path = Path(project_dir) / MATRIX_FILENAME
    if matrix_path.exists():
        return load_json(matrix_path).get("messages", [])
    return None
