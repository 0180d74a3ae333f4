"""
Mango Lollipop Configuration — Central settings for the CLI and exporters.

All modules import from here. Override with environment variables (or a .env
file in the working directory):
    MANGO_LOLLIPOP_OUTPUT_DIR        — Directory scanned for project folders (default: output)
    MANGO_LOLLIPOP_LOG_LEVEL         — Logging level for the CLI (default: WARNING)
    MANGO_LOLLIPOP_COLUMN_MAX_WIDTH  — Widest workbook column, in characters (default: 60)
    MANGO_LOLLIPOP_OPEN_BROWSER      — "false" keeps `view` from launching a browser
"""
import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

# ── Paths ──────────────────────────────────────────────────────
PACKAGE_ROOT = Path(__file__).resolve().parent
SCAFFOLD_DIR = PACKAGE_ROOT / "scaffold"

OUTPUT_DIR_NAME = os.getenv("MANGO_LOLLIPOP_OUTPUT_DIR", "output")

# ── Project files ──────────────────────────────────────────────
CONFIG_FILENAME = "mango-lollipop.json"
ANALYSIS_FILENAME = "analysis.json"
MATRIX_FILENAME = "matrix.json"
WORKBOOK_FILENAME = "matrix.xlsx"
DASHBOARD_FILENAME = "dashboard.html"
OVERVIEW_FILENAME = "overview.html"
VIEWER_FILENAME = "messages.html"
JOURNEY_MAP_FILENAME = "journey-map.md"
MESSAGES_DIRNAME = "messages"

PROJECT_VERSION = "0.1.0"

# ── Rendering ──────────────────────────────────────────────────
LOG_LEVEL = os.getenv("MANGO_LOLLIPOP_LOG_LEVEL", "WARNING").upper()
COLUMN_MAX_WIDTH = int(os.getenv("MANGO_LOLLIPOP_COLUMN_MAX_WIDTH", "60"))
OPEN_BROWSER = os.getenv("MANGO_LOLLIPOP_OPEN_BROWSER", "true").lower() == "true"


# ── Helpers ────────────────────────────────────────────────────

def find_project_file(filename, cwd=None):
    """Find a project file in the working directory or one level under output/."""
    base = Path(cwd) if cwd else Path.cwd()

    direct = base / filename
    if direct.exists():
        return direct

    output_dir = base / OUTPUT_DIR_NAME
    if output_dir.is_dir():
        for project_dir in sorted(output_dir.iterdir()):
            if not project_dir.is_dir():
                continue
            candidate = project_dir / filename
            if candidate.exists():
                return candidate

    return None


def find_project_dir(filename, cwd=None):
    """Directory holding the first match of find_project_file, or None."""
    path = find_project_file(filename, cwd)
    return path.parent if path else None
