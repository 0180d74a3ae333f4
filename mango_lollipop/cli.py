#!/usr/bin/env python3
"""
Mango Lollipop CLI — scaffold a lifecycle messaging project and build its outputs.

Usage:
    mango-lollipop init [name]                 # New project folder with skills
    mango-lollipop generate                    # Which skills to run, in order
    mango-lollipop audit                       # How to audit existing messaging
    mango-lollipop view                        # Open dashboard.html in a browser
    mango-lollipop export excel [-p DIR]       # matrix.xlsx
    mango-lollipop export html [-p DIR]        # dashboard, overview, message viewer
    mango-lollipop export journey [-p DIR]     # journey-map.md (Mermaid)
    mango-lollipop status                      # Project summary
    mango-lollipop validate [-p DIR]           # Check analysis.json and matrix.json

The assistant skills write analysis.json and matrix.json; everything else is
generated from those two files.
"""
import argparse
import json
import logging
import subprocess
import sys
from pathlib import Path

from .config import (
    CONFIG_FILENAME,
    DASHBOARD_FILENAME,
    LOG_LEVEL,
    MATRIX_FILENAME,
    OPEN_BROWSER,
    PROJECT_VERSION,
    find_project_dir,
    find_project_file,
)
from .project import (
    ProjectFileMissing,
    export_excel,
    export_html,
    export_journey_map,
    init_project,
    load_json,
    load_project,
    status_messages,
    summarize,
    validate_project,
)
from .schema import STAGE_ORDER

logger = logging.getLogger(__name__)

EXPORT_TYPES = ["excel", "html", "visuals", "journey", "messages"]


def open_in_browser(path):
    if sys.platform == "darwin":
        subprocess.run(["open", str(path)])
    elif sys.platform == "linux":
        subprocess.run(["xdg-open", str(path)])
    else:
        print(f"Open in browser: {path}")


def load_config():
    """(config, project_dir), or (None, None) after telling the user why."""
    config_path = find_project_file(CONFIG_FILENAME)
    if not config_path:
        print(f"No {CONFIG_FILENAME} found. Run `mango-lollipop init <name>` first.")
        return None, None
    return load_json(config_path), config_path.parent


# ── Commands ───────────────────────────────────────────────────

def cmd_init(args):
    project_dir = init_project(args.name)
    print(f'Mango Lollipop project "{args.name}" initialized at {project_dir}')
    print()
    print("Next step:")
    print(f"  cd {args.name}")
    print("  /start")
    return 0


def cmd_generate(args):
    config, _ = load_config()
    if config is None:
        return 1

    if not config.get("analysis"):
        print("No analysis found. Run the start skill first:")
        print('  claude "Read the start skill and help me set up lifecycle messaging"')
        return 1

    print(f'Generating lifecycle messaging for "{config.get("name")}"...')
    print()
    print("Run these skills in order:")
    print()
    print("  1. Generate matrix:")
    print('     claude "Read the generate-matrix skill and build the lifecycle matrix"')
    print()
    print("  2. Generate message copy:")
    print('     claude "Read the generate-messages skill and write all message copy"')
    print()
    print("  3. Generate visuals:")
    print('     claude "Read the generate-dashboard skill and create the dashboard and journey map"')
    return 0


def cmd_audit(args):
    print("Starting lifecycle messaging audit...")
    print()
    print("Run the audit skill:")
    print('  claude "Read the audit skill and help me audit my existing lifecycle messaging"')
    print()
    print("Have your existing messages ready to paste or upload.")
    return 0


def cmd_view(args):
    dashboard = find_project_file(DASHBOARD_FILENAME)
    if not dashboard:
        print("No dashboard found. Run `mango-lollipop export html` first.")
        return 1
    print(f"Opening dashboard: {dashboard}")
    if OPEN_BROWSER:
        open_in_browser(dashboard)
    return 0


def cmd_export(args):
    if args.type not in EXPORT_TYPES:
        print(f'ERROR: Unknown export type: "{args.type}"')
        print(f"Valid types: {', '.join(EXPORT_TYPES)}")
        return 1

    if args.type == "messages":
        print("Run the generate-messages skill:")
        print('  claude "Read the generate-messages skill and regenerate all message files"')
        return 0

    project_dir = Path(args.project) if args.project else find_project_dir(MATRIX_FILENAME)
    if not project_dir:
        print(f"ERROR: No {MATRIX_FILENAME} found. Run the generate-matrix skill first.")
        return 1

    _, messages = load_project(project_dir)
    if args.type == "excel":
        out_path = export_excel(project_dir)
        print(f"Excel written: {out_path}")
        print(f"{len(messages)} messages across 5 sheets")
    elif args.type in ("html", "visuals"):
        dashboard, overview, viewer = export_html(project_dir)
        print(f"Dashboard written:   {dashboard}")
        print(f"Overview written:    {overview}")
        print(f"Message viewer:      {viewer}")
        print(f"\n3 visual outputs generated from {len(messages)} messages.")
    elif args.type == "journey":
        print(f"Journey map written: {export_journey_map(project_dir)}")
    return 0


def cmd_status(args):
    config, project_dir = load_config()
    if config is None:
        return 1

    channels = config.get("channels") or []
    print(f"Mango Lollipop Project: {config.get('name')}")
    print(f"   Path: {config.get('path') or 'not set'}")
    print(f"   Stage: {config.get('stage')}")
    print(f"   Channels: {', '.join(channels) if channels else 'not set'}")

    messages = status_messages(config, project_dir)
    if not messages:
        print()
        print("   No matrix generated yet. Run `mango-lollipop generate` to create one.")
        return 0

    summary = summarize(messages)
    print()
    print(f"   Transactional: {summary['transactional']} messages")
    print(f"   Lifecycle: {summary['lifecycle']} messages")
    print()
    print("   By stage:")
    for stage in STAGE_ORDER:
        if stage in summary["by_stage"]:
            print(f"     {stage}: {summary['by_stage'][stage]} messages")
    print()
    print("   By channel:")
    for channel, count in summary["by_channel"].items():
        print(f"     {channel}: {count} uses")
    if summary["top_tags"]:
        print()
        print("   Top tags:")
        for tag, count in summary["top_tags"]:
            print(f"     {tag}: {count}")
    return 0


def cmd_validate(args):
    project_dir = Path(args.project) if args.project else find_project_dir(MATRIX_FILENAME)
    if not project_dir:
        print(f"ERROR: No {MATRIX_FILENAME} found. Run the generate-matrix skill first.")
        return 1

    results = validate_project(project_dir)
    failed = 0
    for name, result in results.items():
        if result.valid:
            print(f"  OK    {name}")
            continue
        failed += 1
        print(f"  FAIL  {name}")
        for error in result.errors:
            print(f"          - {error}")

    print()
    if failed:
        print(f"{failed} of {len(results)} records invalid.")
        return 1
    print(f"All {len(results)} records valid.")
    return 0


# ── Entry point ────────────────────────────────────────────────

def build_parser():
    parser = argparse.ArgumentParser(
        prog="mango-lollipop",
        description="Lifecycle messaging generator",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {PROJECT_VERSION}")
    sub = parser.add_subparsers(dest="command")

    p = sub.add_parser("init", help="Initialize a new Mango Lollipop project")
    p.add_argument("name", nargs="?", default="my-project")
    p.set_defaults(func=cmd_init)

    p = sub.add_parser("generate", help="Generate the full lifecycle messaging system")
    p.set_defaults(func=cmd_generate)

    p = sub.add_parser("audit", help="Audit existing lifecycle messaging")
    p.set_defaults(func=cmd_audit)

    p = sub.add_parser("view", help="Open the visual dashboard in your browser")
    p.set_defaults(func=cmd_view)

    p = sub.add_parser("export", help="Generate outputs from project data")
    p.add_argument("type", help=f"One of: {', '.join(EXPORT_TYPES)}")
    p.add_argument("-p", "--project", help="Project directory (auto-detected if omitted)")
    p.set_defaults(func=cmd_export)

    p = sub.add_parser("status", help="Show project status")
    p.set_defaults(func=cmd_status)

    p = sub.add_parser("validate", help="Validate analysis.json and matrix.json")
    p.add_argument("-p", "--project", help="Project directory (auto-detected if omitted)")
    p.set_defaults(func=cmd_validate)

    return parser


def main(argv=None) -> int:
    logging.basicConfig(
        level=LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    parser = build_parser()
    try:
        args = parser.parse_args(argv)
    except SystemExit as e:
        return e.code if isinstance(e.code, int) else 1

    if not getattr(args, "func", None):
        parser.print_help()
        return 1

    logger.debug("Running %s", args.command)
    try:
        return args.func(args)
    except ProjectFileMissing as e:
        print(f"ERROR: {e}")
        return 1
    except json.JSONDecodeError as e:
        print(f"ERROR: Could not parse project file: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
