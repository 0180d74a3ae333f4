"""Shared fixtures for the Mango Lollipop test suite."""
import copy
import json
import sys
from pathlib import Path

import pytest

# Add project root to path so imports work
PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT))


# ── Canonical records matching analysis.json / matrix.json ──────────────

ANALYSIS = {
    "path": "fresh",
    "company": {
        "name": "Acme Notes",
        "product_type": "B2B SaaS note-taking",
        "target_audience": "Small product teams",
        "key_value_prop": "Shared notes that stay organised",
        "aha_moment": "First shared project",
        "pricing_model": "Freemium with 14-day trial",
        "key_features": ["projects", "sharing", "search"],
    },
    "channels": ["email", "in-app", "push"],
    "voice": {
        "tone": "friendly",
        "formality": 2,
        "emoji_usage": "light",
        "sample_phrases": ["You're all set", "Nice work"],
        "sender_personas": ["Maya from Acme"],
    },
    "events": {
        "identity": ["user.signed_up", "user.password_reset_requested"],
        "activation": ["project.created"],
        "engagement": ["note.shared"],
        "conversion": ["trial.ending"],
        "retention": [],
    },
    "tags": {
        "sources": ["source:organic"],
        "plans": ["free", "trial"],
        "segments": ["new"],
        "features": ["projects"],
    },
    "recommendations": ["Start with the welcome sequence", "Add an upgrade nudge before trial end"],
}


def _message(**overrides):
    msg = {
        "id": "AQ-1",
        "stage": "AQ",
        "name": "Welcome",
        "classification": "lifecycle",
        "trigger": {"event": "user.signed_up", "type": "event"},
        "wait": "P0D",
        "guards": [],
        "suppressions": [],
        "subject": "Welcome to {{product_name}}",
        "body": "Thanks for joining.",
        "cta": {"text": "Get started", "url": "{{app_url}}"},
        "channels": ["email"],
        "format": "rich",
        "from": "Maya <maya@acme.test>",
        "segment": "all_new_users",
        "tags": [],
        "goal": "First login",
        "comments": "",
    }
    msg.update(overrides)
    return msg


MESSAGES = [
    _message(
        id="TX-1", stage="TX", name="Password reset", classification="transactional",
        trigger={"event": "user.password_reset_requested", "type": "event"},
        subject="Reset your password", cta={"text": "Reset password"},
        format="plain", segment="all_users", goal="Account recovery",
    ),
    _message(
        id="AQ-1", channels=["email", "in-app"],
        suppressions=[{"condition": "user.unsubscribed"}],
        tags=["source:organic", "plan:free"],
    ),
    _message(
        id="AQ-2", name="Getting started tips", wait="P1D",
        guards=[{"condition": "no project created"}],
        subject="Three tips for your first day", tags=["plan:free"],
    ),
    _message(
        id="AC-1", stage="AC", name="Create your first project",
        trigger={"event": "user.signed_up", "type": "behavioral"},
        wait="P3D", channels=["in-app"], cta={"text": "New project"},
        goal="First project", tags=["feature:projects"],
    ),
    _message(
        id="RV-1", stage="RV", name="Trial ending",
        trigger={"event": "trial.ending", "type": "scheduled"},
        wait="PT12H", channels=["email", "push"], cta={"text": "Upgrade"},
        subject="Your trial ends tomorrow", goal="Upgrade", tags=["plan:trial"],
        comments="Mention the annual discount",
    ),
]

AQ1_CONTENT = """---
id: AQ-1
stage: AQ
---

## Email

**Subject:** Welcome to Acme, {{first_name}}
**Preheader:** Your workspace is ready

Hi {{first_name}},

Your notes now live in one place.

**[Open Acme]**

---

## In-App

**Title:** Welcome aboard
**Body:** Take the two-minute tour.
**CTA:** Start tour
"""


@pytest.fixture
def analysis():
    return copy.deepcopy(ANALYSIS)


@pytest.fixture
def messages():
    return copy.deepcopy(MESSAGES)


@pytest.fixture
def project_dir(tmp_path):
    """A project directory as the skills leave it: config, analysis, matrix and one message file."""
    project = tmp_path / "acme"
    (project / "messages" / "AQ").mkdir(parents=True)
    (project / "mango-lollipop.json").write_text(json.dumps({
        "name": "acme",
        "version": "0.1.0",
        "stage": "analyzed",
        "path": "fresh",
        "channels": ["email", "in-app", "push"],
        "analysis": "analysis.json",
        "matrix": None,
    }))
    (project / "analysis.json").write_text(json.dumps(ANALYSIS))
    (project / "matrix.json").write_text(json.dumps({"messages": MESSAGES}))
    (project / "messages" / "AQ" / "AQ-1-welcome.md").write_text(AQ1_CONTENT)
    return project
