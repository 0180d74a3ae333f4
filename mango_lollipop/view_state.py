"""
UI state behind the interactive pages, kept out of the rendering code.

DashboardState holds the dashboard's filters, sort and expanded rows;
visible_messages() is the pure function the dashboard script mirrors.
ViewerState holds the message viewer's selection and keyboard stepping.
Both serialize to plain dicts.
"""
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set

from .schema import Message, message_channels

VIEWS = ("all", "tx", "lc")
SORTABLE_COLUMNS = ("id", "stage", "name", "wait")

NEXT_KEYS = ("ArrowDown", "j")
PREV_KEYS = ("ArrowUp", "k")


@dataclass
class DashboardState:
    view: str = "all"
    active_stages: Set[str] = field(default_factory=set)
    active_channels: Set[str] = field(default_factory=set)
    active_tags: Set[str] = field(default_factory=set)
    sort_col: str = "id"
    sort_asc: bool = True
    expanded: Set[str] = field(default_factory=set)

    def set_view(self, view: str):
        if view not in VIEWS:
            raise ValueError(f"Unknown view: {view!r}. Must be one of: {', '.join(VIEWS)}")
        self.view = view

    def toggle_stage(self, stage: str):
        _toggle(self.active_stages, stage)

    def toggle_channel(self, channel: str):
        _toggle(self.active_channels, channel)

    def toggle_tag(self, tag: str):
        _toggle(self.active_tags, tag)

    def clear_filters(self):
        self.active_stages.clear()
        self.active_channels.clear()
        self.active_tags.clear()
        self.view = "all"

    def sort_by(self, col: str):
        """Same column flips direction; a new column starts ascending."""
        if self.sort_col == col:
            self.sort_asc = not self.sort_asc
        else:
            self.sort_col = col
            self.sort_asc = True

    def toggle_detail(self, message_id: str):
        _toggle(self.expanded, message_id)

    def to_dict(self) -> Dict:
        return {
            "view": self.view,
            "active_stages": sorted(self.active_stages),
            "active_channels": sorted(self.active_channels),
            "active_tags": sorted(self.active_tags),
            "sort_col": self.sort_col,
            "sort_asc": self.sort_asc,
            "expanded": sorted(self.expanded),
        }

    @classmethod
    def from_dict(cls, data: Dict) -> "DashboardState":
        return cls(
            view=data.get("view", "all"),
            active_stages=set(data.get("active_stages", [])),
            active_channels=set(data.get("active_channels", [])),
            active_tags=set(data.get("active_tags", [])),
            sort_col=data.get("sort_col", "id"),
            sort_asc=data.get("sort_asc", True),
            expanded=set(data.get("expanded", [])),
        )


def _toggle(values: Set[str], value: str):
    if value in values:
        values.discard(value)
    else:
        values.add(value)


def _sort_key(col):
    def key(msg):
        value = msg.get(col)
        if value is None:
            return ""
        if isinstance(value, str):
            return value.lower()
        return str(value)
    return key


def visible_messages(messages: List[Message], state: DashboardState) -> List[Message]:
    """Rows the dashboard shows for `state`: OR inside a filter, AND across filters, then sorted."""
    rows = list(messages)

    if state.view == "tx":
        rows = [m for m in rows if m.get("classification") == "transactional"]
    elif state.view == "lc":
        rows = [m for m in rows if m.get("classification") == "lifecycle"]

    if state.active_stages:
        rows = [m for m in rows if m.get("stage") in state.active_stages]

    if state.active_channels:
        rows = [m for m in rows if any(ch in state.active_channels for ch in message_channels(m))]

    if state.active_tags:
        rows = [m for m in rows if any(t in state.active_tags for t in m.get("tags", []))]

    rows.sort(key=_sort_key(state.sort_col), reverse=not state.sort_asc)
    return rows


@dataclass
class ViewerState:
    """Selection in the message viewer. -1 means nothing is selected yet."""
    current_index: int = -1

    def current_id(self, messages: List[Message]) -> Optional[str]:
        if 0 <= self.current_index < len(messages):
            return messages[self.current_index]["id"]
        return None

    def select(self, messages: List[Message], message_id: str) -> bool:
        """Select by ID (the page fragment). Unknown IDs leave the selection alone."""
        for idx, msg in enumerate(messages):
            if msg["id"] == message_id:
                self.current_index = idx
                return True
        return False

    def select_fragment(self, messages: List[Message], fragment: str) -> bool:
        return self.select(messages, fragment.lstrip("#")) if fragment else False

    def step(self, messages: List[Message], delta: int) -> Optional[str]:
        """Move by delta in matrix order. Past either end nothing changes."""
        if self.current_index < 0:
            return None
        target = self.current_index + delta
        if 0 <= target < len(messages):
            self.current_index = target
            return messages[target]["id"]
        return None

    def handle_key(self, messages: List[Message], key: str) -> Optional[str]:
        if key in NEXT_KEYS:
            return self.step(messages, 1)
        if key in PREV_KEYS:
            return self.step(messages, -1)
        return None

    def to_dict(self) -> Dict:
        return {"current_index": self.current_index}

    @classmethod
    def from_dict(cls, data: Dict) -> "ViewerState":
        return cls(current_index=data.get("current_index", -1))


def fragment_for(message_id: str) -> str:
    """Stable link target for a message in messages.html."""
    return f"#{message_id}"
