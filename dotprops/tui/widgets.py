"""dotprops TUI Widgets - Panels for the properties viewer."""

from __future__ import annotations

from rich.markup import escape
from textual.app import ComposeResult
from textual.message import Message
from textual.reactive import reactive
from textual.widgets import Label, ListItem, ListView, Static


class SummaryPanel(Static):
    """Sidebar panel showing file path and entry counts."""

    DEFAULT_CSS = """
    SummaryPanel {
        width: 32;
        border: solid $accent;
        padding: 1;
        overflow-y: auto;
    }
    SummaryPanel .summary-title {
        text-style: bold;
        color: $text;
        margin-bottom: 1;
    }
    SummaryPanel .summary-key {
        color: $text-muted;
    }
    SummaryPanel .summary-val {
        color: $text;
    }
    """

    def __init__(self, path: str, group_count: int, entry_count: int, **kwargs) -> None:
        super().__init__(**kwargs)
        self._path = path
        self._group_count = group_count
        self._entry_count = entry_count

    def compose(self) -> ComposeResult:
        yield Label("dotprops", classes="summary-title")
        display = self._path if len(self._path) <= 24 else "..." + self._path[-21:]
        for key, val in (
            ("file", display),
            ("groups", str(self._group_count)),
            ("entries", str(self._entry_count)),
        ):
            yield Label(f"{key}:", classes="summary-key")
            yield Label(f"  {escape(val)}", classes="summary-val")


class GroupList(ListView):
    """List of groups in the file. Supports keyboard navigation."""

    DEFAULT_CSS = """
    GroupList {
        width: 28;
        border: solid $accent;
    }
    GroupList > ListItem {
        padding: 0 1;
    }
    GroupList > ListItem.--highlight {
        background: $accent;
    }
    """

    class GroupSelected(Message):
        """Fired when a group is selected."""

        def __init__(self, group: str, index: int) -> None:
            self.group = group
            self.index = index
            super().__init__()

    def __init__(self, groups: list[str], **kwargs) -> None:
        self._groups = groups
        super().__init__(**kwargs)

    def compose(self) -> ComposeResult:
        for name in self._groups:
            yield ListItem(Label(escape(name)))

    def _post_selected(self) -> None:
        idx = self.index or 0
        if 0 <= idx < len(self._groups):
            self.post_message(self.GroupSelected(self._groups[idx], idx))

    def on_list_view_selected(self, event: ListView.Selected) -> None:
        self._post_selected()

    def on_list_view_highlighted(self, event: ListView.Highlighted) -> None:
        self._post_selected()


class EntryPanel(Static):
    """Entries of the selected group, one ``subkey = value`` per line."""

    DEFAULT_CSS = """
    EntryPanel {
        border: solid $accent;
        padding: 1;
        overflow: auto;
    }
    EntryPanel .entry-title {
        text-style: bold;
        color: $accent;
        margin-bottom: 1;
    }
    EntryPanel .entry-body {
        color: $text;
    }
    """

    current_group = reactive("")

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._title_widget: Label | None = None
        self._body_widget: Static | None = None

    def compose(self) -> ComposeResult:
        self._title_widget = Label("Select a group", classes="entry-title")
        self._body_widget = Static("", classes="entry-body")
        yield self._title_widget
        yield self._body_widget

    def show_entries(self, group: str, entries: dict[str, str]) -> None:
        self.current_group = group
        if self._title_widget:
            self._title_widget.update(f"--- {escape(group)} ---")
        if self._body_widget:
            self._body_widget.update(self.render_entries(entries))
        self.scroll_home()

    @staticmethod
    def render_entries(entries: dict[str, str]) -> str:
        """Entry lines as markup-safe text, stored brackets shown literally."""
        if not entries:
            return "(no entries)"
        width = max(len(k) for k in entries)
        return "\n".join(escape(f"{k.ljust(width)} = {v}") for k, v in entries.items())
