"""dotprops TUI Viewer - Textual app with 3-panel layout."""

from __future__ import annotations

import sys
from pathlib import Path

from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal
from textual.widgets import Footer, Header, Input

from dotprops.store import DotProperties
from dotprops.tui.widgets import EntryPanel, GroupList, SummaryPanel
from dotprops.writer import PropertiesWriter


class PropertiesViewerApp(App):
    """TUI viewer for grouped properties files."""

    TITLE = "dotprops Viewer"
    CSS = """
    Screen {
        layout: vertical;
    }
    #main-area {
        height: 1fr;
    }
    #search-bar {
        dock: bottom;
        display: none;
        height: 3;
        padding: 0 1;
    }
    #search-bar.visible {
        display: block;
    }
    """

    BINDINGS = [
        Binding("q", "quit", "Quit", show=True),
        Binding("slash", "toggle_search", "Search", show=True),
        Binding("escape", "close_search", "Close search", show=False),
        Binding("j", "next_group", "Next", show=True),
        Binding("k", "prev_group", "Prev", show=True),
    ]

    def __init__(self, path: str | Path, **kwargs) -> None:
        super().__init__(**kwargs)
        self._path = Path(path)
        self._grouped: dict[str, dict[str, str]] = {}
        self._all_groups: list[str] = []

    def compose(self) -> ComposeResult:
        props = DotProperties(self._path)
        self._grouped = PropertiesWriter.group(props.as_dict())
        self._all_groups = list(self._grouped)

        self.title = f"dotprops Viewer - {self._path.name}"

        yield Header()

        with Horizontal(id="main-area"):
            yield SummaryPanel(
                path=str(self._path),
                group_count=len(self._grouped),
                entry_count=len(props),
                id="summary",
            )
            yield GroupList(groups=self._all_groups, id="groups")
            yield EntryPanel(id="entries")

        yield Input(placeholder="Search groups... (Escape to close)", id="search-bar")
        yield Footer()

    def on_mount(self) -> None:
        if self._all_groups:
            self._show(self._all_groups[0])
            self.query_one("#groups", GroupList).focus()

    def _show(self, group: str) -> None:
        panel = self.query_one("#entries", EntryPanel)
        panel.show_entries(group, self._grouped.get(group, {}))

    def on_group_list_group_selected(self, event: GroupList.GroupSelected) -> None:
        self._show(event.group)

    def action_next_group(self) -> None:
        self.query_one("#groups", GroupList).action_cursor_down()

    def action_prev_group(self) -> None:
        self.query_one("#groups", GroupList).action_cursor_up()

    def action_toggle_search(self) -> None:
        search = self.query_one("#search-bar", Input)
        search.toggle_class("visible")
        if search.has_class("visible"):
            search.focus()
        else:
            self.action_close_search()

    def action_close_search(self) -> None:
        search = self.query_one("#search-bar", Input)
        search.remove_class("visible")
        search.value = ""
        self._update_group_list(self._all_groups)
        self.query_one("#groups", GroupList).focus()

    def on_input_changed(self, event: Input.Changed) -> None:
        """Filter groups by name as the user types."""
        if event.input.id != "search-bar":
            return
        query = event.value.lower().strip()
        if not query:
            self._update_group_list(self._all_groups)
            return
        self._update_group_list([g for g in self._all_groups if query in g.lower()])

    def on_input_submitted(self, event: Input.Submitted) -> None:
        """Search group names, sub-keys and values."""
        if event.input.id != "search-bar":
            return
        query = event.value.lower().strip()
        if not query:
            return
        self._update_group_list(filter_groups(self._grouped, query))

    def _update_group_list(self, groups: list[str]) -> None:
        old = self.query_one("#groups", GroupList)
        old.remove()
        new_list = GroupList(groups=groups, id="groups")
        self.query_one("#main-area", Horizontal).mount(new_list, before="#entries")
        if groups:
            self._show(groups[0])


def filter_groups(grouped: dict[str, dict[str, str]], query: str) -> list[str]:
    """Groups whose name, sub-keys or values contain the query."""
    query = query.lower()
    matches = []
    for group, entries in grouped.items():
        if query in group.lower() or any(
            query in k.lower() or query in v.lower() for k, v in entries.items()
        ):
            matches.append(group)
    return matches


def run_viewer(path: str | Path) -> None:
    """Launch the properties TUI viewer."""
    path = Path(path)
    if not path.exists():
        print(f"Error: File not found: {path}", file=sys.stderr)
        sys.exit(1)

    app = PropertiesViewerApp(path)
    app.run()
