"""
Terminal frame rendering for leaderboard sessions.

render_frame() is a pure function of the session state and view settings:
the same inputs always give the same text, so a frame can be re-rendered at
any time without side effects.
"""

import io
from dataclasses import dataclass
from typing import List, Optional

from rich import box
from rich.console import Console, Group
from rich.align import Align
from rich.table import Table
from rich.text import Text

from leaderboard.constants import UIConstants
from leaderboard.session.state import SessionState

# Terminal control sequences written around the frames
ENTER_SCREEN = "\x1b[?1049h\x1b[?25l"
LEAVE_SCREEN = "\x1b[?25h\x1b[?1049l"
CLEAR_SCREEN = "\x1b[H\x1b[2J"

KEY_HELP = "↑/k up • ↓/j down • b focus • esc blur • tab toggle • q quit"


@dataclass(frozen=True)
class ViewSettings:
    title: str = "LIVE Leaderboard"
    refresh_interval: float = 10.0
    table_height: int = UIConstants.TABLE_HEIGHT

    @classmethod
    def from_config(cls, config) -> 'ViewSettings':
        return cls(
            title=config.title,
            refresh_interval=config.refresh_interval,
            table_height=config.table_height
        )


def frame_width(state: SessionState) -> int:
    return max(UIConstants.MIN_WIDTH, min(state.width, UIConstants.MAX_WIDTH))


def visible_window(selected: Optional[int], length: int, height: int) -> range:
    """Rows to show so that the selected row is always visible."""
    if length <= height:
        return range(length)
    start = 0 if selected is None else max(0, selected - height + 1)
    start = min(start, length - height)
    return range(start, start + height)


def _build_table(state: SessionState, settings: ViewSettings) -> Table:
    table = Table(
        box=box.ROUNDED,
        border_style=UIConstants.HIGHLIGHT_COLOR,
        header_style=f"bold {UIConstants.SPECIAL_COLOR}",
        show_edge=True,
        pad_edge=True
    )
    table.add_column("PLACE", justify="center", width=UIConstants.PLACE_WIDTH, no_wrap=True)
    table.add_column("NAME", justify="center", width=UIConstants.NAME_WIDTH, no_wrap=True, overflow="ellipsis")
    table.add_column("SCORES", justify="center", width=UIConstants.SCORE_WIDTH, no_wrap=True)

    if not state.snapshot.entries:
        table.add_row("-", "No entries yet", "-")
        return table

    if state.focused:
        selected_style = f"bold #000000 on {UIConstants.SPECIAL_COLOR}"
    else:
        selected_style = f"{UIConstants.SPECIAL_COLOR} on {UIConstants.SUBTLE_COLOR}"

    for index in visible_window(state.selected, len(state.snapshot), settings.table_height):
        entry = state.snapshot.entries[index]
        style = selected_style if index == state.selected else None
        table.add_row(str(entry.rank), entry.name, str(entry.score), style=style)
    return table


def _status_line(state: SessionState, settings: ViewSettings) -> Text:
    status = Text()
    status.append(" STATUS ", style=f"bold #FFFDF5 on {UIConstants.STATUS_COLOR}")
    status.append(f" Refreshing every {settings.refresh_interval:g} secs...")
    status.append(f"  updated {state.snapshot.captured_at.strftime('%H:%M:%S')}", style="dim")
    status.append("  focus" if state.focused else "  browse", style=UIConstants.HIGHLIGHT_COLOR)
    return status


def _build_frame(state: SessionState, settings: ViewSettings) -> Group:
    title = Text()
    title.append(f"{UIConstants.LIVE_BADGE} ", style="bold red")
    title.append(settings.title, style=f"bold {UIConstants.SPECIAL_COLOR}")

    parts: List = [
        Align.center(title),
        Align.center(_build_table(state, settings)),
        _status_line(state, settings),
        Text(KEY_HELP, style="dim", overflow="ellipsis", no_wrap=True),
    ]
    return Group(*parts)


def render_frame(state: SessionState, settings: ViewSettings) -> str:
    """Render the leaderboard frame for one session as terminal text."""
    width = frame_width(state)
    buffer = io.StringIO()
    console = Console(
        file=buffer,
        width=width,
        height=max(state.height, 1),
        force_terminal=True,
        color_system="truecolor",
        highlight=False,
        emoji=False,
        legacy_windows=False
    )
    console.print(_build_frame(state, settings))
    # Terminals in raw mode need explicit carriage returns
    return buffer.getvalue().replace("\n", "\r\n")
