"""
Server-wide constants for the SSH leaderboard.

This module contains the magic numbers and display values used throughout
the codebase so defaults live in one place.
"""

class RefreshConstants:
    """Constants related to periodic leaderboard refresh."""

    # Seconds between the end of one refresh and the next tick
    DEFAULT_INTERVAL_SECONDS = 10.0

    # Upper bound on a single backing store query
    DEFAULT_FETCH_TIMEOUT_SECONDS = 5.0

class ShutdownConstants:
    """Constants for graceful shutdown."""

    # How long active sessions get to drain after a termination signal
    DEFAULT_TIMEOUT_SECONDS = 30.0

    # Grace period for force-closed sessions to unregister
    FORCE_CLOSE_GRACE_SECONDS = 1.0

    # How long the listener gets to close before open connections are aborted
    LISTENER_CLOSE_TIMEOUT_SECONDS = 5.0

class InputConstants:
    """Constants for terminal input decoding."""

    # A lone ESC with nothing after it for this long is the escape key
    ESCAPE_TIMEOUT_SECONDS = 0.05

class UIConstants:
    """Constants for the terminal frame."""

    # Frame width is capped to this many columns
    MAX_WIDTH = 96
    MIN_WIDTH = 20

    # Visible table rows
    TABLE_HEIGHT = 20

    # Column widths (PLACE, NAME, SCORES)
    PLACE_WIDTH = 7
    NAME_WIDTH = 15
    SCORE_WIDTH = 9

    # Palette
    HIGHLIGHT_COLOR = "#7A2782"
    SPECIAL_COLOR = "#faef1d"
    STATUS_COLOR = "#D12881"
    SUBTLE_COLOR = "#383838"
    TEXT_COLOR = "#EEEEEE"

    LIVE_BADGE = "●"
