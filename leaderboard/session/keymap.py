"""
Key handling for terminal sessions.

Raw terminal input is split into key names first, then key names are mapped
to session events. Unknown keys are ignored.
"""

from typing import Dict, List, Optional

from leaderboard.session.events import Event, Jump, Navigate, Quit, QuitReason, ToggleFocus

ESC = "\x1b"

# Escape sequences sent by common terminals
ESCAPE_SEQUENCES: Dict[str, str] = {
    "\x1b[A": "up",
    "\x1b[B": "down",
    "\x1b[C": "right",
    "\x1b[D": "left",
    "\x1bOA": "up",
    "\x1bOB": "down",
    "\x1b[H": "home",
    "\x1b[F": "end",
    "\x1bOH": "home",
    "\x1bOF": "end",
    "\x1b[1~": "home",
    "\x1b[4~": "end",
    "\x1b[5~": "pgup",
    "\x1b[6~": "pgdown",
}

CONTROL_KEYS: Dict[str, str] = {
    "\x03": "ctrl+c",
    "\x04": "ctrl+d",
    "\x15": "ctrl+u",
    "\t": "tab",
    "\r": "enter",
    "\n": "enter",
    " ": "space",
}


def split_keys(data: str) -> List[str]:
    """Split a chunk of terminal input into key names."""
    keys = []
    i = 0
    while i < len(data):
        char = data[i]
        if char == ESC:
            match = None
            # Longest escape sequence first
            for length in (4, 3):
                candidate = data[i:i + length]
                if candidate in ESCAPE_SEQUENCES:
                    match = candidate
                    break
            if match:
                keys.append(ESCAPE_SEQUENCES[match])
                i += len(match)
                continue
            if data[i + 1:i + 2] in ("[", "O"):
                # Unrecognised CSI/SS3 sequence: skip up to its final byte
                j = i + 2
                while j < len(data) and not ("@" <= data[j] <= "~"):
                    j += 1
                i = j + 1
                continue
            keys.append("esc")
            i += 1
            continue
        keys.append(CONTROL_KEYS.get(char, char))
        i += 1
    return keys


def _is_partial_sequence(tail: str) -> bool:
    """True when tail is an escape sequence still waiting for more bytes."""
    if tail == ESC:
        return True
    if tail[1] == "O":
        return len(tail) == 2
    if tail[1] == "[":
        # Parameter and intermediate bytes only, no final byte yet
        return all(" " <= char <= "?" for char in tail[2:])
    return False


class KeyDecoder:
    """Splits a stream of terminal input into key names across reads.

    An escape sequence cut off at the end of one chunk is held back and
    completed by the next chunk. If nothing follows, flush() releases it, so
    a lone ESC still reaches the session as the escape key.
    """

    def __init__(self):
        self._pending = ""

    @property
    def pending(self) -> bool:
        return bool(self._pending)

    def feed(self, data: str) -> List[str]:
        data, self._pending = self._pending + data, ""
        start = data.rfind(ESC)
        if start != -1 and _is_partial_sequence(data[start:]):
            data, self._pending = data[:start], data[start:]
        return split_keys(data)

    def flush(self) -> List[str]:
        data, self._pending = self._pending, ""
        return split_keys(data)


class KeyMap:
    """Maps key names to session events.

    'b' focuses the table and 'esc' blurs it; 'tab' toggles. Movement keys
    follow the usual table bindings.
    """

    def __init__(self, page_size: int):
        self.page_size = max(page_size, 1)
        half = max(self.page_size // 2, 1)
        self._bindings: Dict[str, Event] = {
            "up": Navigate(-1),
            "k": Navigate(-1),
            "down": Navigate(1),
            "j": Navigate(1),
            "pgup": Navigate(-self.page_size),
            "pgdown": Navigate(self.page_size),
            "f": Navigate(self.page_size),
            "space": Navigate(self.page_size),
            "u": Navigate(-half),
            "ctrl+u": Navigate(-half),
            "d": Navigate(half),
            "ctrl+d": Navigate(half),
            "home": Jump(to_last=False),
            "g": Jump(to_last=False),
            "end": Jump(to_last=True),
            "G": Jump(to_last=True),
            "b": ToggleFocus(focused=True),
            "esc": ToggleFocus(focused=False),
            "tab": ToggleFocus(),
            "q": Quit(QuitReason.USER),
            "ctrl+c": Quit(QuitReason.USER),
        }

    def lookup(self, key: str) -> Optional[Event]:
        return self._bindings.get(key)

    def events_for(self, data: str) -> List[Event]:
        """Translate a complete chunk of raw terminal input into session events."""
        return self.events_for_keys(split_keys(data))

    def events_for_keys(self, keys: List[str]) -> List[Event]:
        events = []
        for key in keys:
            event = self.lookup(key)
            if event is not None:
                events.append(event)
        return events
