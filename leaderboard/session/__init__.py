"""
Session package - one interactive state machine per SSH terminal.

- events: the event and effect types a session understands
- state: SessionState and selection clamping
- transitions: the pure transition function
- keymap: terminal input to events
- program: the per-session event loop
"""
