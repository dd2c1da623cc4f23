# -*- coding: utf-8 -*-
"""The explicit dynamic scope: handler and restart stacks.

All state lives in an `Invocation`, one per top-level invocation. Invocations
are kept on a thread-local stack; the innermost one is the active one. Each
thread sees only its own invocations, so concurrent threads never share a
handler or restart stack.

Both stacks are plain lists, innermost frame last. The constructs in
`condsys.constructs` push a frame on entry and pop it in a `finally`, so every
push is paired with exactly one pop on every code path.
"""

__all__ = ["EXITING", "CALLING",
           "HandlerFrame", "RestartFrame", "Invocation",
           "current"]

from contextlib import contextmanager
import threading

from .symbol import sym

EXITING = sym("exiting")
CALLING = sym("calling")

class HandlerFrame:
    """A set of handlers established by one construct.

    `kind`: `EXITING` or `CALLING`.
    `entries`: tuple of `(tagspec, handler)`, in declared order.
    `depth`: index of this frame in the handler stack.
    """
    def __init__(self, kind, entries, depth):
        self.kind = kind
        self.entries = entries
        self.depth = depth
    def __repr__(self):  # pragma: no cover
        tags = ", ".join(str(t) for t, _ in self.entries)
        return f"<HandlerFrame {self.kind} [{tags}] at depth {self.depth}>"

class RestartFrame:
    """A named restart established by one `establish_restart`.

    `active` becomes `False` when the establishing construct exits; after that,
    the frame can no longer be invoked, even if someone kept a reference to it.
    """
    def __init__(self, name, recovery, depth):
        self.name = name
        self.recovery = recovery
        self.depth = depth
        self.active = True
    def __repr__(self):  # pragma: no cover
        state = "active" if self.active else "expired"
        return f"<RestartFrame '{self.name}' at depth {self.depth}, {state}>"

class Invocation:
    """Dispatcher state for one top-level invocation.

    `handlers`, `restarts`: the two stacks, innermost frame last.
    `deferred`: buffer of `(message, context)` for unhandled warnings.
    `dropped`: how many warnings did not fit into the buffer.
    `sink`: where unhandled messages go; `None` means use the default
            (`condsys.dispatch.Config.printer`).
    """
    def __init__(self, sink=None):
        self.handlers = []
        self.restarts = []
        self.deferred = []
        self.dropped = 0
        self.sink = sink

    def push_handlers(self, kind, entries):
        frame = HandlerFrame(kind, entries, len(self.handlers))
        self.handlers.append(frame)
        return frame
    def pop_handlers(self, frame):
        top = self.handlers.pop()
        if top is not frame:  # pragma: no cover
            raise RuntimeError(f"condsys: internal error: handler stack out of sync; expected {frame}, got {top}")

    def push_restart(self, name, recovery):
        frame = RestartFrame(name, recovery, len(self.restarts))
        self.restarts.append(frame)
        return frame
    def pop_restart(self, frame):
        top = self.restarts.pop()
        frame.active = False
        if top is not frame:  # pragma: no cover
            raise RuntimeError(f"condsys: internal error: restart stack out of sync; expected {frame}, got {top}")

    @contextmanager
    def outside(self, frame):
        """Temporarily hide `frame`, and all handler frames inner to it.

        While a calling handler runs, only the handlers that were visible where
        its frame was established are in effect. Frames pushed meanwhile go on
        top of the truncated stack, and are popped before it is restored.
        """
        saved = self.handlers
        self.handlers = saved[:frame.depth]
        try:
            yield
        finally:
            self.handlers = saved

    def find_restart(self, name):
        """Return the innermost restart frame called `name`, or `None`."""
        for frame in reversed(self.restarts):
            if frame.name == name:
                return frame
        return None

    def is_visible(self, frame):
        return frame.active and any(f is frame for f in self.restarts)

    def teardown(self):
        for frame in self.restarts:  # pragma: no cover, only if the pop discipline was broken
            frame.active = False
        self.handlers = []
        self.restarts = []

_L = threading.local()
def _invocations():  # per-thread init
    if not hasattr(_L, "invocations"):
        _L.invocations = []
    return _L.invocations

def current():
    """Return the active `Invocation` of the calling thread, or `None`."""
    invocations = _invocations()
    return invocations[-1] if invocations else None
