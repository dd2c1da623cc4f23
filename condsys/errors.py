# -*- coding: utf-8 -*-
"""Exceptions surfaced to the caller of a top-level invocation.

Conditions themselves are not exceptions; see `condsys.model`. These classes
exist only at the boundary: when an `error` or `interrupt` condition reaches
its default action, the active top-level invocation is aborted, and its caller
receives one of these.
"""

__all__ = ["InvocationAborted", "UnhandledError", "Interrupted",
           "ConditionWarning"]

class InvocationAborted(Exception):
    """Base class: a top-level invocation was aborted by an unhandled condition.

    The `condition` attribute holds the `Condition` instance that caused the
    abort. The string representation is the message, prefixed by the context
    (call site) of the signal if one is known.
    """
    def __init__(self, condition):
        super().__init__(condition)
        self.condition = condition
    def __str__(self):
        c = self.condition
        if c.context is not None:
            return f"{c.context}: {c.message}"
        return c.message

class UnhandledError(InvocationAborted):
    """An `error` condition was signaled, and no handler took control.

    Note *took control* means an exiting handler matched, or a handler invoked
    a restart. A calling handler that merely observes the condition and
    returns normally does not count.
    """

class Interrupted(InvocationAborted):
    """An `interrupt` condition was signaled, and no handler took control.

    Unlike `UnhandledError`, this skips reporting any deferred warnings.
    """

class ConditionWarning(UserWarning):
    """Warning category used when flushing deferred warnings via `warnings`."""
