# -*- coding: utf-8 -*-
"""Non-local jumps outward on the call stack.

Everything here is internal transport. Each jump is an exception object
tagged with the identity of its destination; a construct catches only the
jumps addressed to itself, and re-raises all others untouched. Python's own
unwinding then pops the frames and runs any `finally` blocks (and hence
`with_finally` guards) along the way, innermost first, exactly once.

These derive from `BaseException`, so that an `except Exception` in user code
between the jump and its destination cannot swallow the jump by accident
(same reason as for `KeyboardInterrupt` and `GeneratorExit`).

See also `catch`/`throw` in Emacs Lisp, and Peter Seibel: Practical Common
Lisp, chapter 20:
    http://www.gigamonkeys.com/book/the-special-operators.html
"""

__all__ = ["Unwind", "ExitToFrame", "RestartJump", "Abort"]

class Unwind(BaseException):
    """Base class for the internal jump objects. Never caught by user code."""

class ExitToFrame(Unwind):
    """Jump to the construct that established an exiting handler frame.

    The destination calls `handler(condition)` after its frame is popped,
    and returns that as its own result.
    """
    def __init__(self, frame, handler, condition):
        self.frame = frame
        self.handler = handler
        self.condition = condition
        # message when uncaught
        self.args = ("condsys: internal error: uncaught ExitToFrame",)

class RestartJump(Unwind):
    """Jump to the `establish_restart` that established `frame`.

    Calling the instance runs the recovery function with the stored arguments.
    This is the payload of the one-shot continuation: not a value, but
    "call this and return its result as mine".
    """
    def __init__(self, frame, args, kwargs):
        self.frame = frame
        self.a, self.kw = args, kwargs
        self.args = ("condsys: internal error: uncaught RestartJump",)
    def __call__(self):
        return self.frame.recovery(*self.a, **self.kw)

class Abort(Unwind):
    """Abort the active top-level invocation.

    Raised by the default action of the `error` and `interrupt` families.
    Caught only by the invocation itself, which converts it into
    `UnhandledError` or `Interrupted` for its caller.
    """
    def __init__(self, condition, interrupt=False):
        self.condition = condition
        self.interrupt = interrupt
        self.args = ("condsys: internal error: uncaught Abort",)
