# -*- coding: utf-8 -*
"""A condition system for Python: signals, calling and exiting handlers, restarts.

See ``dir(condsys)`` and submodule docstrings for more. Start with
``condsys.dispatch`` (how a signal is dispatched) and ``condsys.constructs``
(how handlers and restarts are established).
"""

__version__ = '0.1.0'

from .symbol import *  # noqa: F401, F403
from .model import *  # noqa: F401, F403
from .registry import *  # noqa: F401, F403
from .errors import *  # noqa: F401, F403
from .dispatch import *  # noqa: F401, F403
from .constructs import *  # noqa: F401, F403
from .protocols import *  # noqa: F401, F403
