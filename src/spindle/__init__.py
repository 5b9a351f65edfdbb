"""
Spindle - configurable task scheduling on thread pools.

- spindle.core: errors, settings, logging
- spindle.execution: ThreadBuilder and the scheduling machinery under it
- spindle.cli: the ``spindle`` command
"""

__version__ = "0.1.0"

from spindle.core import *  # noqa
from spindle.execution import *  # noqa
