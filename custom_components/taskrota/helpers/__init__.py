# File: helpers/__init__.py
"""Display-side helper functions for TaskRota.

Helpers shape engine results for presentation; they hold no scheduling
rules of their own.

Submodules:
    - schedule_helpers: Schedule summaries, upcoming occurrences, cron export

Usage:
    from .helpers import schedule_helpers as sh
"""

from . import schedule_helpers

__all__ = ["schedule_helpers"]
