# File: utils/__init__.py
"""Pure Python utilities for TaskRota.

Submodules:
    - dt_utils: Date parsing, calendar arithmetic and local-time helpers

Usage:
    from . import dt_utils
    from .dt_utils import dt_parse_date
"""

from . import dt_utils

__all__ = ["dt_utils"]
