# File: utils/__init__.py
"""Pure Python utilities for the recurring task engine.

This module contains pure functions with no store or manager dependencies.
All functions here can be unit tested without any async fixtures.

Submodules:
    - dt_utils: Date parsing, formatting and calendar arithmetic

Usage:
    from . import dt_utils
    from .dt_utils import add_months
"""

from . import dt_utils

__all__ = ["dt_utils"]
