"""
Configuration — Immutable settings passed explicitly to every component.
"""

from .loader import load_config_file
from .settings import PathTemplates, RunOptions, SeverityRule, Settings

__all__ = [
    "PathTemplates",
    "RunOptions",
    "SeverityRule",
    "Settings",
    "load_config_file",
]
