"""Core framework components."""

from .value_objects import Namespace

__all__ = ["Namespace"]
