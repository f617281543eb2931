"""
Exception types raised by the mouse simulator.

ConfigurationFault and QueryFault subclass the builtin exceptions callers
would otherwise catch (ValueError, KeyError) so that generic handlers keep
working.
"""

from __future__ import annotations


class MouseSimError(Exception):
    """Base class for all simulator errors."""


class ConfigurationFault(MouseSimError, ValueError):
    """Malformed mouse or maze description; the object is never built."""


class QueryFault(MouseSimError, KeyError):
    """A query named something that does not exist (e.g. an unknown sensor)."""

    def __str__(self) -> str:
        # KeyError quotes its argument; keep the message readable
        return str(self.args[0]) if self.args else ""


class GeometryFault(MouseSimError, ArithmeticError):
    """A geometric computation hit a degenerate case at runtime."""
