"""Catalog domain used across the test suite."""

from .widget import CountingBackend, Gadget, Widget, Widget_Part

__all__ = [
    "Widget",
    "Gadget",
    "Widget_Part",
    "CountingBackend",
]
