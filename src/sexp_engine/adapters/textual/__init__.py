"""Textual integration; ``app`` needs the ``textual`` package at import time."""

from .controller import TextualFormatAdapter, TextualUIHooks

__all__ = ["TextualFormatAdapter", "TextualUIHooks"]
