"""Reusable PySide widgets for the annotation overlay application."""

from .code_editor import CodeEditor, OverlayRange

__all__ = ["CodeEditor", "OverlayRange"]
