"""Qt-aware controllers used by the main annotation window."""

from .annotation_controller import AnnotationController

__all__ = ["AnnotationController"]
