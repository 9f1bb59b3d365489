"""In-editor annotation renderer built on the AnnotatePyside code editor."""

__version__ = "0.3.0"
