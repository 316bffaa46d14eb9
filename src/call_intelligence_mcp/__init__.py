"""Sales call transcript analysis and next-step recommendations."""

__version__ = "0.1.0"
