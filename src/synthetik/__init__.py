"""Synthetik - AI sticker generation from styles, custom prompts and reference photos."""

__version__ = "0.1.0"
