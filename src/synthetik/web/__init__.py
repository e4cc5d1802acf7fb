"""Web interface for the sticker generator."""
