"""Service layer for sticker generation."""
