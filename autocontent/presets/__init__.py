"""Saved generation presets."""
