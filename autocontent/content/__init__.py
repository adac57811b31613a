"""Content generation, the saved-content library and workflow hand-off."""
