"""Bot handlers."""
