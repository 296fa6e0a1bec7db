"""Models, errors, configuration and constants shared by every package."""
