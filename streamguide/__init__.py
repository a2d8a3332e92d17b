"""StreamGuide package."""
