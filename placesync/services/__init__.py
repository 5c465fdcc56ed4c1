"""Domain services: saved-list sync, visibility and social proof."""
