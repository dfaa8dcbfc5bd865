"""Infrastructure integrations: configuration and persistence."""
