"""Domain layer: the move-selection engine and game session rules."""
