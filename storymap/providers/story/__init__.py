"""Story persistence providers."""
