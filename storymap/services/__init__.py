"""Business logic layer: story rules and narration generation."""
