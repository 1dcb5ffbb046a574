"""Media storage for uploaded images and generated narration."""
