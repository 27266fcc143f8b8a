"""Episode lesson generation pipeline."""
