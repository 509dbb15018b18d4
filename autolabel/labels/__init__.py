"""Label normalization pipeline."""
