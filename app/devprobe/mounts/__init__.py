"""Live mount table access."""
