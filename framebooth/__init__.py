"""Photo booth framing and artifact retention."""
