"""Command-line tools for managing the corpus."""
