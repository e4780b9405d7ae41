"""Application services consumed by page assemblers and the CLI."""
