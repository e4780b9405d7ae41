"""Domain models: value objects, paged results and error types."""
