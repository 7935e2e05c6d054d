"""Read-only HTTP API over the benchmark results store."""
