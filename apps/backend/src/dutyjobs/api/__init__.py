"""HTTP API for the batch job processor."""
