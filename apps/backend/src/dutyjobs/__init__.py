"""dutyjobs - background batch job processor for duty optimization workloads."""

__version__ = "0.1.0"
