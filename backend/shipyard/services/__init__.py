"""External service clients used by the pipeline."""
