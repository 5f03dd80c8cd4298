"""Demo HTTP service deployed by the pipeline."""
