"""Feature modules: pipeline, adapters, storage and retention."""
