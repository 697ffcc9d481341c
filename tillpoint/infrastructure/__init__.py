"""Infrastructure layer - configuration, storage, logging and devices."""
