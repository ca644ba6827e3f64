"""Request and response models exposed by the HTTP API."""
