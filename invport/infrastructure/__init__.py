"""Infrastructure layer: database access, blob storage and monitoring."""
