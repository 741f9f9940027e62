"""Media relay service: fetch remote assets and persist them to object storage."""
