"""Infrastructure layer: backends, HTTP clients and observability."""
