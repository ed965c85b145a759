"""Application layer: services that aggregate over all registered sources."""
