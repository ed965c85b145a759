"""Clients for external systems: HTTP APIs and the yt-dlp extractor."""
