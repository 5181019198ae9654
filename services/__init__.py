"""Clients for the third-party APIs the app proxies (Google Places, Unsplash)."""
