"""Web framework adapters exposing the probe endpoints."""
