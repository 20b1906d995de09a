"""Encoders for registry output."""
