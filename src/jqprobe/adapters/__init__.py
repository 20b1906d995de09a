"""Adapters connecting the core pipeline to libraries and I/O."""
