"""Core pipeline: query evaluation, coercion, label sets and metric synthesis."""
