"""Parsing, normalization, serialization and vectorization."""
