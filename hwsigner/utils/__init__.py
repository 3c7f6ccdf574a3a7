"""Encoding, validation and serialization helpers."""
