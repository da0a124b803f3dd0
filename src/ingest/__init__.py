"""Image fragment ingestion.

This package parses fragment descriptors, gates fragment ownership
and fetches decoded images from local or S3 storage.
"""
