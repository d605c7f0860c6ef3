"""Block ingestion and snapshot orchestration.

This package reads block records from a node's snapshot stream,
writes them as files, and sequences the archive and publish stages.
"""
