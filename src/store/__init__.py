"""Archive packaging and publishing layer.

This package packs downloaded blocks into a compressed archive,
computes its integrity digest, and uploads it with a manifest.
"""
