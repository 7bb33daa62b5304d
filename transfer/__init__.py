"""Segmented transfer: layout, integrity, storage network client, retrieval."""
