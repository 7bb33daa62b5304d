"""Pointer index service: a searchable share-code to pointer-record store."""
