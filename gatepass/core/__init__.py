"""Core cross-cutting utilities: exceptions, logging, helpers."""
