"""Database engine, session and schema helpers."""
