"""Relational schema and async engine for the remote store."""
