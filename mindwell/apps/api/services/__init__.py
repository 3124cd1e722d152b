"""Persistence gateway: SQL accessors grouped by table."""
