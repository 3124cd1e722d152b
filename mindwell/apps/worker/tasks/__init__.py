"""Workflow handlers, one module per event concern."""
