"""Application entrypoints for MindWell."""
