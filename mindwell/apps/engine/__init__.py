"""Pure computation engines used by the workflow handlers."""
