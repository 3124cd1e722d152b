from .engine import compute_progress, determine_achievements

__all__ = ["compute_progress", "determine_achievements"]
