from .normalize import DEFAULT_RECOMMENDATIONS, extract_candidates, normalize_candidate, normalize_candidates

__all__ = ["DEFAULT_RECOMMENDATIONS", "extract_candidates", "normalize_candidate", "normalize_candidates"]
