"""
Duration formatting and remaining-time estimates for progress reporting
"""

from typing import Optional


def format_duration(seconds: float) -> str:
    """Human-readable duration, e.g. '45s', '3m 12s', '1h 5m'"""
    seconds = max(0, int(seconds))
    hours, remainder = divmod(seconds, 3600)
    minutes, secs = divmod(remainder, 60)

    if hours > 0:
        return f"{hours}h {minutes}m"
    if minutes > 0:
        return f"{minutes}m {secs}s"
    return f"{secs}s"


def estimate_remaining_time(elapsed_seconds: float, processed: int, total: int) -> Optional[str]:
    """Linear estimate from the average time per processed document

    Returns None until at least one document has been processed.
    """
    if processed <= 0 or total <= 0:
        return None
    remaining = max(0, total - processed)
    per_document = elapsed_seconds / processed
    return format_duration(per_document * remaining)
