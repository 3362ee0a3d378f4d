from .conditions import (  # noqa: F401
    add_time_parts,
    classify_days,
    tag_conditions,
    condition_profile,
    condition_summary,
)

__all__ = [
    "add_time_parts",
    "classify_days",
    "tag_conditions",
    "condition_profile",
    "condition_summary",
]
