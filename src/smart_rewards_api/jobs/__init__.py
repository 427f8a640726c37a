"""Recurring job entrypoints for rewards automation."""

__all__ = [
    "rewards",
]
