"""Data models for the quoting API."""

from rangepool.models.types import Address, Uint256, normalize_address

__all__ = ["Address", "Uint256", "normalize_address"]
