"""Persistence adapters for StakeGrid worlds."""

from stakegrid.repository.json_store import JsonWorldRepository

__all__ = ["JsonWorldRepository"]
