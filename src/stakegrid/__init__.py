"""StakeGrid: a four-agent grid world with share-based stake vaults."""

__version__ = "0.1.0"
