"""ownvault: a per-identity secret store."""

__version__ = "0.1.0"
