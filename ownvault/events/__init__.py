"""Change notifications for the vault (Redis Streams + in-process)."""
