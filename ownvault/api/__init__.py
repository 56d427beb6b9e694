"""HTTP surface for the vault."""
