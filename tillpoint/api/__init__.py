"""HTTP surface of the till."""
