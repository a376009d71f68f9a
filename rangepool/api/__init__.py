"""HTTP surface for range pool quotes."""
