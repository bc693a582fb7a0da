"""HTTP dependencies."""
