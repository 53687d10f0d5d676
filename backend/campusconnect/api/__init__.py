"""HTTP surface for the search service."""
