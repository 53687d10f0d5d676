"""CampusConnect unified search service."""
