"""Connection management for the primary datastore and the search engine."""
