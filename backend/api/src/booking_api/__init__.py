"""REST API for the party booking engine."""
