"""REST API for the cancellation fee policy engine."""
