"""HTTP API for the autoscale engine."""
