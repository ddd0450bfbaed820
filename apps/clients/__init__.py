"""Outbound clients for the code sandbox, the generative model and sibling services."""
