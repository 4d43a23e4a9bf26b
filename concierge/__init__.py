"""Concierge: routing and planning engine for product and order support."""
