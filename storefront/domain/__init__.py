"""
Domain layer - Core checkout entities and pricing rules.

This layer contains the business objects of the checkout workflow,
independent of HTTP transport or UI concerns.
"""
