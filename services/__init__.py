"""
Service layer for business logic.

This package contains service classes for authentication, categories,
transactions (queries, aggregation and trend statistics), budgets and
the document extraction pipeline.
"""
