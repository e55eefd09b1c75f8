"""
HTTP layer: FastAPI application, shared dependencies and route modules.
"""
