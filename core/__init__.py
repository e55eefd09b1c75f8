"""
Core modules of the finance tracker.

This package contains:
- config: Application configuration and settings
- db: SQLite access layer and schema
- exceptions: Custom exception classes
- exporters: Excel export of transactions
- logger: Logging configuration
- matching: Category snapping (exact, substring, Levenshtein)
- normalize: Amount, type, payment method and date normalization
- parsing: MIME detection and text extraction (PDF, OCR, spreadsheets)
- schema: Pydantic models for requests, responses and LLM output
- security: Password hashing and access tokens
"""
