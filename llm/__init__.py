"""
LLM integration for transaction extraction.

This package contains:
- client: Chat completions REST client wrapper
- extract: Structured transaction extraction and normalization
- prompts: System and user prompt builders
"""
