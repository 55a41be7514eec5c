"""
JOBTRACK - Job posting intake and normalization for application tracking

Turns free-text job postings into bounded, schema-valid records that the
tracking application can store and search.

Architecture:
- Extraction Context: upstream extraction service calls, output sanitization,
  salary normalization and technology stack canonicalization
- Utils: LLM provider abstraction, logging setup, date helpers

Storage, authentication and the chat command surface are external
collaborators and live outside this package.
"""

__version__ = "0.1.0"
