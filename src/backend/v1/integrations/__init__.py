"""Integration adapters for external systems (holiday calendar, sheets, backend).

Keep these modules small and testable:
- No FastAPI request/response objects
- Pure IO + parsing helpers
"""
