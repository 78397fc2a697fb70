"""Use-case level logic.

These modules implement deterministic expense review checks using records
supplied by integrations (sheet/JSON readers, holiday calendar).

They should be:
- deterministic
- unit-testable
- free of web/framework code
"""
