"""Infrastructure Layer — database sessions, email delivery, locking, logging.

Invariants:
    - All external calls wrapped with retry/timeout/error mapping
"""
