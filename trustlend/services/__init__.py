"""Services Layer — workflows over the ledger store, reminder sweeper, read models.

Invariants:
    - Every read-then-write on an arrangement runs inside an ArrangementTransaction
    - Workflows append an Activity record for every lifecycle event

Design Decisions:
    - One workflow file per aggregate concern for locality
"""
