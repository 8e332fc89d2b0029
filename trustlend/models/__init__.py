"""ORM Models — SQLAlchemy declarative models for all ledger entities.

Invariants:
    - All models inherit from Base (db/base.py)
    - Arrangement is the aggregate root; payments, reminders, proposals and
      activities are all scoped by arrangement_id

Design Decisions:
    - One file per entity for locality
    - All models imported here so SQLAlchemy resolves string-based relationship()
      references before any query runs
"""

from trustlend.models.user import User  # noqa: F401
from trustlend.models.arrangement import Arrangement  # noqa: F401
from trustlend.models.payment import Payment  # noqa: F401
from trustlend.models.reminder import Reminder  # noqa: F401
from trustlend.models.proposal import Proposal  # noqa: F401
from trustlend.models.activity import Activity  # noqa: F401
