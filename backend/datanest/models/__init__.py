"""ORM Models — SQLAlchemy declarative models for all marketplace entities.

Invariants:
    - All models inherit from Base (db/base.py)
    - Ownership columns (seller_id, buyer_id, request_id) are written once at creation

Design Decisions:
    - One file per entity for locality
    - All models imported here so Base.metadata is complete before create_all / alembic
"""

from datanest.models.user import User  # noqa: F401
from datanest.models.dataset import Dataset  # noqa: F401
from datanest.models.dataset_request import DatasetRequest  # noqa: F401
from datanest.models.proposal import Proposal  # noqa: F401
from datanest.models.purchase import Purchase  # noqa: F401
from datanest.models.message import Message  # noqa: F401
