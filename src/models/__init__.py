"""Database models.

Importing this package registers every table with ``Base.metadata``.
"""

from .base import Base
from .user import UserModel
from .organization import OrganizationModel
from .contract import ContractModel
from .notification import NotificationModel

__all__ = [
    "Base",
    "UserModel",
    "OrganizationModel",
    "ContractModel",
    "NotificationModel",
]
