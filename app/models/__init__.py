# Models package
# Importing modules here ensures they are registered with SQLAlchemy Base
from . import (  # noqa: F401
    user, contract, absence, leave_balance, shift, notification
)

# Explicit class exports for cleaner imports
from .user import User, UserRole
from .contract import Contract
from .absence import Absence
from .leave_balance import LeaveBalance
from .shift import Shift
from .notification import Notification

__all__ = [
    "User",
    "UserRole",
    "Contract",
    "Absence",
    "LeaveBalance",
    "Shift",
    "Notification",
]
