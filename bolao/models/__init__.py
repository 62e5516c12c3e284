from .base import Base

# import models so Alembic/autoloaders can discover mappers
from .user import User  # noqa: F401
from .contest import CONTEST_STATUSES, Contest  # noqa: F401
from .participation import Participation, Payment  # noqa: F401
from .draw import Draw  # noqa: F401
from .payout import DrawPayout, RateioSnapshot  # noqa: F401

__all__ = [
    "Base",
    "CONTEST_STATUSES",
    "User",
    "Contest",
    "Participation",
    "Payment",
    "Draw",
    "DrawPayout",
    "RateioSnapshot",
]
