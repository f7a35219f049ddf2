from datetime import datetime, timezone
from flask_sqlalchemy import SQLAlchemy
from sqlalchemy import BigInteger, Integer, Numeric

# Use BigInteger in production but fall back to Integer for SQLite
BIGINT = BigInteger().with_variant(Integer, "sqlite")

# Two decimal places everywhere money is stored
MONEY = Numeric(12, 2)

db = SQLAlchemy()


def utcnow():
    """Naive UTC timestamp, matching how DateTime columns are stored."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


# Re-export common models for convenience
from .order import Order, OrderItem, OrderSequence, OrderStatusLog, OrderActionLog  # noqa: F401,E402
from .balance import VendorBalance, CustomerBalance, BalanceTransaction  # noqa: F401,E402
from .proof import DeliveryProof  # noqa: F401,E402
from .bank import BankAccount  # noqa: F401,E402
from .payout import Payout  # noqa: F401,E402
