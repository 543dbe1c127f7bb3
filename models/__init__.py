# Import models so that SQLAlchemy metadata includes them on app startup
from .user import User  # noqa: F401
from .payment_type import PaymentType  # noqa: F401
from .order import Order  # noqa: F401
from .payment import Payment  # noqa: F401
