# Models package init
"""
Importing this package registers every ORM model with Base.metadata
(used by Alembic autogenerate and by the test fixtures' create_all).
"""

from tourbook.models.booking import Booking
from tourbook.models.review import Review
from tourbook.models.tour import Tour
from tourbook.models.user import User

__all__ = ["Booking", "Review", "Tour", "User"]
