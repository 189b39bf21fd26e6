"""User CRUD. Deactivated users (active=False) are invisible to list and get."""

from sqlalchemy import Select, select

from tourbook.models.user import User
from tourbook.schemas.user import UserResponse
from tourbook.services.crud_service import CrudService


class UserService(CrudService[User]):
    def __init__(self):
        super().__init__(User, UserResponse, "user", filterable=("name", "email", "role"))

    def base_query(self) -> Select:
        return select(User).where(User.active.is_(True))


user_service = UserService()
