from sqlalchemy.orm import Session

from storefront.data.models.user import UserModel
from storefront.domain.errors import ConflictError, NotFoundError, ValidationError
from storefront.domain.schemas import UserCreate, UserRead
from storefront.repos.user_repo import UserRepo
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


class UserService:
    def __init__(self, db: Session):
        self.repo = UserRepo(db)

    def create_user(self, payload: UserCreate) -> UserRead:
        if payload.id:
            existing = self.repo.get_user(payload.id)
            if existing:
                return UserRead.model_validate(existing)

        if "@" not in payload.email:
            raise ValidationError("Invalid email")
        if self.repo.get_user_by_email(payload.email):
            raise ConflictError("A user with this email already exists")

        user = UserModel(name=payload.name, email=payload.email)
        if payload.id:
            user.id = payload.id
        created = self.repo.create_user(user)

        logger.info(f"User {created.id} registered")
        return UserRead.model_validate(created)

    def get_user(self, user_id: str) -> UserRead:
        user = self.repo.get_user(user_id)
        if not user:
            raise NotFoundError("User not found")
        return UserRead.model_validate(user)
