"""Base Models and Mixins for DRY principles"""

import uuid
from sqlalchemy import Column, DateTime, ForeignKey, Uuid
from sqlalchemy.orm import declared_attr

from app.database import Base
from app.utils.time import get_utc_now


class BaseModel(Base):
    """
    Base model class with common fields for all models.

    Provides:
    - UUID primary key
    - created_at timestamp
    - updated_at timestamp
    """
    __abstract__ = True

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4, index=True)
    created_at = Column(DateTime, default=get_utc_now, nullable=False)
    updated_at = Column(DateTime, default=get_utc_now, onupdate=get_utc_now, nullable=False)


class GymScopedMixin:
    """
    Mixin for multi-tenant models scoped to a gym.

    Provides:
    - gym_id foreign key
    - Relationship to gym (configured in concrete models)
    """

    @declared_attr
    def gym_id(cls):
        return Column(
            Uuid(as_uuid=True),
            ForeignKey("gyms.id", ondelete="CASCADE"),
            nullable=False,
            index=True
        )
