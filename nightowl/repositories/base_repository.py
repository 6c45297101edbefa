# nightowl/repositories/base_repository.py
from typing import TypeVar, Generic, Type, List, Optional, Any, Dict, Union
from sqlalchemy.orm import Session
from pydantic import BaseModel

from nightowl.db.base import Base

ModelType = TypeVar("ModelType", bound=Base)  # type: ignore


class BaseRepository(Generic[ModelType]):
    """
    Base repository with common CRUD operations over one table.

    Repositories only flush. Committing belongs to the unit of work that
    handed them the session.
    """

    def __init__(self, model: Type[ModelType], db: Session):
        self.model = model
        self.db = db

    def get_by(self, **kwargs) -> Optional[ModelType]:
        """Get a single record by arbitrary filters."""
        return self._filtered(**kwargs).first()

    def list(
        self,
        *,
        skip: int = 0,
        limit: Optional[int] = None,
        order_by: Any = None,
        **filters,
    ) -> List[ModelType]:
        """Get multiple records with optional filtering."""
        query = self._filtered(**filters)
        query = query.order_by(order_by if order_by is not None else self.model.id)
        if skip:
            query = query.offset(skip)
        if limit is not None:
            query = query.limit(limit)
        return query.all()

    def create(self, obj_in: Union[Dict[str, Any], BaseModel]) -> ModelType:
        """Create a new record."""
        if isinstance(obj_in, BaseModel):
            obj_in_data = obj_in.model_dump(exclude_unset=True)
        else:
            obj_in_data = obj_in

        db_obj = self.model(**obj_in_data)
        self.db.add(db_obj)
        self.db.flush()
        return db_obj

    def update(
        self, db_obj: ModelType, obj_in: Union[Dict[str, Any], BaseModel]
    ) -> ModelType:
        """Update an existing record."""
        if isinstance(obj_in, BaseModel):
            update_data = obj_in.model_dump(exclude_unset=True)
        else:
            update_data = obj_in

        for field in update_data:
            if hasattr(db_obj, field):
                setattr(db_obj, field, update_data[field])

        self.db.add(db_obj)
        self.db.flush()
        return db_obj

    def delete(self, db_obj: ModelType) -> None:
        self.db.delete(db_obj)
        self.db.flush()

    def delete_for_user(self, user_id: int) -> int:
        """Remove every row owned by a user. Returns the row count."""
        return self._filtered(user_id=user_id).delete(synchronize_session=False)

    def save(self, obj: ModelType) -> ModelType:
        """Save an already instantiated model object."""
        self.db.add(obj)
        self.db.flush()
        return obj

    def _filtered(self, **filters):
        query = self.db.query(self.model)
        for key, value in filters.items():
            if hasattr(self.model, key):
                query = query.filter(getattr(self.model, key) == value)
        return query
