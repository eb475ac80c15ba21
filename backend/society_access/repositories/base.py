"""Base repository with shared get-by-ID patterns.

Subclasses specify model_class, id_column and not_found_error; the base
provides lookups, listing and deletion.
"""

from typing import Generic, List, Optional, Type, TypeVar

from sqlalchemy.orm import Query, Session

from ..database import Base
from ..exceptions import SocietyAccessError

ModelT = TypeVar("ModelT", bound=Base)


class BaseRepository(Generic[ModelT]):
    """Shared repository logic for SQLAlchemy models.

    Class variables to set in subclasses:
        model_class:     The SQLAlchemy model (e.g., Role)
        id_column:       Name of the primary-key column
        not_found_error: Exception class to raise from get_by_id
        order_by:        Column names used by list_all
    """

    model_class: Type[ModelT]
    id_column: str = "id"
    not_found_error: Type[SocietyAccessError]
    order_by: tuple = ()

    def __init__(self, db: Session):
        self.db = db

    def _base_query(self) -> Query:
        return self.db.query(self.model_class)

    def get_by_id(self, entity_id: int) -> ModelT:
        """Get entity by primary key. Raises not_found_error if missing."""
        entity = self.get_by_id_optional(entity_id)
        if entity is None:
            raise self.not_found_error(entity_id)
        return entity

    def get_by_id_optional(self, entity_id: int) -> Optional[ModelT]:
        col = getattr(self.model_class, self.id_column)
        return self._base_query().filter(col == entity_id).first()

    def list_all(self) -> List[ModelT]:
        columns = self.order_by or (self.id_column,)
        return self._base_query().order_by(
            *[getattr(self.model_class, c) for c in columns]
        ).all()

    def add(self, entity: ModelT) -> ModelT:
        self.db.add(entity)
        self.db.flush()
        return entity

    def delete(self, entity: ModelT) -> None:
        self.db.delete(entity)
        self.db.flush()
