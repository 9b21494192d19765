"""
Generic resource handler — create/read/update/delete/list for any model.

Tours, reviews and users all need the same five operations. Instead of
writing them three times, each entity describes itself once with a
ResourceType and gets a ResourceHandler:

    tours = ResourceHandler(ResourceType(
        model=Tour,
        name="Tour",
        public_fields=frozenset(TourResponse.model_fields),
        default_scope=visible_tours,
        validate=validate_tour,
    ))

ResourceType members:
  - model: The SQLAlchemy model class.
  - name: Used in error messages ("No tour found with that ID").
  - public_fields: Fields that list queries may filter and sort on.
  - default_scope: Condition applied to EVERY read (e.g. hide secret tours,
    hide deactivated users). Explicit here, not buried in the model.
  - validate: Entity rules that span fields, called with the incoming
    values and the existing entity (None on create). Raises
    ValidationError.

Entity-specific side effects (slug generation, rating recomputation,
soft delete) are NOT hooks on the handler. The per-entity service calls
the handler and then performs them explicitly, so they are visible at
the call site.

Uniqueness:
  Inserts and updates run inside a SAVEPOINT. If the database rejects the
  write with an IntegrityError (duplicate email, second review for the
  same tour), only the savepoint is rolled back and a ConflictError is
  raised. The constraint is the source of truth; there is no
  check-then-insert race.
"""

import uuid
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from tours_api.exceptions import ConflictError, NotFoundError
from tours_api.query import QuerySpec

ModelT = TypeVar("ModelT")


@dataclass(frozen=True)
class ResourceType(Generic[ModelT]):
    model: type[ModelT]
    name: str
    public_fields: frozenset[str]
    default_scope: Callable[[], Any] | None = None
    validate: Callable[[dict, ModelT | None], None] | None = None
    conflict_message: str | None = None


class ResourceHandler(Generic[ModelT]):
    """The five generic operations, bound to one ResourceType."""

    def __init__(self, resource: ResourceType[ModelT]):
        self.resource = resource

    def _select(self):
        stmt = select(self.resource.model)
        if self.resource.default_scope is not None:
            stmt = stmt.where(self.resource.default_scope())
        return stmt

    async def _flush_or_conflict(self, db: AsyncSession, stage: Callable[[], None]) -> None:
        # begin_nested() flushes pending changes first: stage writes inside it
        try:
            async with db.begin_nested():
                stage()
                await db.flush()
        except IntegrityError as exc:
            raise ConflictError(
                self.resource.conflict_message
                or f"A {self.resource.name.lower()} with these values already exists"
            ) from exc

    async def get_one(
        self,
        db: AsyncSession,
        entity_id: uuid.UUID,
        load: Sequence[Any] = (),
    ) -> ModelT:
        """
        Fetch a single entity by primary key, within the default scope.

        Args:
            db: Database session.
            entity_id: Primary key.
            load: Loader options for related rows, e.g.
                  (selectinload(Tour.reviews),).

        Raises:
            NotFoundError: If no visible entity has this id.
        """
        result = await db.execute(
            self._select()
            .where(self.resource.model.id == entity_id)
            .options(*load)
        )
        entity = result.scalar_one_or_none()
        if entity is None:
            raise NotFoundError(self.resource.name)
        return entity

    async def create_one(self, db: AsyncSession, values: dict) -> ModelT:
        """
        Validate and insert a new entity.

        Raises:
            ValidationError: If the entity's validator rejects the values.
            ConflictError: If a uniqueness constraint is violated.
        """
        if self.resource.validate is not None:
            self.resource.validate(values, None)

        entity = self.resource.model(**values)
        await self._flush_or_conflict(db, lambda: db.add(entity))
        return entity

    async def update_one(
        self,
        db: AsyncSession,
        entity_id: uuid.UUID,
        changes: dict,
    ) -> ModelT:
        """
        Apply a partial update to an existing entity.

        Only the keys present in `changes` are written. The validator sees
        the changes together with the current entity so cross-field rules
        (discount below price) are checked against the merged state.

        Raises:
            NotFoundError: If no visible entity has this id.
            ValidationError: If the merged state is invalid.
            ConflictError: If a uniqueness constraint is violated.
        """
        entity = await self.get_one(db, entity_id)
        if self.resource.validate is not None:
            self.resource.validate(changes, entity)

        def stage():
            for field, value in changes.items():
                setattr(entity, field, value)

        await self._flush_or_conflict(db, stage)
        return entity

    async def delete_one(self, db: AsyncSession, entity_id: uuid.UUID) -> ModelT:
        """
        Hard-delete an entity and return it (detached).

        Raises:
            NotFoundError: If no visible entity has this id.
        """
        entity = await self.get_one(db, entity_id)
        await db.delete(entity)
        await db.flush()
        return entity

    async def get_all(
        self,
        db: AsyncSession,
        spec: QuerySpec,
        scope: dict[str, Any] | None = None,
    ) -> list[ModelT]:
        """
        List one page of entities.

        Args:
            db: Database session.
            spec: Parsed query parameters (filters, sort, page window).
            scope: Optional parent relationship, e.g. {"tour_id": tour.id}
                   for reviews nested under a tour.

        Returns:
            The entities in the requested window (possibly empty).
        """
        stmt = self._select()
        for field, value in (scope or {}).items():
            stmt = stmt.where(getattr(self.resource.model, field) == value)
        stmt = spec.apply(stmt, self.resource.model, self.resource.public_fields)

        result = await db.execute(stmt)
        return list(result.scalars().all())
