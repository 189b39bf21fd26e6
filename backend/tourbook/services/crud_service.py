"""
Tourbook Backend — Generic CRUD Service
========================================

What:  The five handlers every resource shares: list, get one, create,
       update and delete.
How:   One CrudService per model, configured with its response schema and the
       API names that may be filtered on. Resource services subclass it and
       override the hooks below instead of re-implementing the handlers.

Write pipeline (create / update / delete):
    mutate ORM object → flush → after_change() → commit
    - flush surfaces unique-constraint violations as ConflictError (400)
    - after_change() runs in the same transaction, so derived data (tour
      ratings after a review change) is committed together with the write

Response envelopes:
    list    {"status": "success", "results": n, "data": {"data": [...]}}
    single  {"status": "success", "data": {"data": {...}}}
    delete  no body (204)

Hooks:
    base_query()                 SELECT used by list and get (default: all rows)
    before_create(db, data)      adjust/validate create payload
    before_update(db, obj, data) adjust/validate update payload
    after_change(db, obj)        derived updates, runs for every write
"""

import logging
from typing import Any, Dict, Generic, Iterable, Optional, Sequence, Tuple, Type, TypeVar
from uuid import UUID

from pydantic import BaseModel
from pydantic.alias_generators import to_camel
from sqlalchemy import Select, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from tourbook.database import Base
from tourbook.exceptions import ConflictError, DatabaseError, NotFoundError
from tourbook.services.query_features import QueryFeatures

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=Base)


class CrudService(Generic[ModelT]):
    def __init__(
        self,
        model: Type[ModelT],
        response_schema: Type[BaseModel],
        resource_name: str,
        filterable: Optional[Iterable[str]] = None,
    ):
        self.model = model
        self.response_schema = response_schema
        self.resource_name = resource_name
        # camelCase API name → model attribute, for every field the API exposes
        self.field_map = {to_camel(name): name for name in response_schema.model_fields}
        self.filterable = set(filterable) if filterable is not None else set(self.field_map)

    # ── Hooks ─────────────────────────────────────────────────────────────

    def base_query(self) -> Select:
        return select(self.model)

    async def before_create(self, db: AsyncSession, data: Dict[str, Any]) -> Dict[str, Any]:
        return data

    async def before_update(self, db: AsyncSession, obj: ModelT, data: Dict[str, Any]) -> Dict[str, Any]:
        return data

    async def after_change(self, db: AsyncSession, obj: ModelT) -> None:
        return None

    # ── Helpers ───────────────────────────────────────────────────────────

    def serialize(self, obj: ModelT) -> Dict[str, Any]:
        return self.response_schema.model_validate(obj).model_dump(by_alias=True, mode="json")

    def envelope(self, obj: ModelT) -> Dict[str, Any]:
        return {"status": "success", "data": {"data": self.serialize(obj)}}

    async def _flush(self, db: AsyncSession) -> None:
        try:
            await db.flush()
        except IntegrityError as e:
            await db.rollback()
            logger.info("Integrity error writing %s: %s", self.resource_name, e.orig)
            raise ConflictError(context={"resource": self.resource_name}) from e

    async def _commit(self, db: AsyncSession) -> None:
        try:
            await db.commit()
        except IntegrityError as e:
            await db.rollback()
            raise ConflictError(context={"resource": self.resource_name}) from e
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error("Database error committing %s: %s", self.resource_name, e, exc_info=True)
            raise DatabaseError(
                message=f"Could not save the {self.resource_name}. Please try again.",
                context={"error_type": type(e).__name__},
            ) from e

    # ── Handlers ──────────────────────────────────────────────────────────

    async def get_all(
        self,
        db: AsyncSession,
        params: Sequence[Tuple[str, str]],
        where: Iterable[Any] = (),
    ) -> Dict[str, Any]:
        """List rows, applying ?filter, ?sort, ?fields, ?page and ?limit."""
        statement = self.base_query()
        for clause in where:
            statement = statement.where(clause)

        features = (
            QueryFeatures(self.model, params, self.field_map, self.filterable, statement=statement)
            .filter()
            .sort()
            .limit_fields()
            .paginate()
        )

        try:
            result = await db.execute(features.statement)
            rows = list(result.scalars().all())
        except SQLAlchemyError as e:
            logger.error("Database error listing %s: %s", self.resource_name, e, exc_info=True)
            raise DatabaseError(
                message=f"Could not retrieve {self.resource_name}s. Please try again.",
                context={"error_type": type(e).__name__},
            ) from e

        items = [features.project(self.serialize(row)) for row in rows]
        return {"status": "success", "results": len(items), "data": {"data": items}}

    async def get_instance(self, db: AsyncSession, obj_id: UUID) -> ModelT:
        result = await db.execute(self.base_query().where(self.model.id == obj_id))
        obj = result.scalar_one_or_none()
        if obj is None:
            raise NotFoundError(resource=self.resource_name, resource_id=str(obj_id))
        return obj

    async def get_one(self, db: AsyncSession, obj_id: UUID) -> Dict[str, Any]:
        return self.envelope(await self.get_instance(db, obj_id))

    async def create_one(self, db: AsyncSession, data: Dict[str, Any]) -> Dict[str, Any]:
        data = await self.before_create(db, dict(data))
        obj = self.model(**data)
        db.add(obj)
        await self._flush(db)
        await self.after_change(db, obj)
        await self._commit(db)
        logger.info("Created %s %s", self.resource_name, obj.id)
        return self.envelope(obj)

    async def update_one(self, db: AsyncSession, obj_id: UUID, data: Dict[str, Any]) -> Dict[str, Any]:
        obj = await self.get_instance(db, obj_id)
        data = await self.before_update(db, obj, dict(data))
        for key, value in data.items():
            setattr(obj, key, value)
        await self._flush(db)
        await self.after_change(db, obj)
        await self._commit(db)
        logger.info("Updated %s %s (%s)", self.resource_name, obj.id, ", ".join(sorted(data)) or "no fields")
        return self.envelope(obj)

    async def delete_one(self, db: AsyncSession, obj_id: UUID) -> None:
        obj = await self.get_instance(db, obj_id)
        await db.delete(obj)
        await self._flush(db)
        await self.after_change(db, obj)
        await self._commit(db)
        logger.info("Deleted %s %s", self.resource_name, obj_id)
