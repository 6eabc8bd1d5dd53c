"""Brand-scoped persistence helpers shared by the services and the repository.

Every pipeline table except step attempts carries a ``brand_id``; reads that
come from the API are always scoped to one brand, and a row belonging to
another brand is reported as missing rather than forbidden.
"""

from typing import Any, Generic, Optional, Sequence, Type, TypeVar
from uuid import uuid4

from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from core.exceptions import NotFoundError
from db.base import BaseModel

ModelType = TypeVar("ModelType", bound=BaseModel)


class BaseService(Generic[ModelType]):
    """Row access for one model.

    Subclasses set ``label`` so not-found errors read naturally:

        class CreatorService(BaseService[Creator]):
            label = "Creator"
    """

    label = "Record"

    def __init__(self, model: Type[ModelType], db: AsyncSession):
        self.model = model
        self.db = db

    async def get_by_id(self, id: str) -> Optional[ModelType]:
        return await self.db.get(self.model, id)

    async def get_by_id_and_brand(self, id: str, brand_id: str) -> Optional[ModelType]:
        result = await self.db.execute(
            select(self.model).where(self.model.id == id, self.model.brand_id == brand_id)
        )
        return result.scalar_one_or_none()

    async def get_for_brand(self, id: str, brand_id: str) -> ModelType:
        """Like get_by_id_and_brand, but a miss raises NotFoundError."""
        row = await self.get_by_id_and_brand(id, brand_id)
        if row is None:
            raise NotFoundError(f"{self.label} {id} not found")
        return row

    async def exists(self, id: str) -> bool:
        return await self.get_by_id(id) is not None

    def _filtered(self, query: Select, brand_id: str, filters: dict[str, Any]) -> Select:
        query = query.where(self.model.brand_id == brand_id)
        for field, value in filters.items():
            # None means "not filtered"; False is a real filter value
            if value is None:
                continue
            column = getattr(self.model, field)
            query = query.where(column.in_(value) if isinstance(value, list) else column == value)
        return query

    async def list_for_brand(
        self,
        brand_id: str,
        offset: int = 0,
        limit: int = 50,
        order_by: str = "created_at",
        **filters: Any,
    ) -> tuple[Sequence[ModelType], int]:
        """One page of a brand's rows, newest first, plus the unpaged total."""
        page = (
            self._filtered(select(self.model), brand_id, filters)
            .order_by(getattr(self.model, order_by).desc())
            .offset(offset)
            .limit(limit)
        )
        total = await self.db.scalar(
            self._filtered(select(func.count()).select_from(self.model), brand_id, filters)
        )
        items = (await self.db.execute(page)).scalars().all()
        return items, total or 0

    async def create(self, data: dict[str, Any]) -> ModelType:
        instance = self.model(**{"id": str(uuid4()), **data})
        self.db.add(instance)
        await self.db.flush()
        await self.db.refresh(instance)
        return instance

    async def update(
        self,
        id: str,
        data: dict[str, Any],
        brand_id: Optional[str] = None,
        skip_none: bool = True,
    ) -> Optional[ModelType]:
        """Patch a row in place; returns None when it does not exist.

        With ``skip_none`` (the default) None values leave columns untouched,
        which gives PATCH semantics. The engine repository passes
        ``skip_none=False`` so it can clear columns such as ``resume_at``.
        """
        if brand_id is not None:
            instance = await self.get_by_id_and_brand(id, brand_id)
        else:
            instance = await self.get_by_id(id)
        if instance is None:
            return None

        changes = {k: v for k, v in data.items() if v is not None or not skip_none}
        for key, value in changes.items():
            setattr(instance, key, value)
        if changes:
            await self.db.flush()
            await self.db.refresh(instance)
        return instance
