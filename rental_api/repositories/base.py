from __future__ import annotations

from typing import Any, ClassVar, Dict, FrozenSet, Generic, Iterable, List, Optional, Tuple, TypeVar

from sqlalchemy import Executable, Select, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import load_only

from rental_api.core.errors import InvalidDataError
from rental_api.core.utils import utcnow
from rental_api.repositories.query import (
    apply_order,
    apply_selector,
    build_join_plan,
    column_attributes,
    foreign_keys_for,
)
from rental_api.schemas.common import FindConfig

ModelT = TypeVar("ModelT")


class BaseRepository(Generic[ModelT]):
    """
    Base class for repositories providing common helpers.

    Subclasses set `model` and the `relations` that may be hydrated. Reads exclude
    soft-deleted rows unless FindConfig.with_deleted is set, and run in two steps:
    matching ids are selected first (filters, order, pagination), then entities
    are loaded by id with the requested relations and returned in id order.
    """

    model: ClassVar[Any] = None
    relations: ClassVar[FrozenSet[str]] = frozenset()
    default_order: ClassVar[Dict[str, str]] = {"created_at": "DESC"}

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def execute(self, statement: Executable, params: Optional[dict[str, Any]] = None):
        """Execute a SQLAlchemy statement."""
        return await self.session.execute(statement, params or {})

    async def scalars(self, statement: Executable, params: Optional[dict[str, Any]] = None):
        """Execute and return scalars."""
        result = await self.execute(statement, params)
        return result.scalars()

    async def scalar_one_or_none(self, statement: Executable, params: Optional[dict[str, Any]] = None):
        """Execute and return a single scalar or None."""
        result = await self.execute(statement, params)
        return result.scalar_one_or_none()

    async def flush(self) -> None:
        """Flush pending changes so generated ids and constraints are applied."""
        await self.session.flush()

    async def add_all(self, entities: Iterable[Any]) -> None:
        """Add multiple entities to session."""
        self.session.add_all(list(entities))

    async def add(self, entity: Any) -> None:
        """Add a single entity to session."""
        self.session.add(entity)

    # Query building -----------------------------------------------------------

    def live(self, stmt: Select, with_deleted: bool = False) -> Select:
        """Apply the default soft-delete predicate."""
        if with_deleted or not hasattr(self.model, "deleted_at"):
            return stmt
        return stmt.where(self.model.deleted_at.is_(None))

    def filtered_ids(self, selector: Optional[Dict[str, Any]], with_deleted: bool = False) -> Select:
        """
        Build the id query for a selector. Subclasses pop their special keys
        (free text, join filters) and delegate the rest here.
        """
        stmt = self.live(select(self.model.id), with_deleted)
        return apply_selector(stmt, self.model, selector)

    def validate_relations(self, relations: Optional[Iterable[str]]) -> List[str]:
        """Reject relation paths this repository does not expose."""
        requested = list(dict.fromkeys(relations or []))
        unknown = [r for r in requested if r not in self.relations]
        if unknown:
            raise InvalidDataError(
                f"Relations {', '.join(unknown)} are not allowed for {self.model.__name__}"
            )
        return requested

    def _projection(self, config: FindConfig, relations: List[str]) -> List[Any]:
        if not config.select:
            return []
        columns = column_attributes(self.model)
        names = list(dict.fromkeys(["id", *config.select, *foreign_keys_for(self.model, relations)]))
        unknown = [n for n in names if n not in columns]
        if unknown:
            raise InvalidDataError(f"Fields {', '.join(unknown)} are not allowed for {self.model.__name__}")
        return [load_only(*[columns[n] for n in names])]

    # Reads ---------------------------------------------------------------------

    async def load(self, ids: List[str], config: Optional[FindConfig] = None) -> List[ModelT]:
        """
        Hydrate entities by id with the configured relations and projection.

        Existing identities in the session are refreshed so reads observe bulk
        writes made earlier in the transaction.
        """
        if not ids:
            return []
        config = config or FindConfig()
        relations = self.validate_relations(config.relations)
        stmt = (
            select(self.model)
            .where(self.model.id.in_(ids))
            .options(*self._projection(config, relations), *build_join_plan(self.model, relations))
            .execution_options(populate_existing=True)
        )
        by_id = {row.id: row for row in await self.scalars(stmt)}
        return [by_id[i] for i in ids if i in by_id]

    async def find_ids(self, selector: Optional[Dict[str, Any]] = None, config: Optional[FindConfig] = None) -> List[str]:
        """Ordered, paginated ids matching the selector."""
        config = config or FindConfig()
        stmt = self.filtered_ids(dict(selector or {}), config.with_deleted)
        stmt = apply_order(stmt, self.model, config.order or self.default_order)
        if config.skip:
            stmt = stmt.offset(config.skip)
        if config.take is not None:
            stmt = stmt.limit(config.take)
        return list(await self.scalars(stmt))

    async def find(self, selector: Optional[Dict[str, Any]] = None, config: Optional[FindConfig] = None) -> List[ModelT]:
        """Find entities matching the selector with relations hydrated."""
        config = config or FindConfig()
        self.validate_relations(config.relations)
        ids = await self.find_ids(selector, config)
        return await self.load(ids, config)

    async def count(self, selector: Optional[Dict[str, Any]] = None, with_deleted: bool = False) -> int:
        """Count entities matching the selector."""
        subquery = self.filtered_ids(dict(selector or {}), with_deleted).subquery()
        result = await self.execute(select(func.count()).select_from(subquery))
        return int(result.scalar_one())

    async def find_and_count(
        self, selector: Optional[Dict[str, Any]] = None, config: Optional[FindConfig] = None
    ) -> Tuple[List[ModelT], int]:
        """Find a page of entities and the total count of matches."""
        config = config or FindConfig()
        entities = await self.find(selector, config)
        total = await self.count(selector, config.with_deleted)
        return entities, total

    async def find_one(self, selector: Dict[str, Any], config: Optional[FindConfig] = None) -> Optional[ModelT]:
        """First entity matching the selector, or None."""
        config = (config or FindConfig()).model_copy(update={"take": 1, "skip": 0})
        found = await self.find(selector, config)
        return found[0] if found else None

    # Writes --------------------------------------------------------------------

    async def soft_delete_where(self, *criteria: Any) -> None:
        """Mark live rows matching the criteria as deleted."""
        stmt = (
            update(self.model)
            .where(*criteria)
            .where(self.model.deleted_at.is_(None))
            .values(deleted_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        await self.execute(stmt)
