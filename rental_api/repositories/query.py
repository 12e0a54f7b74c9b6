"""
Query construction helpers shared by repositories.

- Selector translation: {field: value} mappings become WHERE clauses
  (equality, membership, comparison operators, NULL checks).
- Join plans: dotted relation paths ("variants.prices") are grouped by their
  top-level relation and turned into eager-load options, one SELECT ... IN batch
  per relation, so several one-to-many relations never multiply rows.
"""
from __future__ import annotations

from typing import Any, Dict, Iterable, List, Mapping, Optional

from sqlalchemy import Select, inspect as sa_inspect
from sqlalchemy.orm import RelationshipDirection, selectinload

from rental_api.core.errors import InvalidDataError

_COMPARATORS = {
    "lt": lambda col, v: col < v,
    "lte": lambda col, v: col <= v,
    "gt": lambda col, v: col > v,
    "gte": lambda col, v: col >= v,
    "eq": lambda col, v: col.is_(None) if v is None else col == v,
    "ne": lambda col, v: col.is_not(None) if v is None else col != v,
    "in": lambda col, v: col.in_(list(v)),
    "nin": lambda col, v: col.not_in(list(v)),
}


# PUBLIC_INTERFACE
def column_attributes(model: Any) -> Dict[str, Any]:
    """Map public column names (e.g. 'metadata') to mapped attributes (e.g. Model.metadata_)."""
    mapper = sa_inspect(model)
    return {prop.columns[0].name: getattr(model, prop.key) for prop in mapper.column_attrs}


# PUBLIC_INTERFACE
def resolve_column(model: Any, name: str) -> Any:
    """Return the mapped column attribute for a public column name or raise InvalidDataError."""
    columns = column_attributes(model)
    if name not in columns:
        raise InvalidDataError(f"Unknown field '{name}' for {model.__name__}")
    return columns[name]


# PUBLIC_INTERFACE
def apply_selector(stmt: Select, model: Any, selector: Optional[Mapping[str, Any]]) -> Select:
    """
    Apply a selector to a statement.

    Values are interpreted as:
      None            -> IS NULL
      list/tuple/set  -> IN (...)
      dict            -> operator map, e.g. {"gte": 10, "lt": 20}
      anything else   -> equality
    """
    for key, value in (selector or {}).items():
        column = resolve_column(model, key)
        if value is None:
            stmt = stmt.where(column.is_(None))
        elif isinstance(value, (list, tuple, set, frozenset)):
            stmt = stmt.where(column.in_(list(value)))
        elif isinstance(value, dict):
            for op, operand in value.items():
                comparator = _COMPARATORS.get(op)
                if comparator is None:
                    raise InvalidDataError(f"Unsupported operator '{op}' for field '{key}'")
                stmt = stmt.where(comparator(column, operand))
        else:
            stmt = stmt.where(column == value)
    return stmt


# PUBLIC_INTERFACE
def apply_order(stmt: Select, model: Any, order: Optional[Mapping[str, str]]) -> Select:
    """Order by the given columns, always ending with id for a stable order."""
    clauses = []
    for name, direction in (order or {}).items():
        column = resolve_column(model, name)
        clauses.append(column.desc() if str(direction).upper() == "DESC" else column.asc())
    if "id" not in (order or {}):
        clauses.append(model.id.asc())
    return stmt.order_by(*clauses)


def _relation_tree(paths: Iterable[str]) -> Dict[str, Dict]:
    tree: Dict[str, Dict] = {}
    for path in paths:
        node = tree
        for part in path.split("."):
            node = node.setdefault(part, {})
    return tree


def _loaders_for(model: Any, tree: Mapping[str, Mapping]) -> List[Any]:
    mapper = sa_inspect(model)
    loaders = []
    for name, children in tree.items():
        relationship = mapper.relationships.get(name)
        if relationship is None:
            raise InvalidDataError(f"Unknown relation '{name}' for {model.__name__}")
        loader = selectinload(getattr(model, name))
        if children:
            loader = loader.options(*_loaders_for(relationship.mapper.class_, children))
        loaders.append(loader)
    return loaders


# PUBLIC_INTERFACE
def group_relations(relations: Iterable[str]) -> Dict[str, List[str]]:
    """Group dotted relation paths by their top-level relation, keeping first-seen order."""
    groups: Dict[str, List[str]] = {}
    for path in relations:
        groups.setdefault(path.split(".", 1)[0], []).append(path)
    return groups


# PUBLIC_INTERFACE
def build_join_plan(model: Any, relations: Iterable[str]) -> List[Any]:
    """
    Build eager-load options for the requested relations.

    Each top-level relation group becomes one selectinload chain; nested paths of
    the same group share the chain.
    """
    plan: List[Any] = []
    for paths in group_relations(relations).values():
        plan.extend(_loaders_for(model, _relation_tree(paths)))
    return plan


# PUBLIC_INTERFACE
def foreign_keys_for(model: Any, relations: Iterable[str]) -> List[str]:
    """Column names a projection must keep so the given many-to-one relations can load."""
    mapper = sa_inspect(model)
    names: List[str] = []
    for top in group_relations(relations):
        relationship = mapper.relationships.get(top)
        if relationship is not None and relationship.direction is RelationshipDirection.MANYTOONE:
            names.extend(col.name for col in relationship.local_columns)
    return names
