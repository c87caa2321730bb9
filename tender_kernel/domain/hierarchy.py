"""
Cost category hierarchy.

Detail cost categories roll up into parent cost categories.  Category-level
selections need the detail -> parent lookup; the engines receive it as an
injected read-only ``CategoryHierarchy`` so any backing store can be
substituted.  A plain ``Mapping[str, str]`` is accepted anywhere a hierarchy
is expected and wrapped on the fly.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class CategoryHierarchy(Protocol):
    """Read-only detail -> parent category lookup."""

    def parent_of(self, detail_cost_category_id: str) -> str | None:
        ...


@dataclass(frozen=True)
class DetailCostCategory:
    """A row of the detail cost category table."""

    id: str
    cost_category_id: str
    name: str = ""
    location: str | None = None


@dataclass(frozen=True)
class DetailCategoryHierarchy:
    """
    In-memory hierarchy built from the two category tables.

    Contract:
        ``parent_of`` returns ``None`` for unknown detail ids; absence of an
        entry means "no match", never an error.
    Guarantees:
        - ``details_of`` preserves the order in which detail rows were given.
    """

    parents: Mapping[str, str]
    category_names: Mapping[str, str] = field(default_factory=dict)
    details: tuple[DetailCostCategory, ...] = ()

    @classmethod
    def from_mapping(cls, parents: Mapping[str, str]) -> DetailCategoryHierarchy:
        return cls(parents=dict(parents))

    def parent_of(self, detail_cost_category_id: str) -> str | None:
        return self.parents.get(detail_cost_category_id)

    def details_of(self, category_id: str) -> list[DetailCostCategory]:
        return [d for d in self.details if d.cost_category_id == category_id]

    def full_name(self, detail_cost_category_id: str) -> str | None:
        """``"<category> / <detail>[ / <location>]"`` display name."""
        for detail in self.details:
            if detail.id == detail_cost_category_id:
                name = f"{self.category_names.get(detail.cost_category_id, '')} / {detail.name}"
                if detail.location:
                    name = f"{name} / {detail.location}"
                return name
        return None


def build_category_hierarchy(
    categories: Iterable[Mapping[str, Any]],
    detail_categories: Iterable[Mapping[str, Any]],
) -> DetailCategoryHierarchy:
    """Build a hierarchy from ``cost_categories`` and ``detail_cost_categories`` rows.

    Args:
        categories: rows with ``id`` and ``name``.
        detail_categories: rows with ``id``, ``cost_category_id``, ``name``
            and optional ``location``.
    """
    names = {str(row["id"]): row.get("name") or "" for row in categories}
    details = tuple(
        DetailCostCategory(
            id=str(row["id"]),
            cost_category_id=str(row["cost_category_id"]),
            name=row.get("name") or "",
            location=row.get("location"),
        )
        for row in detail_categories
    )
    parents = {d.id: d.cost_category_id for d in details}
    return DetailCategoryHierarchy(
        parents=parents, category_names=names, details=details
    )


def as_hierarchy(
    source: CategoryHierarchy | Mapping[str, str] | None,
) -> CategoryHierarchy | None:
    """Normalise a hierarchy argument; raw mappings are wrapped."""
    if source is None or isinstance(source, CategoryHierarchy):
        return source
    return DetailCategoryHierarchy.from_mapping(source)
