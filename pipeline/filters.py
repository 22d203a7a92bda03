"""Category selection → keyword list → SQL predicate over the company store.

A selection of category ids becomes the union of those categories' keywords,
which becomes `field ILIKE '%kw%' OR ...`. That predicate is ANDed with the
independent company filters (name, business id, city, revenue and date
ranges, ...). Every constraint is optional: nothing selected, nothing
constrained.
"""

from __future__ import annotations

import json
from collections.abc import Iterable, MutableMapping
from datetime import date

from pydantic import AliasChoices, BaseModel, Field, field_validator

from pipeline.taxonomy import DEFAULT_TAXONOMY, Taxonomy

# session-store key shared by the classification browser and the company search
SELECTION_KEY = "selectedClassifications"


class FilterSelection:
    """The set of category ids a user has picked."""

    def __init__(self, ids: Iterable[str] = ()):
        self._ids = {i for i in ids if isinstance(i, str) and i}

    def toggle(self, category_id: str) -> None:
        if category_id in self._ids:
            self._ids.discard(category_id)
        else:
            self._ids.add(category_id)

    def clear(self) -> None:
        self._ids.clear()

    @property
    def ids(self) -> tuple[str, ...]:
        return tuple(sorted(self._ids))

    def to_json(self) -> str:
        return json.dumps(list(self.ids))

    @classmethod
    def from_json(cls, payload: str | None) -> FilterSelection:
        """Decode a JSON array of ids. Anything else is an empty selection."""
        if not payload:
            return cls()
        try:
            data = json.loads(payload)
        except ValueError:
            return cls()
        if not isinstance(data, list):
            return cls()
        return cls(data)

    def __contains__(self, category_id: object) -> bool:
        return category_id in self._ids

    def __iter__(self):
        return iter(self.ids)

    def __len__(self) -> int:
        return len(self._ids)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, FilterSelection):
            return NotImplemented
        return self._ids == other._ids

    def __repr__(self) -> str:
        return f"FilterSelection({list(self.ids)})"


class Predicate:
    """OR of case-insensitive substring matches of `field` against keywords.

    With no keywords the predicate is the identity: it constrains nothing.
    """

    def __init__(self, field: str, keywords: Iterable[str] = ()):
        self.field = field
        self.keywords = tuple(keywords)

    @property
    def is_identity(self) -> bool:
        return not self.keywords

    def render(self) -> str:
        """Literal SQL text, for display and logs."""
        if self.is_identity:
            return "TRUE"
        clauses = []
        for kw in self.keywords:
            escaped = kw.replace("'", "''")
            clauses.append(f"{self.field} ILIKE '%{escaped}%'")
        return " OR ".join(clauses)

    def to_sql(self, start: int = 1) -> tuple[str, list[str]]:
        """Parametrized SQL using $start, $start+1, ... placeholders."""
        if self.is_identity:
            return "TRUE", []
        clauses = [
            f"{self.field} ILIKE ${start + i}" for i in range(len(self.keywords))
        ]
        return " OR ".join(clauses), [f"%{kw}%" for kw in self.keywords]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Predicate):
            return NotImplemented
        return (self.field, self.keywords) == (other.field, other.keywords)

    def __repr__(self) -> str:
        return f"Predicate({self.render()!r})"


class FilterTranslator:
    def __init__(self, taxonomy: Taxonomy = DEFAULT_TAXONOMY):
        self.taxonomy = taxonomy

    def to_keywords(self, selection: FilterSelection | Iterable[str]) -> list[str]:
        """Union of the selected categories' keywords, first-seen order.

        Categories are visited in taxonomy order so the result does not depend
        on selection order. Unknown ids are ignored. An empty selection gives
        an empty list, meaning "no category filter".
        """
        selected = set()
        for category_id in selection:
            cat = self.taxonomy.by_id(category_id)
            if cat is not None:
                selected.add(cat.id)

        keywords: list[str] = []
        seen: set[str] = set()
        for cat in self.taxonomy.all():
            if cat.id not in selected:
                continue
            for kw in cat.keywords:
                if kw not in seen:
                    seen.add(kw)
                    keywords.append(kw)
        return keywords

    def to_predicate(self, keywords: Iterable[str], field: str = "industry") -> Predicate:
        return Predicate(field, keywords)

    def translate(
        self, selection: FilterSelection | Iterable[str], field: str = "industry"
    ) -> Predicate:
        """Selection straight to predicate."""
        return self.to_predicate(self.to_keywords(selection), field)


class CompanyFilters(BaseModel):
    """Independent, optional company constraints.

    `location` is accepted as another name for `city`; the store has a
    single city column.
    """

    search: str | None = None
    company_name: str | None = None
    business_id: str | None = None
    industry: str | None = None
    city: str | None = Field(None, validation_alias=AliasChoices("city", "location"))
    company_type: str | None = None
    address: str | None = None
    postal_code: str | None = None
    website: str | None = None
    status: str | None = None
    min_revenue: float | None = None
    max_revenue: float | None = None
    min_date: date | None = None
    max_date: date | None = None

    @field_validator("*", mode="before")
    @classmethod
    def _blank_is_none(cls, value):
        if isinstance(value, str):
            value = value.strip()
            return value or None
        return value


# filter field → column
_SUBSTRING_FIELDS: dict[str, str] = {
    "company_name": "name",
    "business_id": "business_id",
    "industry": "industry",
    "city": "city",
    "address": "address",
    "postal_code": "postal_code",
    "website": "website",
}
_EXACT_FIELDS: dict[str, str] = {
    "company_type": "company_type",
    "status": "status",
}
_RANGE_FIELDS: list[tuple[str, str, str]] = [
    ("min_revenue", "revenue", ">="),
    ("max_revenue", "revenue", "<="),
    ("min_date", "registration_date", ">="),
    ("max_date", "registration_date", "<="),
]


def _contains(value: str) -> str:
    """ILIKE pattern matching `value` literally anywhere (escape char is backslash)."""
    escaped = value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def build_where(
    filters: CompanyFilters | None = None,
    category_predicate: Predicate | None = None,
) -> tuple[str, list]:
    """AND together every present constraint. Returns (where_sql, params).

    where_sql is "" when nothing constrains the query.
    """
    filters = filters or CompanyFilters()
    clauses = []
    params: list = []
    idx = 1

    if filters.search:
        clauses.append(
            f"(name ILIKE ${idx} ESCAPE '\\' OR business_id ILIKE ${idx} ESCAPE '\\')"
        )
        params.append(_contains(filters.search))
        idx += 1

    for attr, column in _SUBSTRING_FIELDS.items():
        value = getattr(filters, attr)
        if value:
            clauses.append(f"{column} ILIKE ${idx} ESCAPE '\\'")
            params.append(_contains(value))
            idx += 1

    for attr, column in _EXACT_FIELDS.items():
        value = getattr(filters, attr)
        if value:
            clauses.append(f"{column} = ${idx}")
            params.append(value)
            idx += 1

    for attr, column, op in _RANGE_FIELDS:
        value = getattr(filters, attr)
        if value is not None:
            clauses.append(f"{column} {op} ${idx}")
            params.append(value)
            idx += 1

    if category_predicate is not None and not category_predicate.is_identity:
        sql, kw_params = category_predicate.to_sql(idx)
        clauses.append(f"({sql})")
        params.extend(kw_params)
        idx += len(kw_params)

    where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
    return where, params


class SelectionHandoff:
    """Pass a category selection between pages through a session store.

    The writer puts the ids; the reader takes them, which clears the key.
    """

    def __init__(self, store: MutableMapping[str, str], key: str = SELECTION_KEY):
        self.store = store
        self.key = key

    def put(self, selection: FilterSelection | Iterable[str]) -> None:
        if not isinstance(selection, FilterSelection):
            selection = FilterSelection(selection)
        self.store[self.key] = selection.to_json()

    def take(self) -> FilterSelection | None:
        """The pending selection, or None if nothing was handed off."""
        payload = self.store.pop(self.key, None)
        if payload is None:
            return None
        return FilterSelection.from_json(payload)
