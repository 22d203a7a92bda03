"""Keyword classifier: TOL classification record → business category.

Tries each category in taxonomy order and returns the first whose keywords
appear in the record name. Records nothing matches land in the fallback
category, so every record gets exactly one category.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from pydantic import BaseModel, ConfigDict

from pipeline.taxonomy import DEFAULT_TAXONOMY, CategoryDefinition, Taxonomy


class ClassificationRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    code: str
    level: int
    name: str


class CategoryBucket(BaseModel):
    model_config = ConfigDict(frozen=True)

    definition: CategoryDefinition
    items: tuple[ClassificationRecord, ...] = ()

    @property
    def count(self) -> int:
        return len(self.items)


class Classifier:
    def __init__(self, taxonomy: Taxonomy = DEFAULT_TAXONOMY):
        self.taxonomy = taxonomy

    def classify_name(self, name: str | None) -> str:
        """Map a free-text classification name to a category id."""
        name_lower = (name or "").lower()
        if name_lower:
            for cat in self.taxonomy.all():
                # keywords are lowercased by CategoryDefinition
                if any(kw in name_lower for kw in cat.keywords):
                    return cat.id
        return self.taxonomy.fallback.id

    def classify(self, record: ClassificationRecord) -> str:
        return self.classify_name(record.name)

    def bucket(
        self, records: Iterable[ClassificationRecord]
    ) -> dict[str, CategoryBucket]:
        """Partition records into one bucket per category, in taxonomy order.

        Categories with no records still get an (empty) bucket. Records keep
        their input order inside each bucket.
        """
        grouped: dict[str, list[ClassificationRecord]] = {
            cat.id: [] for cat in self.taxonomy.all()
        }
        for record in records:
            grouped[self.classify(record)].append(record)

        return {
            cat.id: CategoryBucket(definition=cat, items=tuple(grouped[cat.id]))
            for cat in self.taxonomy.all()
        }

    def search(
        self,
        records: Sequence[ClassificationRecord],
        term: str | None = None,
        category_id: str | None = None,
    ) -> list[ClassificationRecord]:
        """Narrow records to one category, then by name/code substring.

        An unknown or missing category_id means all categories.
        """
        items: Iterable[ClassificationRecord] = records
        cat = self.taxonomy.by_id(category_id)
        if cat is not None:
            items = (r for r in items if self.classify(r) == cat.id)

        if term:
            term_lower = term.lower()
            items = (
                r for r in items
                if term_lower in r.name.lower() or term_lower in r.code.lower()
            )
        return list(items)


class BucketCache:
    """Keeps the last bucket() result; recomputes only when the records change."""

    def __init__(self, classifier: Classifier):
        self.classifier = classifier
        self._key: int | None = None
        self._records: tuple[ClassificationRecord, ...] | None = None
        self._buckets: dict[str, CategoryBucket] = {}
        self.misses = 0

    def get(self, records: Iterable[ClassificationRecord]) -> dict[str, CategoryBucket]:
        records = tuple(records)
        key = hash(records)
        # hash match alone could collide; compare the tuples too
        if key != self._key or records != self._records:
            self._buckets = self.classifier.bucket(records)
            self._key = key
            self._records = records
            self.misses += 1
        return dict(self._buckets)

    def invalidate(self) -> None:
        self._key = None
        self._records = None
        self._buckets = {}
