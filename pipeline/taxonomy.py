"""TOL industry classification → business category taxonomy.

One canonical table of 22 categories. Ids are the single letters of the TOL
section scheme (A..V); each category also carries an English slug that older
selections used as its id. Keywords are lowercase substrings matched against
classification names; table order is matching priority (first match wins).
"""

from __future__ import annotations

from collections.abc import Iterable

from pydantic import BaseModel, ConfigDict, field_validator

# (id, slug, label, keywords) in priority order
_CATEGORY_TABLE: list[tuple[str, str, str, list[str]]] = [
    ("A", "agriculture", "Agriculture & Farming", [
        "agriculture", "forestry", "fishing", "farming", "crop", "animal", "hunting",
        "aquaculture", "silviculture", "logging", "marine", "freshwater", "cattle",
        "dairy", "poultry", "livestock", "cereals", "vegetables", "fruits", "grapes",
        "tobacco", "flowers", "plant", "propagation",
    ]),
    ("B", "mining", "Mining & Extraction", [
        "mining", "quarrying", "extraction", "coal", "lignite", "petroleum",
        "natural gas", "metal", "iron", "uranium", "stone", "sand", "clay", "gravel",
        "salt", "peat", "chemical", "fertiliser", "minerals",
    ]),
    ("C", "manufacturing", "Manufacturing & Production", [
        "manufacturing", "production", "food", "beverage", "tobacco", "textile",
        "clothing", "leather", "wood", "paper", "printing", "coke", "petroleum",
        "chemical", "pharmaceutical", "rubber", "plastic", "metal", "machinery",
        "equipment", "furniture", "repair", "meat", "dairy", "bakery", "sugar", "wine",
        "beer", "spirits",
    ]),
    ("D", "energy", "Energy & Utilities", [
        "electricity", "gas", "steam", "air conditioning", "energy", "power",
        "utility", "electric", "generation", "transmission", "distribution", "supply",
    ]),
    ("E", "water", "Water & Waste Management", [
        "water", "supply", "sewerage", "waste", "management", "remediation",
        "collection", "treatment", "disposal", "recovery", "materials", "recycling",
    ]),
    ("F", "construction", "Construction & Building", [
        "construction", "building", "civil", "engineering", "specialized",
        "residential", "non-residential", "demolition", "site", "preparation",
        "electrical", "plumbing", "installation", "finishing",
    ]),
    ("G", "trade", "Trade & Retail", [
        "wholesale", "retail", "trade", "sale", "motor", "vehicle", "repair",
        "maintenance", "parts", "accessories", "fuel", "food", "beverage", "tobacco",
        "household", "goods", "machinery", "equipment",
    ]),
    ("H", "transport", "Transportation & Logistics", [
        "transportation", "storage", "land", "water", "air", "warehousing", "postal",
        "courier", "logistics", "railway", "road", "freight", "passenger", "pipeline",
        "supporting", "handling",
    ]),
    ("I", "hospitality", "Hospitality & Tourism", [
        "accommodation", "food", "service", "hotel", "restaurant", "tourism",
        "hospitality", "short-term", "camping", "recreational", "vehicle", "parks",
        "beverage", "serving",
    ]),
    ("J", "media", "Media & Publishing", [
        "publishing", "broadcasting", "content", "production", "distribution",
        "books", "journals", "newspapers", "software", "motion", "picture", "video",
        "television", "radio", "music", "sound", "recording",
    ]),
    ("K", "information", "Technology & IT Services", [
        "telecommunication", "computer", "programming", "consulting", "computing",
        "infrastructure", "information", "service", "wired", "wireless", "satellite",
        "internet", "data", "processing", "hosting", "web", "portals",
    ]),
    ("L", "finance", "Finance & Insurance", [
        "financial", "insurance", "banking", "credit", "fund", "pension",
        "investment", "monetary", "intermediation", "central", "bank", "deposit",
        "taking", "life", "non-life", "reinsurance", "auxiliary",
    ]),
    ("M", "realestate", "Real Estate & Property", [
        "real estate", "property", "rental", "leasing", "estate", "buying",
        "selling", "renting", "operating", "own", "leased", "residential",
        "non-residential",
    ]),
    ("N", "professional", "Professional Services", [
        "professional", "scientific", "technical", "legal", "accounting",
        "management", "consulting", "architectural", "engineering", "research",
        "development", "advertising", "market", "design", "photography",
        "translation", "veterinary", "head", "offices", "specialized",
    ]),
    ("O", "administrative", "Administrative Support", [
        "administrative", "support", "service", "rental", "leasing", "employment",
        "travel", "security", "investigation", "services", "building", "landscape",
        "office", "machinery", "equipment", "agency", "tour", "operator",
    ]),
    ("P", "public", "Government & Public Services", [
        "public", "administration", "defence", "social", "security", "government",
        "general", "regulation", "economic", "affairs", "foreign", "justice",
        "order", "safety", "compulsory",
    ]),
    ("Q", "education", "Education & Training", [
        "education", "teaching", "school", "university", "training", "learning",
        "pre-primary", "primary", "secondary", "higher", "technical", "vocational",
        "cultural", "sports", "recreation", "educational", "support",
    ]),
    ("R", "health", "Healthcare & Social Services", [
        "health", "social", "work", "human", "medical", "hospital", "nursing",
        "care", "residential", "diagnostic", "therapy", "dental", "practice",
        "activities", "mental", "disability", "elderly", "child", "day",
    ]),
    ("S", "arts", "Arts & Entertainment", [
        "arts", "entertainment", "recreation", "creative", "sports", "amusement",
        "gambling", "library", "museum", "performing", "artistic", "literary",
        "cultural", "facilities", "fitness", "other",
    ]),
    ("T", "other", "Personal & Other Services", [
        "other", "service", "activities", "membership", "organizations", "repair",
        "maintenance", "personal", "household", "goods", "religious", "political",
        "trade", "unions", "professional",
    ]),
    ("U", "household", "Household Services", [
        "households", "employers", "domestic", "personnel", "undifferentiated",
        "goods", "services", "producing", "activities", "own", "use",
    ]),
    ("V", "international", "International Organizations", [
        "extraterritorial", "organisations", "bodies", "international",
        "diplomatic", "consular", "missions", "foreign", "embassies",
    ]),
]

# catches every classification no keyword matched
FALLBACK_ID = "T"


class CategoryDefinition(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    slug: str
    label: str
    keywords: tuple[str, ...]
    fallback: bool = False

    @field_validator("keywords", mode="before")
    @classmethod
    def _normalize_keywords(cls, value: Iterable[str]) -> tuple[str, ...]:
        keywords = tuple(str(kw).strip().lower() for kw in value)
        if not keywords:
            raise ValueError("category needs at least one keyword")
        if any(not kw for kw in keywords):
            raise ValueError("category keywords must be non-empty strings")
        return keywords


class Taxonomy:
    """Ordered, read-only set of category definitions.

    Table order is both matching priority and display order. Lookups by an
    unknown id return None; callers treat that as a no-op.
    """

    def __init__(self, categories: Iterable[CategoryDefinition]):
        self._categories = tuple(categories)
        if not self._categories:
            raise ValueError("taxonomy needs at least one category")

        self._index: dict[str, CategoryDefinition] = {}
        for cat in self._categories:
            if cat.id in self._index:
                raise ValueError(f"duplicate category id: {cat.id}")
            self._index[cat.id] = cat
        # slugs are aliases; they may not shadow a canonical id
        self._aliases: dict[str, CategoryDefinition] = {}
        for cat in self._categories:
            if cat.slug in self._aliases or cat.slug in self._index:
                raise ValueError(f"duplicate category slug: {cat.slug}")
            self._aliases[cat.slug] = cat

        fallbacks = [cat for cat in self._categories if cat.fallback]
        if len(fallbacks) != 1:
            raise ValueError(
                f"taxonomy needs exactly one fallback category, got {len(fallbacks)}"
            )
        self._fallback = fallbacks[0]

    def all(self) -> tuple[CategoryDefinition, ...]:
        return self._categories

    def by_id(self, category_id: str | None) -> CategoryDefinition | None:
        """Resolve a letter id (or legacy slug) to its definition, None if unknown."""
        if not category_id:
            return None
        return self._index.get(category_id) or self._aliases.get(category_id)

    def search(self, term: str | None) -> tuple[CategoryDefinition, ...]:
        """Categories whose label or any keyword contains `term` (case-insensitive)."""
        needle = (term or "").strip().lower()
        if not needle:
            return self._categories
        return tuple(
            cat for cat in self._categories
            if needle in cat.label.lower() or any(needle in kw for kw in cat.keywords)
        )

    @property
    def fallback(self) -> CategoryDefinition:
        return self._fallback

    @property
    def ids(self) -> list[str]:
        return [cat.id for cat in self._categories]

    def __len__(self) -> int:
        return len(self._categories)

    def __iter__(self):
        return iter(self._categories)

    def __repr__(self) -> str:
        return f"Taxonomy(categories={self.ids}, fallback={self._fallback.id!r})"


def build_taxonomy(
    table: Iterable[tuple[str, str, str, list[str]]], fallback_id: str
) -> Taxonomy:
    """Build a Taxonomy from (id, slug, label, keywords) rows."""
    return Taxonomy(
        CategoryDefinition(
            id=cat_id,
            slug=slug,
            label=label,
            keywords=keywords,
            fallback=cat_id == fallback_id,
        )
        for cat_id, slug, label, keywords in table
    )


DEFAULT_TAXONOMY = build_taxonomy(_CATEGORY_TABLE, FALLBACK_ID)
