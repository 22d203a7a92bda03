"""MCP server for Company Finder.

Exposes the category taxonomy and company search as tools.
Uses FastMCP (v2) with stdio transport.
"""

from __future__ import annotations

from fastmcp import FastMCP

from api import queries
from pipeline.filters import CompanyFilters

mcp = FastMCP(
    "Company Finder",
    instructions=(
        "Company directory search with TOL industry categories. Call "
        "get_categories() first to see category ids, then pass them to "
        "search_companies() as the categories filter."
    ),
)


@mcp.tool()
def get_categories(search: str | None = None) -> list[dict]:
    """List business categories (id, label, keywords, classification count).

    search keeps categories whose label or any keyword contains the term.
    """
    return queries.get_categories(search)


@mcp.tool()
def search_classifications(
    search: str | None = None,
    category: str | None = None,
    limit: int = 100,
) -> list[dict]:
    """Search TOL industry classifications by name or code, optionally within one category."""
    return queries.get_classifications(search, category, min(limit, 1000))


@mcp.tool()
def get_keywords(categories: list[str]) -> dict:
    """Show the industry keywords and predicate a category selection expands to."""
    return queries.get_keywords(categories)


@mcp.tool()
def search_companies(
    categories: list[str] | None = None,
    search: str | None = None,
    city: str | None = None,
    company_type: str | None = None,
    min_revenue: float | None = None,
    max_revenue: float | None = None,
    page: int = 1,
    limit: int = 10,
) -> dict:
    """Search companies.

    categories are category ids from get_categories(); a company matches when
    its industry contains any keyword of any selected category. Other filters
    are ANDed. Returns {data, count, page, limit}.
    """
    filters = CompanyFilters(
        search=search,
        city=city,
        company_type=company_type,
        min_revenue=min_revenue,
        max_revenue=max_revenue,
    )
    return queries.get_companies(filters, categories, page, limit)


@mcp.tool()
def get_health() -> dict:
    """Check data file availability and freshness."""
    return queries.get_health()


def main():
    mcp.run()


if __name__ == "__main__":
    main()
