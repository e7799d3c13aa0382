"""
Job Listing Pipeline - filter, sort and paginate the admin job table

Turns the latest job snapshot plus the table's view state into the exact
rows to render:

    jobs → [text filter] → [status filter] → [category filter]
         → [stable sort by shared rank] → [page slice of 12]

The function is pure and total: it never touches the store and never
raises for well-typed input, including empty collections.

References:
    Jobs point at their company and category either with an embedded
    object or with a bare id string (legacy documents). Both forms are
    normalized into Embedded / Reference once, and resolved against the
    current company / category snapshot by a single function.

Shared rank:
    is_shared is tri-state. Explicitly unshared jobs come first, jobs
    without the flag next, explicitly shared jobs last. The order inside
    each group is the snapshot order (posted_date descending).
"""

import math
from dataclasses import dataclass, field, replace
from typing import Any, Dict, Generic, Iterable, List, Optional, Sequence, TypeVar, Union

from app.schemas import JobRecord

UNKNOWN_NAME = "Unknown"
FILTER_ALL = "all"
DEFAULT_PAGE_SIZE = 12

SHARED_RANK = {False: 0, None: 1, True: 2}

T = TypeVar("T")


# ==================== References ====================

@dataclass(frozen=True)
class Embedded(Generic[T]):
    """Reference carried as a full (possibly partial) embedded record."""
    record: T

    @property
    def id(self) -> Optional[str]:
        return getattr(self.record, "id", None)


@dataclass(frozen=True)
class Reference:
    """Reference carried as a bare document id."""
    id: str


Ref = Union[Embedded, Reference]


def as_reference(value: Any) -> Optional[Ref]:
    """Normalize a raw company/category field into a tagged reference."""
    if value is None:
        return None
    if isinstance(value, str):
        return Reference(value) if value else None
    return Embedded(value)


def index_by_id(records: Iterable[Any]) -> Dict[str, Any]:
    """Map id -> record; the first record wins on duplicate ids."""
    index: Dict[str, Any] = {}
    for record in records:
        record_id = getattr(record, "id", None)
        if record_id is not None:
            index.setdefault(record_id, record)
    return index


def resolve(ref: Optional[Ref], index: Dict[str, Any]) -> Optional[Any]:
    """
    Resolve a reference to a record carrying a name.

    An embedded record with a name stands for itself. An embedded record
    without a name, or a bare id, is looked up in the index.
    """
    if ref is None:
        return None
    if isinstance(ref, Embedded) and getattr(ref.record, "name", None):
        return ref.record
    if ref.id is None:
        return None
    return index.get(ref.id)


def resolve_name(ref: Optional[Ref], index: Dict[str, Any]) -> str:
    record = resolve(ref, index)
    if record is None:
        return UNKNOWN_NAME
    return getattr(record, "name", None) or UNKNOWN_NAME


def reference_id(ref: Optional[Ref]) -> Optional[str]:
    return None if ref is None else ref.id


# ==================== View state ====================

@dataclass(frozen=True)
class ListingView:
    """
    Serializable view state of the job table.

    Attributes:
        search: Free text matched against title and company name
        status: "all", "Active" or "Inactive"
        category: "all" or a category id
        page: 1-based page number
    """

    search: str = ""
    status: str = FILTER_ALL
    category: str = FILTER_ALL
    page: int = 1

    def with_filters(
        self,
        search: Optional[str] = None,
        status: Optional[str] = None,
        category: Optional[str] = None,
    ) -> "ListingView":
        """Change any filter; always goes back to page 1."""
        return replace(
            self,
            search=self.search if search is None else search,
            status=self.status if status is None else status,
            category=self.category if category is None else category,
            page=1,
        )

    def with_page(self, page: int) -> "ListingView":
        return replace(self, page=page)


@dataclass
class ListingRow:
    job: JobRecord
    company_name: str
    category_name: str


@dataclass
class ListingPage:
    """
    One rendered page of the job table.

    total_pages is never below 1: an empty result is a single empty page.
    A page past the end keeps its number and carries no rows.
    """

    rows: List[ListingRow] = field(default_factory=list)
    page: int = 1
    page_size: int = DEFAULT_PAGE_SIZE
    total: int = 0
    total_pages: int = 1

    @property
    def jobs(self) -> List[JobRecord]:
        return [row.job for row in self.rows]


# ==================== Pipeline ====================

def shared_rank(job: JobRecord) -> int:
    return SHARED_RANK[job.is_shared]


def count_pages(total: int, page_size: int = DEFAULT_PAGE_SIZE) -> int:
    return max(1, math.ceil(total / page_size))


def build_listing(
    jobs: Sequence[JobRecord],
    companies: Iterable[Any],
    categories: Iterable[Any],
    view: ListingView,
    page_size: int = DEFAULT_PAGE_SIZE,
) -> ListingPage:
    """
    Compute the page of jobs to render for a view state.

    Args:
        jobs: Job snapshot in store order
        companies: Company snapshot used to resolve bare company ids
        categories: Category snapshot used to resolve bare category ids
        view: Current filters and page
        page_size: Rows per page

    Returns:
        ListingPage with the row slice and pagination metadata
    """
    company_index = index_by_id(companies)
    category_index = index_by_id(categories)
    needle = view.search.lower()

    rows: List[ListingRow] = []
    for job in jobs:
        company_ref = as_reference(job.company)
        category_ref = as_reference(job.category)
        company_name = resolve_name(company_ref, company_index)

        if needle not in job.title.lower() and needle not in company_name.lower():
            continue
        if view.status != FILTER_ALL and job.status != view.status:
            continue
        if view.category != FILTER_ALL and reference_id(category_ref) != view.category:
            continue

        rows.append(ListingRow(job, company_name, resolve_name(category_ref, category_index)))

    # list.sort is stable, so equal ranks keep snapshot order
    rows.sort(key=lambda row: shared_rank(row.job))

    page = max(1, view.page)
    start = (page - 1) * page_size
    return ListingPage(
        rows=rows[start:start + page_size],
        page=page,
        page_size=page_size,
        total=len(rows),
        total_pages=count_pages(len(rows), page_size),
    )
