"""Page/per_page handling shared by the account, contact and project lists."""

from dataclasses import dataclass

from fastapi import Query
from sqlalchemy.orm import Query as SQLAlchemyQuery

PER_PAGE_DEFAULT = 20
PER_PAGE_LIMIT = 100


@dataclass
class PaginationParams:
    page: int = 1
    per_page: int = PER_PAGE_DEFAULT

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.per_page

    def pages_for(self, total: int) -> int:
        if self.per_page <= 0:
            return 0
        return -(-total // self.per_page)

    def page_meta(self, total: int) -> dict[str, int]:
        """Fields every list response carries next to its items."""
        return {
            "total": total,
            "page": self.page,
            "per_page": self.per_page,
            "pages": self.pages_for(total),
        }


def get_pagination(
    page: int = Query(1, ge=1, description="1始まりのページ番号"),
    per_page: int = Query(PER_PAGE_DEFAULT, ge=1, le=PER_PAGE_LIMIT, description="1ページの件数"),
) -> PaginationParams:
    return PaginationParams(page=page, per_page=per_page)


def paginate_query(query: SQLAlchemyQuery, pagination: PaginationParams) -> tuple[list, int]:
    """Return one page of rows and the unpaged row count."""
    total = query.order_by(None).count()
    rows = query.offset(pagination.offset).limit(pagination.per_page).all()
    return rows, total
