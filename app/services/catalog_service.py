# app/services/catalog_service.py
import logging
import math
import uuid
from collections import Counter

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from app.core.errors import NotFound
from app.models.product import Product
from app.repositories.order_repo import OrderRepository
from app.repositories.product_repo import ProductRepository
from app.schemas.product import CategoryInfo, ProductPage, ProductRead

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 12
PUBLIC_SORT_FIELDS = {"created_at", "price", "name"}

# Order lines scanned when ranking best sellers
POPULAR_SCAN_LIMIT = 1000

COLLABORATION_CATEGORY = "collaboration"
COLLABORATION_KEYWORDS = ("콜라보", "collaboration", "디자인")

CATEGORY_LABELS: dict[str, str] = {
    "electronics": "전자제품",
    "clothing": "의류",
    "books": "도서",
    "food": "식품",
    "sports": "스포츠",
    "beauty": "뷰티",
    "home": "생활/가정",
    "collaboration": "디자인 콜라보",
    "woman": "여성",
    "man": "남성",
}


def category_label(category: str | None) -> str:
    if not category:
        return "기타"
    return CATEGORY_LABELS.get(category, category)


def page_range(page: int, page_size: int) -> tuple[int, int]:
    """
    Inclusive row range for a 1-based page: page=2, size=12 -> (12, 23).
    """
    start = (page - 1) * page_size
    return start, start + page_size - 1


class CatalogService:
    """
    Read-only storefront queries.

    Every method degrades to an empty result on a database error: the
    error is logged and never reaches the page. Callers cannot tell
    "no data" from "query failed".
    """

    def __init__(self, product_repo: ProductRepository, order_repo: OrderRepository):
        self.product_repo = product_repo
        self.order_repo = order_repo

    # ---- product list ----

    def list_products(
        self,
        session: Session,
        *,
        category: str | None = None,
        active_only: bool = True,
        sort_by: str = "created_at",
        sort_order: str = "desc",
        page: int = 1,
        page_size: int = DEFAULT_PAGE_SIZE,
    ) -> ProductPage:
        page = max(1, page)
        if sort_by not in PUBLIC_SORT_FIELDS:
            sort_by, sort_order = "created_at", "desc"
        start, end = page_range(page, page_size)

        try:
            items = self.product_repo.list_page(
                session,
                category=category,
                active_only=active_only,
                sort_by=sort_by,
                descending=sort_order != "asc",
                offset=start,
                limit=end - start + 1,
            )
            total = self.product_repo.count(
                session, category=category, active_only=active_only
            )
        except SQLAlchemyError as exc:
            logger.error("list_products failed: %s", exc)
            session.rollback()
            items, total = [], 0

        return ProductPage(
            items=[ProductRead.model_validate(p) for p in items],
            total_count=total,
            page=page,
            page_size=page_size,
            total_pages=math.ceil(total / page_size) if total else 0,
        )

    def list_categories(self, session: Session) -> list[CategoryInfo]:
        """
        Active product count per category, most populated first.
        """
        try:
            rows = self.product_repo.list_active_categories(session)
        except SQLAlchemyError as exc:
            logger.error("list_categories failed: %s", exc)
            session.rollback()
            return []

        counts = Counter(rows)
        return [
            CategoryInfo(category=c, label=category_label(c), count=n)
            for c, n in sorted(counts.items(), key=lambda kv: kv[1], reverse=True)
        ]

    # ---- home sections ----

    def popular_products(self, session: Session, limit: int = 8) -> list[Product]:
        """
        Best sellers by quantity over the latest POPULAR_SCAN_LIMIT order lines.

        Ties keep the order in which products were first seen in the scan.
        """
        try:
            sales = self.order_repo.recent_sales(session, POPULAR_SCAN_LIMIT)
            if not sales:
                logger.debug("popular_products: no order lines yet")
                return []

            totals: dict[uuid.UUID, int] = {}
            for product_id, quantity in sales:
                totals[product_id] = totals.get(product_id, 0) + quantity

            ranked = sorted(totals, key=lambda pid: totals[pid], reverse=True)[:limit]
            rank = {pid: i for i, pid in enumerate(ranked)}

            products = self.product_repo.list_active_by_ids(session, ranked)
        except SQLAlchemyError as exc:
            logger.error("popular_products failed: %s", exc)
            session.rollback()
            return []

        return sorted(products, key=lambda p: rank[p.id])

    def promotional_products(self, session: Session, limit: int = 8) -> list[Product]:
        try:
            return self.product_repo.list_promotional(session, limit)
        except SQLAlchemyError as exc:
            logger.error("promotional_products failed: %s", exc)
            session.rollback()
            return []

    def latest_products(self, session: Session, limit: int = 12) -> list[Product]:
        try:
            return self.product_repo.list_latest(session, limit)
        except SQLAlchemyError as exc:
            logger.error("latest_products failed: %s", exc)
            session.rollback()
            return []

    def collaboration_products(self, session: Session, limit: int = 6) -> list[Product]:
        try:
            return self.product_repo.list_collaboration(
                session,
                COLLABORATION_CATEGORY,
                COLLABORATION_KEYWORDS,
                limit,
            )
        except SQLAlchemyError as exc:
            logger.error("collaboration_products failed: %s", exc)
            session.rollback()
            return []

    # ---- product detail ----

    def get_product(self, session: Session, product_id: uuid.UUID) -> Product:
        """
        Public product detail. Hidden / inactive products are 404.
        """
        product = self.product_repo.get_by_id(session, product_id)
        if not product or not product.is_active or product.status == "hidden":
            raise NotFound("Product not found")
        return product

    def record_view(self, session: Session, product_id: uuid.UUID) -> None:
        """
        Best-effort view counter; a failure never breaks the detail page.
        """
        try:
            self.product_repo.increment_view_count(session, product_id)
        except SQLAlchemyError as exc:
            logger.warning("view count increment failed for %s: %s", product_id, exc)
            session.rollback()
