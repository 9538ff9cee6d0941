from typing import Dict, List, Optional, Tuple
from datetime import date, datetime, timezone
from decimal import Decimal
from uuid import uuid4
import time
from sqlalchemy import or_
from ..errors import NotFoundError, ValidationError
from ..models.category import Category
from ..models.product import Product
from ..utils.dto import to_category_dto, to_product_dto
from ..utils.pagination import normalize_paging
from ..utils.slug import slugify
from ..utils.validators import FormValidator
from .logging import log_event


CONDITIONS = ("new", "used", "refurbished")
MAX_QUANTITY_CHOICE = 10


def quantity_cap(stock: int, max_choice: int = MAX_QUANTITY_CHOICE) -> int:
    """Largest quantity a shopper may pick for one line: min(10, stock)."""
    return max(0, min(max_choice, int(stock or 0)))


def validate_product(payload: Dict) -> Dict:
    """Field rules shared by single edits and bulk import."""
    v = FormValidator(payload)
    cleaned = {
        "name": v.require_text("name", 3, "Name must be at least 3 characters"),
        "description": v.require_text("description", 10, "Description must be at least 10 characters"),
        "price": v.require_decimal("price", minimum=Decimal("0.01"), message="Price must be greater than 0"),
        "make": v.require_text("make", 1, "Make is required"),
        "model": v.require_text("model", 1, "Model is required"),
        "year": v.require_int("year", "Year must be between 1900 and next year", minimum=1900, maximum=date.today().year + 1),
        "condition": v.require_choice("condition", CONDITIONS, "Condition must be new, used or refurbished"),
        "stock": v.require_int("stock", "Stock cannot be negative", minimum=0),
        "category_id": v.require_text("category_id", 1, "Category is required"),
    }
    images = payload.get("images")
    cleaned["images"] = [str(i) for i in images] if isinstance(images, list) else []
    v.raise_if_errors()
    cleaned["slug"] = slugify(cleaned["name"])
    return cleaned


class CatalogService:
    """Catalog querying and product/category maintenance.

    Responsibilities:
    - List/search products with pagination and fitment filters
    - Get single product detail by id or slug
    - Product and category CRUD for the back office
    - Invalidate the listing cache on every write
    """

    # naive in-process cache: key -> (ts, result)
    _cache_ttl_seconds: int = 60

    def __init__(self, session_factory):
        self._session_factory = session_factory
        self._cache: Dict[Tuple, Tuple[float, Dict]] = {}

    def list_products(
        self,
        *,
        query: Optional[str] = None,
        make: Optional[str] = None,
        model: Optional[str] = None,
        year: Optional[int] = None,
        category: Optional[str] = None,
        page: int = 1,
        page_size: int = 20,
    ) -> Dict:
        """Return dict: { items: [ProductDTO], page, page_size, total }"""
        p, ps = normalize_paging(page, page_size)
        cache_key = (query or "", make or "", model or "", year or 0, category or "", p, ps)
        now = time.time()
        cached = self._cache.get(cache_key)
        if cached and now - cached[0] <= self._cache_ttl_seconds:
            return cached[1]

        with self._session_factory() as session:
            q = session.query(Product)
            if query:
                like = f"%{query}%"
                q = q.filter(or_(Product.name.ilike(like), Product.description.ilike(like)))
            if make:
                q = q.filter(Product.make == make)
            if model:
                q = q.filter(Product.model == model)
            if year:
                q = q.filter(Product.year == int(year))
            if category:
                q = (
                    q.join(Category, Category.id == Product.category_id, isouter=True)
                    .filter(or_(Category.slug == category, Product.category_id == category))
                )
            total = q.count()
            rows = (
                q.order_by(Product.created_at.desc(), Product.name.asc())
                .offset((p - 1) * ps)
                .limit(ps)
                .all()
            )
            result = {"items": [to_product_dto(r) for r in rows], "page": p, "page_size": ps, "total": total}
            self._cache[cache_key] = (now, result)
            return result

    def featured_products(self, limit: int = 8) -> List[Dict]:
        with self._session_factory() as session:
            rows = session.query(Product).order_by(Product.created_at.desc()).limit(limit).all()
            return [to_product_dto(r) for r in rows]

    def get_product(self, product_id_or_slug: str) -> Dict:
        with self._session_factory() as session:
            r = (
                session.query(Product)
                .filter(or_(Product.id == product_id_or_slug, Product.slug == product_id_or_slug))
                .first()
            )
            if not r:
                raise NotFoundError("product", product_id_or_slug)
            dto = to_product_dto(r)
            dto["quantity_choices"] = list(range(1, quantity_cap(r.stock) + 1))
            return dto

    def list_categories(self) -> List[Dict]:
        with self._session_factory() as session:
            return [to_category_dto(c) for c in session.query(Category).order_by(Category.name.asc()).all()]

    def low_stock(self, threshold: int = 5) -> List[Dict]:
        with self._session_factory() as session:
            rows = session.query(Product).filter(Product.stock <= threshold).order_by(Product.stock.asc()).all()
            return [to_product_dto(r) for r in rows]

    # --- admin writes -------------------------------------------------

    def _ensure_category(self, session, category_id: str) -> None:
        if not session.query(Category.id).filter(Category.id == category_id).first():
            raise ValidationError({"category_id": "Invalid category ID"})

    def _ensure_unique_slug(self, session, slug: str, exclude_id: Optional[str] = None) -> None:
        q = session.query(Product.id).filter(Product.slug == slug)
        if exclude_id:
            q = q.filter(Product.id != exclude_id)
        if q.first():
            raise ValidationError({"name": "A product with this name already exists"})

    def create_product(self, payload: Dict) -> Dict:
        data = validate_product(payload)
        with self._session_factory() as session:
            self._ensure_category(session, data["category_id"])
            self._ensure_unique_slug(session, data["slug"])
            product = Product(id=str(uuid4()), **data)
            session.add(product)
            session.flush()
            self.invalidate_cache()
            return to_product_dto(product)

    def create_products(self, rows: List[Dict]) -> int:
        """Insert pre-validated rows in one transaction."""
        with self._session_factory() as session:
            for data in rows:
                session.add(Product(id=str(uuid4()), **data))
            session.flush()
        self.invalidate_cache()
        return len(rows)

    def update_product(self, product_id: str, payload: Dict) -> Dict:
        data = validate_product(payload)
        with self._session_factory() as session:
            product = session.query(Product).filter(Product.id == product_id).first()
            if not product:
                raise NotFoundError("product", product_id)
            self._ensure_category(session, data["category_id"])
            self._ensure_unique_slug(session, data["slug"], exclude_id=product_id)
            for key, value in data.items():
                setattr(product, key, value)
            product.updated_at = datetime.now(timezone.utc).replace(tzinfo=None)
            session.flush()
            self.invalidate_cache()
            return to_product_dto(product)

    def delete_product(self, product_id: str) -> None:
        with self._session_factory() as session:
            product = session.query(Product).filter(Product.id == product_id).first()
            if not product:
                raise NotFoundError("product", product_id)
            session.delete(product)
        self.invalidate_cache()
        log_event("info", "product.deleted", product_id=product_id)

    def export_rows(self) -> List[Dict]:
        with self._session_factory() as session:
            rows = session.query(Product).order_by(Product.created_at.desc()).all()
            return [to_product_dto(r) for r in rows]

    def existing_slugs(self) -> set:
        with self._session_factory() as session:
            return {s for (s,) in session.query(Product.slug).all()}

    def category_ids(self) -> set:
        with self._session_factory() as session:
            return {c for (c,) in session.query(Category.id).all()}

    def save_category(self, payload: Dict, category_id: Optional[str] = None) -> Dict:
        v = FormValidator(payload)
        name = v.require_text("name", 2, "Name must be at least 2 characters")
        description = v.optional_text("description")
        v.raise_if_errors()
        slug = slugify(name)
        with self._session_factory() as session:
            clash = session.query(Category.id).filter(Category.slug == slug)
            if category_id:
                clash = clash.filter(Category.id != category_id)
            if clash.first():
                raise ValidationError({"name": "A category with this name already exists"})
            if category_id:
                category = session.query(Category).filter(Category.id == category_id).first()
                if not category:
                    raise NotFoundError("category", category_id)
                category.updated_at = datetime.now(timezone.utc).replace(tzinfo=None)
            else:
                category = Category(id=str(uuid4()))
                session.add(category)
            category.name = name
            category.slug = slug
            category.description = description
            session.flush()
            self.invalidate_cache()
            return to_category_dto(category)

    def delete_category(self, category_id: str) -> None:
        with self._session_factory() as session:
            category = session.query(Category).filter(Category.id == category_id).first()
            if not category:
                raise NotFoundError("category", category_id)
            # products keep existing without a category
            session.query(Product).filter(Product.category_id == category_id).update(
                {Product.category_id: None}, synchronize_session=False
            )
            session.delete(category)
        self.invalidate_cache()

    def invalidate_cache(self) -> None:
        self._cache.clear()
