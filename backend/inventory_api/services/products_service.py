# Overview: Service-layer operations for products; encapsulates business logic and database work.

# backend/inventory_api/services/products_service.py
"""
Products Service with Owner Scoping

OWNERSHIP: Every read and write goes through visible_products_query().
- Admin callers see every non-deleted product
- Everyone else only sees rows where owner_id == caller.account_id
- A product outside the caller's scope is reported as not found, never
  as forbidden

STOCK HISTORY: update_product() appends a StockChangeEvent whenever the
stock value changes. The history row is committed BEFORE the product
row (best-effort sequential, not transactional): if the product write
fails, the history row stays behind describing the attempted change.
"""
from __future__ import annotations

import csv
import io
from dataclasses import dataclass, field
from typing import Any, Iterable

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models import Product, StockChangeEvent, status_for_stock
from ..validation import DuplicateNameError, clean_text, coerce_stock, parse_flag, require_text
from .token_service import CallerIdentity
from inventory_api.time_utils import utcnow

LOW_STOCK_THRESHOLD = 5
DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100

SORT_FIELDS = {
    "name": Product.name,
    "stock": Product.stock,
    "category": Product.category,
    "brand": Product.brand,
}

EXPORT_COLUMNS = ("name", "unit", "category", "brand", "stock", "status", "image", "description")

# Actor recorded on history rows when the token carries no email
FALLBACK_ACTOR = "admin"


@dataclass
class ListQuery:
    page: int = 1
    limit: int = DEFAULT_PAGE_SIZE
    search: str = ""
    category: str = ""
    sort_by: str = "name"
    order: str = "asc"
    low_stock: bool = False

    @classmethod
    def from_args(cls, args) -> "ListQuery":
        """
        Build from request query args. Bad numbers fall back to defaults.

        sortOrder and lowStockOnly are the names the web client sends;
        order and lowStock are accepted as aliases.
        """
        return cls(
            page=_positive_int(args.get("page"), 1),
            limit=min(_positive_int(args.get("limit"), DEFAULT_PAGE_SIZE), MAX_PAGE_SIZE),
            search=clean_text(args.get("search")),
            category=clean_text(args.get("category")),
            sort_by=clean_text(args.get("sortBy")) or "name",
            order=clean_text(args.get("sortOrder") or args.get("order")) or "asc",
            low_stock=parse_flag(args.get("lowStockOnly") or args.get("lowStock")),
        )


@dataclass
class ProductInput:
    """
    Writable product fields.

    stock is coerced leniently: non-numeric input becomes 0, negative
    input is rejected. image=None means "no new image supplied".
    description=None means "leave unchanged" on update.
    """
    name: str
    unit: str
    category: str
    brand: str
    stock: int = 0
    description: str | None = None
    image: str | None = None

    @classmethod
    def from_payload(cls, payload: dict, image: str | None = None) -> "ProductInput":
        """
        Validate a request payload.

        Raises:
            ValidationError: a required field is blank or stock is negative
        """
        description = payload.get("description")
        return cls(
            name=require_text(payload.get("name"), "name"),
            unit=require_text(payload.get("unit"), "unit"),
            category=require_text(payload.get("category"), "category"),
            brand=require_text(payload.get("brand"), "brand"),
            stock=coerce_stock(payload.get("stock")),
            description=None if description is None else str(description),
            image=image or clean_text(payload.get("image")) or None,
        )


@dataclass
class ImportResult:
    added: int = 0
    skipped: int = 0
    duplicates: list[dict] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {"added": self.added, "skipped": self.skipped, "duplicates": self.duplicates}


def _positive_int(value: Any, default: int) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError):
        return default
    return number if number > 0 else default


def _normalized_name(name: str) -> str:
    return name.strip().lower()


def _name_contains(term: str):
    """Case-insensitive substring match with LIKE wildcards taken literally."""
    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return Product.name.ilike(f"%{escaped}%", escape="\\")


def visible_products_query(caller: CallerIdentity):
    """Base query for every product operation. Admins are not owner-filtered."""
    query = db.session.query(Product).filter(Product.is_deleted.is_(False))
    if not caller.is_admin:
        query = query.filter(Product.owner_id == caller.account_id)
    return query


def _low_stock_predicate():
    return (Product.stock > 0) & (Product.stock <= LOW_STOCK_THRESHOLD)


def find_duplicate(query, name: str, exclude_id: int | None = None) -> Product | None:
    """First product in `query` whose trimmed, lower-cased name matches."""
    query = query.filter(func.lower(func.trim(Product.name)) == _normalized_name(name))
    if exclude_id is not None:
        query = query.filter(Product.id != exclude_id)
    return query.first()


def list_products(caller: CallerIdentity, params: ListQuery) -> dict:
    """
    Filtered, sorted, paginated product listing.

    Total is counted with the same predicate before the page is fetched;
    the two queries are not isolated from concurrent writes.
    """
    query = visible_products_query(caller)

    if params.search:
        query = query.filter(_name_contains(params.search))
    if params.category:
        query = query.filter(func.lower(func.trim(Product.category)) == params.category.strip().lower())
    if params.low_stock:
        query = query.filter(_low_stock_predicate())

    total = query.count()

    sort_column = SORT_FIELDS.get(params.sort_by, Product.name)
    if params.order.lower() == "desc":
        query = query.order_by(sort_column.desc(), Product.id.desc())
    else:
        query = query.order_by(sort_column.asc(), Product.id.asc())

    page = max(params.page, 1)
    limit = max(params.limit, 1)
    products = query.offset((page - 1) * limit).limit(limit).all()

    return {
        "data": [p.to_dict() for p in products],
        "page": page,
        "limit": limit,
        "total": total,
        "totalPages": (total + limit - 1) // limit,
    }


def search_products(caller: CallerIdentity, term: str) -> list[dict]:
    query = visible_products_query(caller)
    term = clean_text(term)
    if term:
        query = query.filter(_name_contains(term))
    return [p.to_dict() for p in query.order_by(Product.name.asc(), Product.id.asc()).all()]


def summary(caller: CallerIdentity) -> dict:
    """Dashboard counters under the caller's visibility scope."""
    query = visible_products_query(caller)

    total = query.count()
    out_of_stock = query.filter(Product.stock <= 0).count()
    low_stock = query.filter(_low_stock_predicate()).count()
    category_count = (
        query.with_entities(func.count(func.distinct(func.lower(func.trim(Product.category)))))
        .scalar()
    )

    return {
        "totalProducts": total,
        "outOfStockCount": out_of_stock,
        "lowStockCount": low_stock,
        "categoryCount": category_count or 0,
    }


def get_product(caller: CallerIdentity, product_id: int) -> Product | None:
    return visible_products_query(caller).filter(Product.id == product_id).first()


def create_product(caller: CallerIdentity, data: ProductInput) -> Product:
    """
    Create a product owned by the caller.

    Admins are checked for duplicates globally but still own what they
    create.

    Raises:
        DuplicateNameError: name already taken in the caller's scope
    """
    if find_duplicate(visible_products_query(caller), data.name) is not None:
        raise DuplicateNameError("Product with this name already exists")

    now = utcnow()
    product = Product(
        owner_id=caller.account_id,
        name=data.name,
        unit=data.unit,
        category=data.category,
        brand=data.brand,
        stock=data.stock,
        status=status_for_stock(data.stock),
        image=data.image,
        description=data.description,
        is_deleted=False,
        created_at=now,
        updated_at=now,
    )
    db.session.add(product)
    db.session.commit()
    return product


def update_product(caller: CallerIdentity, product_id: int, data: ProductInput) -> Product | None:
    """
    Update a product in the caller's scope.

    Returns None when the product is not visible to the caller.

    Raises:
        DuplicateNameError: another product in scope already has the name
    """
    product = get_product(caller, product_id)
    if product is None:
        return None

    if find_duplicate(visible_products_query(caller), data.name, exclude_id=product.id) is not None:
        raise DuplicateNameError("Another product with this name already exists")

    if product.stock != data.stock:
        # History first, committed on its own
        db.session.add(StockChangeEvent(
            product_id=product.id,
            old_stock=product.stock,
            new_stock=data.stock,
            changed_by=caller.email or FALLBACK_ACTOR,
            timestamp=utcnow(),
        ))
        db.session.commit()

    product.name = data.name
    product.unit = data.unit
    product.category = data.category
    product.brand = data.brand
    product.stock = data.stock
    product.status = status_for_stock(data.stock)
    if data.image:
        product.image = data.image
    if data.description is not None:
        product.description = data.description
    product.updated_at = utcnow()

    db.session.commit()
    return product


def delete_product(caller: CallerIdentity, product_id: int) -> bool:
    """
    Hard delete within the caller's scope. False if not visible.

    Stock history is kept; ids are never reused (AUTOINCREMENT), so the
    rows stay attributed to the deleted product.
    """
    product = get_product(caller, product_id)
    if product is None:
        return False

    db.session.delete(product)
    db.session.commit()
    return True


def get_history(product_id: int) -> list[dict]:
    """
    Stock history for a product id, newest first.

    Not owner-scoped: any authenticated caller can read any product's
    history.
    """
    events = (
        db.session.query(StockChangeEvent)
        .filter(StockChangeEvent.product_id == product_id)
        .order_by(StockChangeEvent.timestamp.desc(), StockChangeEvent.id.desc())
        .all()
    )
    return [e.to_dict() for e in events]


def import_rows(caller: CallerIdentity, rows: Iterable[dict]) -> ImportResult:
    """
    Insert CSV rows as products owned by the caller.

    Rows are independent: each runs in its own savepoint, so one bad row
    never affects another. Every row ends up either added or skipped.
    Duplicates are checked against the caller's own products regardless
    of role.
    """
    result = ImportResult()
    own_products = db.session.query(Product).filter(
        Product.is_deleted.is_(False),
        Product.owner_id == caller.account_id,
    )

    for row in rows:
        name = clean_text(row.get("name"))
        if not name:
            result.skipped += 1
            continue

        existing = find_duplicate(own_products, name)
        if existing is not None:
            result.skipped += 1
            result.duplicates.append({"name": name, "existingId": existing.id})
            continue

        try:
            stock = coerce_stock(row.get("stock"))
        except ValueError:
            # Negative stock would violate the CHECK constraint
            result.skipped += 1
            continue

        now = utcnow()
        try:
            with db.session.begin_nested():
                db.session.add(Product(
                    owner_id=caller.account_id,
                    name=name,
                    unit=clean_text(row.get("unit")),
                    category=clean_text(row.get("category")),
                    brand=clean_text(row.get("brand")),
                    stock=stock,
                    status=status_for_stock(stock),
                    image=clean_text(row.get("image")) or None,
                    description=clean_text(row.get("description")) or None,
                    is_deleted=False,
                    created_at=now,
                    updated_at=now,
                ))
        except SQLAlchemyError:
            result.skipped += 1
            continue
        result.added += 1

    db.session.commit()
    return result


def parse_csv(text: str) -> list[dict]:
    """CSV text with a header row -> list of dicts keyed by lower-cased header."""
    reader = csv.DictReader(io.StringIO(text))
    rows = []
    for raw in reader:
        rows.append({
            (key or "").strip().lower(): value
            for key, value in raw.items()
            if key is not None
        })
    return rows


def export_csv(caller: CallerIdentity) -> str:
    """Every visible product as CSV, all fields quoted."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(EXPORT_COLUMNS)

    products = visible_products_query(caller).order_by(Product.id.asc()).all()
    for p in products:
        writer.writerow([
            p.name,
            p.unit,
            p.category,
            p.brand,
            p.stock,
            p.status,
            p.image or "",
            p.description or "",
        ])

    return buffer.getvalue()
