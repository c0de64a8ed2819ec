from datetime import datetime, timezone
from threading import Lock
from typing import Any, Dict, List, Optional, Tuple
import logging

from supabase import Client, create_client

from .config import Settings
from .errors import CatalogError
from .models import Product

logger = logging.getLogger(__name__)


class InMemoryCatalog:
    def __init__(self, products: Optional[List[Product]] = None) -> None:
        self._lock = Lock()
        self.products: Dict[int, Product] = {}
        for product in products if products is not None else self._seed_products():
            self.products[product.id] = product

    @staticmethod
    def _seed_products() -> List[Product]:
        now = datetime.now(timezone.utc)
        return [
            Product(
                id=1,
                name="iPhone 17 Pro",
                description=[
                    "6.3-inch Super Retina XDR display",
                    "A19 Pro chip",
                    "Triple camera system",
                    "Titanium design",
                ],
                price=0.447,
                image="https://store.storeimages.cdn-apple.com/iphone-17-pro.webp",
                category="iPhone",
                stock=1,
                created_at=now,
            ),
            Product(
                id=2,
                name="iPhone 17",
                description=[
                    "6.1-inch Super Retina XDR display",
                    "A19 chip",
                    "Dual camera system",
                    "Lightweight aluminium frame",
                ],
                price=0.322,
                image="https://store.storeimages.cdn-apple.com/iphone-17.webp",
                category="iPhone",
                stock=1,
                created_at=now,
            ),
            Product(
                id=3,
                name="iPhone 17 Pro Max",
                description=[
                    "6.9-inch Super Retina XDR display",
                    "A19 Pro chip",
                    "Up to 5x telephoto zoom",
                    "Large-capacity battery",
                ],
                price=0.497,
                image="https://store.storeimages.cdn-apple.com/iphone-17-pro-max.webp",
                category="iPhone",
                stock=1,
                created_at=now,
            ),
        ]

    def _active(self) -> List[Product]:
        items = [p for p in self.products.values() if p.is_active]
        return sorted(items, key=lambda p: (p.created_at or datetime.min.replace(tzinfo=timezone.utc), p.id), reverse=True)

    def list_products(
        self, category: str = "all", search: str = "", page: int = 1, limit: int = 10
    ) -> Tuple[List[Product], int]:
        items = self._active()
        if category and category != "all":
            items = [p for p in items if p.category == category]
        term = (search or "").strip().lower()
        if term:
            items = [
                p for p in items
                if term in p.name.lower() or term in _description_text(p).lower()
            ]
        start = (page - 1) * limit
        return items[start:start + limit], len(items)

    def get_product(self, product_id: int) -> Optional[Product]:
        product = self.products.get(product_id)
        if product is None or not product.is_active:
            return None
        return product

    def categories(self) -> List[str]:
        seen: List[str] = []
        for product in self._active():
            if product.category not in seen:
                seen.append(product.category)
        return seen

    def set_stock(self, product_id: int, stock: int) -> Product:
        with self._lock:
            product = self.products[product_id].model_copy(update={"stock": stock})
            self.products[product_id] = product
            return product


class SupabaseCatalog:
    """Products table in Supabase/Postgres.

    Rows: id, name, description, price, image, category, stock, is_active,
    created_at, updated_at.
    """

    table = "products"

    def __init__(self, client: Client) -> None:
        self.client = client

    @classmethod
    def from_settings(cls, settings: Settings) -> "SupabaseCatalog":
        return cls(create_client(settings.supabase_url, settings.supabase_key))

    def _execute(self, query, action: str):
        try:
            return query.execute()
        except Exception as exc:
            logger.error(f"Supabase {action} failed: {exc}")
            raise CatalogError(f"Product catalog unavailable ({action})") from exc

    def list_products(
        self, category: str = "all", search: str = "", page: int = 1, limit: int = 10
    ) -> Tuple[List[Product], int]:
        query = (
            self.client.table(self.table)
            .select("*", count="exact")
            .eq("is_active", True)
            .order("created_at", desc=True)
        )
        if category and category != "all":
            query = query.eq("category", category)
        term = (search or "").strip()
        if term:
            query = query.or_(f"name.ilike.%{term}%,description.ilike.%{term}%")
        start = (page - 1) * limit
        response = self._execute(query.range(start, start + limit - 1), "list products")
        rows = response.data or []
        return [_product_from_row(row) for row in rows], response.count or len(rows)

    def get_product(self, product_id: int) -> Optional[Product]:
        query = (
            self.client.table(self.table)
            .select("*")
            .eq("id", product_id)
            .eq("is_active", True)
            .limit(1)
        )
        rows = self._execute(query, f"get product {product_id}").data or []
        return _product_from_row(rows[0]) if rows else None

    def categories(self) -> List[str]:
        query = self.client.table(self.table).select("category").eq("is_active", True)
        rows = self._execute(query, "list categories").data or []
        seen: List[str] = []
        for row in rows:
            if row.get("category") and row["category"] not in seen:
                seen.append(row["category"])
        return seen

    def set_stock(self, product_id: int, stock: int) -> Product:
        query = (
            self.client.table(self.table)
            .update({"stock": stock, "updated_at": datetime.now(timezone.utc).isoformat()})
            .eq("id", product_id)
        )
        rows = self._execute(query, f"update stock {product_id}").data or []
        if not rows:
            raise CatalogError(f"Product {product_id} was not updated")
        return _product_from_row(rows[0])


def _description_text(product: Product) -> str:
    if isinstance(product.description, list):
        return " ".join(product.description)
    return product.description or ""


def _product_from_row(row: Dict[str, Any]) -> Product:
    return Product(
        id=int(row["id"]),
        name=row.get("name", ""),
        description=row.get("description") or [],
        price=float(row.get("price") or 0),
        image=row.get("image"),
        category=row.get("category") or "",
        stock=int(row.get("stock") or 0),
        is_active=bool(row.get("is_active", True)),
        created_at=row.get("created_at"),
    )


def build_catalog(settings: Settings):
    if settings.use_supabase:
        logger.info("Product catalog backed by Supabase")
        return SupabaseCatalog.from_settings(settings)
    logger.info("Product catalog backed by the in-memory demo products")
    return InMemoryCatalog()
