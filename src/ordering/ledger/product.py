"""Product aggregate — price and stock as seen by checkout.

Catalog CRUD lives elsewhere; the ordering context only reads a product's
price and commits stock through ``ProductRepository``'s atomic primitives.
``in_stock`` is derived from ``stock_quantity`` on every stock change and is
never set independently.
"""

import json
from datetime import UTC, datetime

from protean import atomic_change, invariant
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.fields import Boolean, DateTime, Float, Integer, String, Text

from ordering.domain import ordering
from ordering.errors import InsufficientStock, ProductNotFound
from ordering.ledger.events import StockDecremented, StockRestocked
from ordering.ledger.locks import row_locks


@ordering.aggregate
class Product:
    name = String(required=True, max_length=255)
    description = Text()
    images = Text()  # JSON array of image URLs
    price = Float(required=True, min_value=0.0)
    stock_quantity = Integer(default=0, min_value=0)
    in_stock = Boolean(default=False)
    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def in_stock_reflects_stock_quantity(self):
        if self.in_stock != (self.stock_quantity > 0):
            raise ValidationError({"in_stock": ["in_stock must reflect stock_quantity"]})

    @classmethod
    def create(cls, name, price, stock_quantity=0, description=None, images=None, **kwargs):
        now = datetime.now(UTC)
        return cls(
            name=name,
            description=description,
            images=json.dumps(images or []),
            price=round(float(price), 2),
            stock_quantity=stock_quantity,
            in_stock=stock_quantity > 0,
            created_at=now,
            updated_at=now,
            **kwargs,
        )

    def image_urls(self):
        return json.loads(self.images) if self.images else []

    def can_fulfil(self, quantity):
        return self.in_stock and self.stock_quantity >= quantity

    def decrement_stock(self, quantity):
        if quantity < 1:
            raise ValidationError({"quantity": ["Quantity must be at least 1"]})
        if not self.can_fulfil(quantity):
            raise ValidationError(
                {"stock_quantity": [f"Only {self.stock_quantity} left, {quantity} requested"]}
            )

        self._set_stock(self.stock_quantity - quantity)
        self.raise_(
            StockDecremented(
                product_id=str(self.id),
                quantity=quantity,
                stock_quantity=self.stock_quantity,
                in_stock=self.in_stock,
                occurred_at=self.updated_at,
            )
        )

    def restock(self, quantity):
        if quantity < 1:
            raise ValidationError({"quantity": ["Quantity must be at least 1"]})

        self._set_stock(self.stock_quantity + quantity)
        self.raise_(
            StockRestocked(
                product_id=str(self.id),
                quantity=quantity,
                stock_quantity=self.stock_quantity,
                occurred_at=self.updated_at,
            )
        )

    def _set_stock(self, quantity):
        with atomic_change(self):
            self.stock_quantity = quantity
            self.in_stock = quantity > 0
            self.updated_at = datetime.now(UTC)


@ordering.repository(part_of=Product)
class ProductRepository:
    def get_or_none(self, product_id):
        """Return the product or ``None``; checkout reports missing products itself."""
        try:
            return self.get(product_id)
        except ObjectNotFoundError:
            return None

    def decrement_stock(self, product_id, quantity):
        """Check availability and take ``quantity`` units as one step."""
        with row_locks.hold("product", product_id):
            product = self.get_or_none(product_id)
            if product is None:
                raise ProductNotFound(product_id)
            if not product.can_fulfil(quantity):
                raise InsufficientStock(
                    product_id,
                    product.name,
                    available=product.stock_quantity,
                    requested=quantity,
                )
            product.decrement_stock(quantity)
            self.add(product)
            return product

    def restock(self, product_id, quantity):
        with row_locks.hold("product", product_id):
            product = self.get_or_none(product_id)
            if product is None:
                raise ProductNotFound(product_id)
            product.restock(quantity)
            self.add(product)
            return product
