"""Shared BDD fixtures for checkout scenarios."""

import pytest
from protean import current_domain
from pytest_bdd import given, parsers

from ordering.ledger.gift_card import GiftCard
from ordering.ledger.product import Product


@pytest.fixture()
def products():
    """Products created in Given steps, keyed by name."""
    return {}


@pytest.fixture()
def outcome():
    """Container for the checkout result or the error it raised."""
    return {"result": None, "exc": None}


@given(parsers.cfparse('a product "{name}" priced {price:f} with {stock:d} in stock'))
def _(products, name, price, stock):
    product = Product.create(name=name, price=price, stock_quantity=stock)
    current_domain.repository_for(Product).add(product)
    products[name] = product


@given(parsers.cfparse('a gift card "{code}" worth {amount:f}'))
def _(code, amount):
    current_domain.repository_for(GiftCard).add(GiftCard.issue(amount, code=code))
