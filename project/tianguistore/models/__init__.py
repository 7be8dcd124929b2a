# tianguistore/models/__init__.py
# Imported by init_db so every table is registered on Base.metadata

from tianguistore.models.user import User
from tianguistore.models.product import Product
from tianguistore.models.cart import CartEntry
from tianguistore.models.coupon import Coupon
from tianguistore.models.order import Order, OrderProduct, OrderState
from tianguistore.utils.status import OrderStatus

__all__ = [
    "User", "Product", "CartEntry", "Coupon",
    "Order", "OrderProduct", "OrderState", "OrderStatus",
]
