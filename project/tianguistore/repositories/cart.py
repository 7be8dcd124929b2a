# tianguistore/repositories/cart.py

from typing import Optional

from sqlalchemy import select, delete
from sqlalchemy.ext.asyncio import AsyncSession

from tianguistore.models import CartEntry, Product
from tianguistore.repositories.order import AVAILABLE, to_amount


class CartRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_entries(self, user_id: int) -> list[dict]:
        stmt = (
            select(
                CartEntry.producto_id,
                Product.nombre.label("nombre_producto"),
                Product.precio,
                CartEntry.cantidad,
            )
            .join(Product, CartEntry.producto_id == Product.producto_id)
            .where(CartEntry.usuario_id == user_id)
            .order_by(CartEntry.carrito_id)
        )
        result = await self.db.execute(stmt)
        entries = []
        for row in result.mappings().all():
            price = to_amount(row["precio"])
            entries.append({**row, "precio": price, "subtotal": to_amount(price * row["cantidad"])})
        return entries

    async def get_product(self, product_id: int) -> Optional[Product]:
        result = await self.db.execute(
            select(Product).where(Product.producto_id == product_id, *AVAILABLE)
        )
        return result.scalar_one_or_none()

    async def get_entry(self, user_id: int, product_id: int) -> Optional[CartEntry]:
        result = await self.db.execute(
            select(CartEntry).where(CartEntry.usuario_id == user_id, CartEntry.producto_id == product_id)
        )
        return result.scalar_one_or_none()

    async def add(self, user_id: int, product_id: int, quantity: int) -> CartEntry:
        """Inserts the entry or adds to the quantity already in the cart."""
        entry = await self.get_entry(user_id, product_id)
        if entry is None:
            entry = CartEntry(usuario_id=user_id, producto_id=product_id, cantidad=quantity)
            self.db.add(entry)
        else:
            entry.cantidad += quantity
        await self.db.flush()
        return entry

    async def remove(self, user_id: int, product_id: int) -> int:
        result = await self.db.execute(
            delete(CartEntry).where(CartEntry.usuario_id == user_id, CartEntry.producto_id == product_id)
        )
        return result.rowcount
