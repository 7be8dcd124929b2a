# tianguistore/services/cart.py

from sqlalchemy.ext.asyncio import AsyncSession

from tianguistore.models import User
from tianguistore.repositories.cart import CartRepository
from tianguistore.repositories.order import to_amount
from tianguistore.utils.errors import NotFoundError
from tianguistore.utils.log import Log
from tianguistore.utils.permissions import Policy, policy as default_policy


class CartService:
    """
    Cart commands (add, remove) and the cart query.
    Entries belong to the authenticated user only.
    """

    def __init__(self, db: AsyncSession, log: Log, policy: Policy | None = None):
        self.db = db
        self.log = log
        self.policy = policy or default_policy
        self.repo = CartRepository(db)

    # query
    async def get_cart(self, requester: User) -> dict:
        self.policy.require(requester, "carrito", "leer")
        entries = await self.repo.list_entries(requester.usuario_id)
        total = to_amount(sum(e["subtotal"] for e in entries)) if entries else None
        return {"productos": entries, "total": total}

    # commands
    async def add_product(self, requester: User, product_id: int, quantity: int) -> dict:
        self.policy.require(requester, "carrito", "actualizar")
        product = await self.repo.get_product(product_id)
        if product is None:
            raise NotFoundError(f"Producto {product_id} no encontrado")

        entry = await self.repo.add(requester.usuario_id, product_id, quantity)
        await self.db.commit()

        await self.log.log_info(
            "cart", "Producto agregado al carrito",
            {"usuario": requester.usuario_id, "producto_id": product_id, "cantidad": entry.cantidad},
        )
        price = to_amount(product.precio)
        return {
            "producto_id": product_id,
            "nombre_producto": product.nombre,
            "precio": price,
            "cantidad": entry.cantidad,
            "subtotal": to_amount(price * entry.cantidad),
        }

    async def remove_product(self, requester: User, product_id: int) -> None:
        self.policy.require(requester, "carrito", "actualizar")
        removed = await self.repo.remove(requester.usuario_id, product_id)
        if not removed:
            await self.db.rollback()
            raise NotFoundError(f"El producto {product_id} no está en el carrito")
        await self.db.commit()
        await self.log.log_info("cart", "Producto retirado del carrito",
                                {"usuario": requester.usuario_id, "producto_id": product_id})
