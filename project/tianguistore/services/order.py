# tianguistore/services/order.py

from contextlib import asynccontextmanager
from typing import Optional, Union

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from tianguistore.models import Order, OrderStatus, User
from tianguistore.repositories.order import OrderRepository
from tianguistore.schemas.order import OrderCheckout, OrderCreate
from tianguistore.utils.errors import (
    AuthorizationError,
    EmptyCartError,
    NotFoundError,
    OrderStateConflictError,
    PersistenceError,
    ValidationError,
)
from tianguistore.utils.log import Log
from tianguistore.utils.permissions import Policy, policy as default_policy


def as_schema(schema, data):
    """Validates a dict (or passes a model through), reporting every offending field."""
    if isinstance(data, schema):
        return data
    try:
        return schema.model_validate(data)
    except PydanticValidationError as e:
        fields = {}
        for err in e.errors():
            name = ".".join(str(part) for part in err["loc"]) or "body"
            fields.setdefault(name, err["msg"])
        raise ValidationError(fields) from e


class OrderService:
    """
    Order use cases: listings, creation from the cart or from submitted
    items, line items, cancellation and status changes.

    Every write runs on the request session and ends in one commit. Any error
    on the way rolls the whole sequence back, so an order is either stored with
    all its line items (and the cart emptied) or not stored at all.
    """

    def __init__(self, db: AsyncSession, log: Log, policy: Policy | None = None):
        self.db = db
        self.log = log
        self.policy = policy or default_policy
        self.repo = OrderRepository(db)

    # ────────────── Queries ──────────────
    async def list_all(self, requester: User) -> list[dict]:
        self.policy.require(requester, "pedidos", "leer")
        orders = await self.repo.list_orders()
        await self.log.log_info("order", f"{len(orders)} pedidos cargados", {"usuario": requester.usuario_id})
        return orders

    async def list_mine(self, requester: User, claimed_user_id: Optional[int] = None) -> list[dict]:
        if requester is None or not requester.activo:
            raise AuthorizationError("Sesión no válida")
        if claimed_user_id is not None and claimed_user_id != requester.usuario_id:
            await self.log.log_warning(
                "order", "Intento de leer pedidos ajenos",
                {"usuario": requester.usuario_id, "solicitado": claimed_user_id},
            )
            raise AuthorizationError("Solo puedes consultar tus propios pedidos")
        return await self.repo.list_orders_for_user(requester.usuario_id)

    async def get_line_items(self, requester: User, order_id: int) -> list[dict]:
        order = await self._get_order(order_id)
        if not self.policy.owns_or_allows(requester, order.usuario_id, "pedidos", "leer"):
            raise AuthorizationError("No tienes acceso a este pedido")
        return await self.repo.get_line_items(order_id)

    # ────────────── Creation ──────────────
    async def create_from_cart(self, requester: User, checkout: Union[OrderCheckout, dict]) -> int:
        """
        Cart -> order in one transaction:
        lock and read the cart, compute its total, create the order,
        link one line item per cart entry, clear the cart, commit.
        """
        self.policy.require(requester, "pedidos", "crear")
        checkout = as_schema(OrderCheckout, checkout)
        user_id = requester.usuario_id

        async with self._transaction("Pedido desde carrito no creado", {"usuario": user_id}):
            entries = await self.repo.get_cart_entries(user_id, lock=True)
            total = await self.repo.compute_cart_total(user_id)
            if total is None or not entries:
                raise EmptyCartError()

            order_id = await self.repo.create_order_atomic(
                user_id,
                total,
                checkout.metodo_pago,
                checkout.cupon,
                checkout.direccion_envio,
                checkout.notas,
            )
            for entry in entries:
                await self.repo.link_product(order_id, entry["producto_id"], entry["cantidad"])

            await self.repo.clear_cart(user_id)

        await self.log.log_info(
            "order", "Pedido creado desde carrito",
            {"pedido_id": order_id, "usuario": user_id, "total": total, "lineas": len(entries)},
        )
        return order_id

    async def create_from_items(self, requester: User, order: Union[OrderCreate, dict]) -> int:
        """Same flow as create_from_cart for directly submitted products; the cart is left alone."""
        self.policy.require(requester, "pedidos", "crear")
        order = as_schema(OrderCreate, order)
        user_id = requester.usuario_id
        items = [(item.producto_id, item.cantidad) for item in order.productos]

        async with self._transaction("Pedido directo no creado", {"usuario": user_id}):
            total = await self.repo.compute_items_total(items)
            if total is None:
                raise ValidationError({"productos": "Se requiere al menos un producto"})

            order_id = await self.repo.create_order_atomic(
                user_id,
                total,
                order.metodo_pago,
                order.cupon,
                order.direccion_envio,
                order.notas,
            )
            for product_id, quantity in items:
                await self.repo.link_product(order_id, product_id, quantity)

        await self.log.log_info(
            "order", "Pedido creado", {"pedido_id": order_id, "usuario": user_id, "total": total}
        )
        return order_id

    async def link_product(self, requester: User, order_id: int, product_id: int) -> dict:
        """Adds one unit of a product to a pending order and re-prices the order."""
        order = await self._get_order(order_id)
        if not self.policy.owns_or_allows(requester, order.usuario_id, "pedidos", "actualizar"):
            raise AuthorizationError("No tienes acceso a este pedido")

        data = {"pedido_id": order_id, "producto_id": product_id}
        async with self._transaction("Producto no vinculado", data):
            locked = await self._get_order(order_id, lock=True)
            if locked.estado_id != OrderStatus.PENDING:
                raise OrderStateConflictError("Solo se pueden agregar productos a pedidos pendientes")
            link = await self.repo.link_product(order_id, product_id)
            total = await self.repo.refresh_total(order_id)

        await self.log.log_info("order", "Producto vinculado", {**link, "total": total})
        return link

    # ────────────── Status ──────────────
    async def cancel(self, requester: User, order_id: int) -> Order:
        self.policy.require(requester, "pedidos", "cancelar")
        order = await self._get_order(order_id)
        if not self.policy.owns_or_allows(requester, order.usuario_id, "pedidos", "actualizar"):
            raise AuthorizationError("Solo puedes cancelar tus propios pedidos")

        current = self._status_of(order)
        if not current.is_cancellable:
            await self.log.log_warning(
                "order", "Cancelación rechazada", {"pedido_id": order_id, "estado": current.label}
            )
            raise OrderStateConflictError(f"No se puede cancelar un pedido en estado '{current.label}'")

        return await self._transition(order, current, OrderStatus.CANCELLED, requester)

    async def change_status(self, requester: User, order_id: int, target: OrderStatus) -> Order:
        self.policy.require(requester, "pedidos", "actualizar")
        order = await self._get_order(order_id)
        target = OrderStatus(target)

        current = self._status_of(order)
        if not current.can_become(target):
            raise OrderStateConflictError(
                f"Transición no permitida: '{current.label}' -> '{target.label}'"
            )

        return await self._transition(order, current, target, requester)

    async def soft_delete(self, requester: User, order_id: int) -> None:
        self.policy.require(requester, "pedidos", "eliminar")
        await self._get_order(order_id, include_deleted=True)

        async with self._transaction("Pedido no eliminado", {"pedido_id": order_id}):
            await self.repo.soft_delete(order_id)

        await self.log.log_info("order", "Pedido eliminado (lógico)", {"pedido_id": order_id})

    # ────────────── Helpers ──────────────
    @asynccontextmanager
    async def _transaction(self, message: str, data: dict):
        """Commits the block's work, or rolls all of it back and logs the failure."""
        try:
            yield
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            await self.log.log_error("order", f"{message}: {e}", data)
            raise PersistenceError() from e
        except Exception as e:
            await self.db.rollback()
            await self.log.log_error("order", f"{message}: {e}", data)
            raise

    async def _get_order(self, order_id: int, include_deleted: bool = False, lock: bool = False) -> Order:
        order = await self.repo.get_order(order_id, include_deleted=include_deleted, lock=lock)
        if order is None:
            raise NotFoundError(f"Pedido {order_id} no encontrado")
        return order

    @staticmethod
    def _status_of(order: Order) -> OrderStatus:
        try:
            return OrderStatus(order.estado_id)
        except ValueError:
            raise OrderStateConflictError(f"Estado desconocido: {order.estado_id}") from None

    async def _transition(
        self, order: Order, current: OrderStatus, target: OrderStatus, requester: User
    ) -> Order:
        # Only matches while the order is still in `current`
        order_id = order.pedido_id
        async with self._transaction("Estado no actualizado", {"pedido_id": order_id}):
            changed = await self.repo.update_status(order_id, target, expected=current)
            if changed != 1:
                raise OrderStateConflictError(
                    f"El pedido {order_id} ya no está en estado '{current.label}'"
                )
            if target == OrderStatus.CANCELLED:
                await self.repo.restock(order_id)
        await self.db.refresh(order)

        await self.log.log_info(
            "order", "Estado actualizado",
            {"pedido_id": order_id, "estado": target.label, "usuario": requester.usuario_id},
        )
        return order
