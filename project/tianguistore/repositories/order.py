# tianguistore/repositories/order.py

from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Optional

from sqlalchemy import select, update, delete, func, literal
from sqlalchemy.ext.asyncio import AsyncSession

from tianguistore.config import settings
from tianguistore.models import (
    CartEntry, Coupon, Order, OrderProduct, OrderState, OrderStatus, Product, User,
)
from tianguistore.utils.errors import (
    InsufficientStockError,
    InvalidCouponError,
    NotFoundError,
    OrderNotCreatedError,
    ValidationError,
)

CENTS = Decimal("0.01")

# A product can be carted, ordered or linked only while it is listed
AVAILABLE = (Product.borrado_logico.is_(False), Product.publicado.is_(True))


def to_amount(value) -> Optional[Decimal]:
    """Normalises a driver value (Decimal, float, int) to a 2-decimal Decimal."""
    if value is None:
        return None
    return Decimal(str(value)).quantize(CENTS, rounding=ROUND_HALF_UP)


def _clean(text: Optional[str]) -> Optional[str]:
    if text is None:
        return None
    text = text.strip()
    return text or None


class OrderRepository:
    """
    Data access for orders, their line items and the cart rows they come from.

    Methods only flush; committing or rolling back is up to the caller, so a
    sequence of calls can share one transaction.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    # ────────────── Listings ──────────────
    async def list_orders(self) -> list[dict]:
        nombre_usuario = func.trim(User.nombre + literal(" ") + func.coalesce(User.apellido_paterno, ""))
        stmt = (
            select(
                *Order.__table__.c,
                User.correo_electronico,
                nombre_usuario.label("nombre_usuario"),
                OrderState.estado_nombre,
            )
            .join(User, Order.usuario_id == User.usuario_id)
            .join(OrderState, Order.estado_id == OrderState.estado_id)
            .where(Order.borrado_logico.is_(False))
            .order_by(Order.fecha_pedido.desc(), Order.pedido_id.desc())
        )
        result = await self.db.execute(stmt)
        return [dict(row) for row in result.mappings().all()]

    async def list_orders_for_user(self, user_id: int, limit: int | None = None) -> list[dict]:
        stmt = (
            select(*Order.__table__.c, OrderState.estado_nombre)
            .join(OrderState, Order.estado_id == OrderState.estado_id)
            .where(Order.usuario_id == user_id, Order.borrado_logico.is_(False))
            .order_by(Order.fecha_pedido.desc(), Order.pedido_id.desc())
            .limit(limit or settings.ORDERS_PER_USER_LIMIT)
        )
        result = await self.db.execute(stmt)
        return [dict(row) for row in result.mappings().all()]

    async def get_order(self, order_id: int, include_deleted: bool = False, lock: bool = False) -> Optional[Order]:
        stmt = select(Order).where(Order.pedido_id == order_id)
        if not include_deleted:
            stmt = stmt.where(Order.borrado_logico.is_(False))
        if lock:
            stmt = stmt.with_for_update().execution_options(populate_existing=True)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    # ────────────── Creation ──────────────
    async def create_order_atomic(
        self,
        user_id: int,
        total,
        payment_method: str,
        coupon: Optional[str] = None,
        shipping_address: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> int:
        """
        Inserts the order row in PENDING state and returns its id.

        The coupon, when given, must exist and be active; its percentage is
        taken off the total before the row is written.
        """
        amount = to_amount(total)
        if amount is None or amount < 0:
            raise ValidationError({"total": "El total debe ser un número no negativo"})

        payment_method = _clean(payment_method)
        if payment_method is None:
            raise ValidationError({"metodo_pago": "El método de pago es obligatorio"})

        coupon = _clean(coupon)
        if coupon is not None:
            found = await self._get_coupon(coupon)
            if found is None or not found.activo:
                raise InvalidCouponError(f"Cupón inválido o inactivo: {coupon}")
            amount = self._discounted(amount, found)

        order = Order(
            usuario_id=user_id,
            estado_id=int(OrderStatus.PENDING),
            total=amount,
            metodo_pago=payment_method,
            cupon=coupon,
            direccion_envio=_clean(shipping_address),
            notas=_clean(notes),
            borrado_logico=False,
        )
        self.db.add(order)
        await self.db.flush()

        if not order.pedido_id:
            raise OrderNotCreatedError()
        return order.pedido_id

    # ────────────── Mutations ──────────────
    async def update_status(
        self, order_id: int, status: OrderStatus, expected: Optional[OrderStatus] = None
    ) -> int:
        """
        Sets the order status and returns the number of rows changed.
        With `expected`, the row is only changed while it still holds that
        status, so a concurrent transition makes this return 0.
        """
        stmt = update(Order).where(Order.pedido_id == order_id)
        if expected is not None:
            stmt = stmt.where(Order.estado_id == int(expected))
        result = await self.db.execute(stmt.values(estado_id=int(status)))
        return result.rowcount

    async def refresh_total(self, order_id: int) -> Decimal:
        """Recomputes the order total from its line items, re-applying its coupon."""
        result = await self.db.execute(
            select(func.sum(OrderProduct.cantidad * Product.precio))
            .join(Product, Product.producto_id == OrderProduct.fk_productos)
            .where(OrderProduct.fk_pedidos == order_id)
        )
        amount = to_amount(result.scalar()) or Decimal("0.00")

        code = (await self.db.execute(select(Order.cupon).where(Order.pedido_id == order_id))).scalar()
        if code:
            found = await self._get_coupon(code)
            if found is not None:
                amount = self._discounted(amount, found)

        await self.db.execute(update(Order).where(Order.pedido_id == order_id).values(total=amount))
        return amount

    async def soft_delete(self, order_id: int) -> None:
        await self.db.execute(
            update(Order).where(Order.pedido_id == order_id).values(borrado_logico=True)
        )

    # ────────────── Line items ──────────────
    async def link_product(self, order_id: int, product_id: int, quantity: int = 1) -> dict:
        """Adds one line item and takes its quantity out of the product stock."""
        result = await self.db.execute(
            select(Product)
            .where(Product.producto_id == product_id, *AVAILABLE)
            .with_for_update()
        )
        product = result.scalar_one_or_none()
        if product is None:
            raise NotFoundError(f"Producto {product_id} no encontrado")
        if product.stock < quantity:
            raise InsufficientStockError(
                f"Stock insuficiente para '{product.nombre}': {product.stock} disponibles, {quantity} solicitados"
            )

        product.stock -= quantity
        link = OrderProduct(fk_pedidos=order_id, fk_productos=product_id, cantidad=quantity)
        self.db.add(link)
        await self.db.flush()

        return {
            "pedido_producto_id": link.pedido_producto_id,
            "fk_pedidos": order_id,
            "fk_productos": product_id,
            "cantidad": quantity,
        }

    async def restock(self, order_id: int) -> None:
        """Puts the quantities of an order's line items back into product stock."""
        result = await self.db.execute(
            select(OrderProduct.fk_productos, OrderProduct.cantidad).where(OrderProduct.fk_pedidos == order_id)
        )
        for product_id, quantity in result.all():
            await self.db.execute(
                update(Product)
                .where(Product.producto_id == product_id)
                .values(stock=Product.stock + quantity)
            )

    async def get_line_items(self, order_id: int) -> list[dict]:
        # Rows of soft-deleted orders stay in the table but are not returned
        stmt = (
            select(
                Order.pedido_id,
                Product.producto_id,
                Product.nombre.label("nombre_producto"),
                Product.precio,
                OrderProduct.cantidad,
            )
            .join(OrderProduct, Order.pedido_id == OrderProduct.fk_pedidos)
            .join(Product, Product.producto_id == OrderProduct.fk_productos)
            .where(Order.pedido_id == order_id, Order.borrado_logico.is_(False))
            .order_by(OrderProduct.pedido_producto_id)
        )
        result = await self.db.execute(stmt)
        return [
            {**row, "precio": to_amount(row["precio"])}
            for row in result.mappings().all()
        ]

    # ────────────── Cart ──────────────
    async def compute_cart_total(self, user_id: int) -> Optional[Decimal]:
        """
        Sum of quantity x price over the user's cart, None when the cart is empty.
        Products that are no longer listed do not count.
        """
        stmt = (
            select(func.sum(CartEntry.cantidad * Product.precio))
            .join(Product, CartEntry.producto_id == Product.producto_id)
            .where(CartEntry.usuario_id == user_id, *AVAILABLE)
        )
        result = await self.db.execute(stmt)
        return to_amount(result.scalar())

    async def get_cart_entries(self, user_id: int, lock: bool = False) -> list[dict]:
        stmt = (
            select(CartEntry.producto_id, CartEntry.cantidad)
            .where(CartEntry.usuario_id == user_id)
            .order_by(CartEntry.carrito_id)
        )
        if lock:
            stmt = stmt.with_for_update()
        result = await self.db.execute(stmt)
        return [dict(row) for row in result.mappings().all()]

    async def compute_items_total(self, items: Iterable[tuple[int, int]]) -> Optional[Decimal]:
        """
        Total for (producto_id, cantidad) pairs at current prices.
        None for an empty list; NotFoundError when a product does not exist.
        """
        quantities: dict[int, int] = {}
        for product_id, quantity in items:
            quantities[product_id] = quantities.get(product_id, 0) + quantity
        if not quantities:
            return None

        result = await self.db.execute(
            select(Product.producto_id, Product.precio).where(
                Product.producto_id.in_(quantities), *AVAILABLE
            )
        )
        prices = {row.producto_id: to_amount(row.precio) for row in result.all()}

        missing = sorted(set(quantities) - set(prices))
        if missing:
            raise NotFoundError(f"Productos no encontrados: {', '.join(map(str, missing))}")

        return to_amount(sum(prices[pid] * qty for pid, qty in quantities.items()))

    async def clear_cart(self, user_id: int) -> None:
        await self.db.execute(delete(CartEntry).where(CartEntry.usuario_id == user_id))

    # ────────────── Coupons ──────────────
    async def _get_coupon(self, code: str) -> Optional[Coupon]:
        result = await self.db.execute(select(Coupon).where(Coupon.codigo == code))
        return result.scalar_one_or_none()

    @staticmethod
    def _discounted(amount: Decimal, coupon: Coupon) -> Decimal:
        discount = Decimal(str(coupon.descuento_porcentaje))
        return to_amount(amount * (Decimal(100) - discount) / Decimal(100))
