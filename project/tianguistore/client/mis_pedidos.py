# tianguistore/client/mis_pedidos.py

"""
"My orders" view: fetches the signed-in user's orders, then the products of
each order one request at a time, and renders them as table rows. Orders that
are still pending or processing get a cancel button.

Failures never propagate: they turn into an error row or an error message.
"""

import inspect
from datetime import datetime
from html import escape
from typing import TYPE_CHECKING, Awaitable, Callable, Optional, Union

import httpx

from tianguistore.client.session import SessionStore
from tianguistore.utils.status import OrderStatus

if TYPE_CHECKING:
    from tianguistore.utils.log import Log

Confirm = Callable[[str], Union[bool, Awaitable[bool]]]

EMPTY_ROW = '<tr><td colspan="6" class="text-center text-muted">No tienes pedidos aún.</td></tr>'
ERROR_ROW = '<tr><td colspan="6" class="text-center text-danger">Error al cargar tus pedidos. Intenta más tarde.</td></tr>'
SESSION_ROW = '<tr><td colspan="6" class="text-center text-danger">Tu sesión expiró. Inicia sesión de nuevo.</td></tr>'
PRODUCTS_ERROR = '<li class="text-danger">Error al cargar productos</li>'


class ViewError(Exception):
    pass


def cancellable(estado_id) -> bool:
    try:
        return OrderStatus(estado_id).is_cancellable
    except ValueError:
        return False


def format_date(value: Optional[str]) -> str:
    if not value:
        return ""
    try:
        return datetime.fromisoformat(value).strftime("%d/%m/%Y")
    except ValueError:
        return value


class OrdersView:
    def __init__(
        self,
        client: httpx.AsyncClient,
        session: SessionStore,
        confirm: Optional[Confirm] = None,
        log: Optional["Log"] = None,
    ):
        self.client = client
        self.session = session
        self.confirm = confirm or (lambda _message: True)
        self.log = log
        self.rows: list[str] = []

    @property
    def html(self) -> str:
        return "\n".join(self.rows)

    async def _report(self, message: str, data: dict | None = None):
        if self.log is not None:
            await self.log.log_error("client", message, data)

    async def _ensure_session(self) -> bool:
        if self.session.needs_renewal():
            await self.session.renew(self.client)
        return self.session.is_valid()

    # ────────────── Orders ──────────────
    async def load(self) -> str:
        if not await self._ensure_session():
            self.rows = [SESSION_ROW]
            return self.html

        try:
            response = await self.client.post(
                "/pedidos/mis",
                json={"usuario": self.session.usuario["usuario_id"]},
                headers=self.session.headers(),
            )
            if response.status_code != 200:
                raise ViewError(f"HTTP {response.status_code}")
            pedidos = response.json()
            if not isinstance(pedidos, list):
                raise ViewError("respuesta inesperada")
        except (httpx.HTTPError, ValueError, ViewError) as e:
            await self._report(f"No se pudieron obtener los pedidos: {e}")
            self.rows = [ERROR_ROW]
            return self.html

        if not pedidos:
            self.rows = [EMPTY_ROW]
            return self.html

        rows = []
        try:
            for pedido in pedidos:
                productos_html = await self.line_items_html(pedido["pedido_id"])
                rows.append(self.render_row(pedido, productos_html))
        except (KeyError, TypeError, ValueError) as e:
            await self._report(f"Pedido con formato inesperado: {e}")
            rows = [ERROR_ROW]
        self.rows = rows
        return self.html

    async def line_items_html(self, order_id: int) -> str:
        try:
            response = await self.client.get(
                f"/pedidos/traerinfopedido/{order_id}", headers=self.session.headers()
            )
            if response.status_code != 200:
                raise ViewError(f"HTTP {response.status_code}")
            items = []
            for p in response.json()["pedidos"]:
                cantidad = f" x{p['cantidad']}" if p.get("cantidad", 1) > 1 else ""
                items.append(f"<li>{escape(p['nombre_producto'])} ({escape(str(p['precio']))}){cantidad}</li>")
        except (httpx.HTTPError, ValueError, KeyError, TypeError, ViewError) as e:
            await self._report(f"No se pudieron obtener los productos del pedido {order_id}: {e}")
            return PRODUCTS_ERROR

        return "".join(items)

    @staticmethod
    def render_row(pedido: dict, productos_html: str) -> str:
        order_id = int(pedido["pedido_id"])
        if cancellable(pedido.get("estado_id")):
            action = f'<button class="btn btn-sm btn-danger" data-cancelar="{order_id}">Cancelar</button>'
        else:
            action = '<span class="text-muted">No cancelable</span>'

        return (
            "<tr>"
            f"<td>#{order_id}</td>"
            f"<td>{escape(format_date(pedido.get('fecha_pedido')))}</td>"
            f"<td>{escape(pedido.get('estado_nombre') or '')}</td>"
            f"<td>{escape(pedido.get('notas') or 'Sin notas')}</td>"
            f'<td><ul class="list-unstyled small">{productos_html}</ul></td>'
            f"<td>{action}</td>"
            "</tr>"
        )

    # ────────────── Cancel ──────────────
    async def cancel(self, order_id: int) -> str:
        """Asks for confirmation, cancels and reloads; returns the message to show."""
        answer = self.confirm("¿Deseas cancelar este pedido?")
        if inspect.isawaitable(answer):
            answer = await answer
        if not answer:
            return ""

        try:
            response = await self.client.put(f"/pedidos/{order_id}/cancelar", headers=self.session.headers())
        except httpx.HTTPError as e:
            await self._report(f"Error al cancelar el pedido {order_id}: {e}")
            return "Error inesperado al cancelar el pedido."

        if response.status_code == 200:
            await self.load()
            return "Pedido cancelado correctamente."
        try:
            data = response.json()
        except ValueError:
            data = None
        detail = data.get("detail") if isinstance(data, dict) else None
        return f"No se pudo cancelar el pedido: {detail or 'error desconocido'}"
