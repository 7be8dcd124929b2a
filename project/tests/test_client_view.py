# tests/test_client_view.py

import json
import time
from datetime import timedelta

import httpx
import pytest

from tianguistore.client.mis_pedidos import (
    EMPTY_ROW,
    ERROR_ROW,
    PRODUCTS_ERROR,
    SESSION_ROW,
    OrdersView,
    cancellable,
    format_date,
)
from tianguistore.client.session import SessionStore
from tianguistore.repositories.order import OrderRepository
from tianguistore.utils.security import create_access_token
from tianguistore.utils.status import OrderStatus

PROFILE = {"usuario_id": 7, "nombre": "Ana", "correo_electronico": "ana@example.com",
           "rol": "cliente", "permisos": {"pedidos": {"crear": True}, "productos": {"leer": True}}}


@pytest.fixture
def store(tmp_path):
    return SessionStore(str(tmp_path / "sesion.json"))


async def signed_in(store, client, factory, nombre="Cliente"):
    user = await factory.user(nombre)
    assert await store.login(client, user.correo_electronico, "secreto123")
    return user


async def checkout(client, store, factory, user, nombre="Rebozo", cantidad=1):
    product = await factory.product(nombre, "120.00")
    await factory.cart(user, product, cantidad)
    response = await client.post("/pedidos/desde-carrito", json={"metodo_pago": "tarjeta"},
                                 headers=store.headers())
    return response.json()["pedido_id"]


def mock_client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url="http://test")


# ────────────── Helpers ──────────────
def test_cancellable_states():
    assert cancellable(1) and cancellable(2)
    assert not cancellable(3)
    assert not cancellable(5)
    assert not cancellable(99)
    assert not cancellable(None)


def test_format_date():
    assert format_date("2025-05-07T10:30:00") == "07/05/2025"
    assert format_date(None) == ""
    assert format_date("ayer") == "ayer"


# ────────────── Load ──────────────
async def test_load_renders_rows_and_line_items(client, store, factory, session):
    user = await signed_in(store, client, factory)
    open_id = await checkout(client, store, factory, user, "Rebozo", cantidad=2)
    shipped_id = await checkout(client, store, factory, user, "Jarro")
    await OrderRepository(session).update_status(shipped_id, OrderStatus.SHIPPED)
    await session.commit()

    html = await OrdersView(client, store).load()

    assert f'data-cancelar="{open_id}"' in html
    assert f'data-cancelar="{shipped_id}"' not in html
    assert "No cancelable" in html
    assert "<li>Rebozo (120.00) x2</li>" in html
    assert "<li>Jarro (120.00)</li>" in html
    assert "Sin notas" in html
    # newest first
    assert html.index(f"#{shipped_id}") < html.index(f"#{open_id}")


async def test_load_without_orders_shows_placeholder(client, store, factory):
    await signed_in(store, client, factory)

    assert await OrdersView(client, store).load() == EMPTY_ROW


async def test_load_without_session_asks_to_sign_in(client, store):
    assert await OrdersView(client, store).load() == SESSION_ROW


async def test_load_server_error_shows_error_row(store, log):
    await store.save(create_access_token({"sub": "7"}), PROFILE)
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(500, json={"detail": "boom"})

    async with mock_client(handler) as client:
        html = await OrdersView(client, store, log=log).load()

    assert html == ERROR_ROW
    assert json.loads(seen[0].content) == {"usuario": 7}
    assert seen[0].headers["Authorization"] == f"Bearer {store.token}"


async def test_load_unexpected_payload_shows_error_row(store):
    await store.save(create_access_token({"sub": "7"}), PROFILE)

    async with mock_client(lambda request: httpx.Response(200, json={"pedidos": []})) as client:
        assert await OrdersView(client, store).load() == ERROR_ROW


async def test_failed_line_items_only_mark_that_order(store):
    await store.save(create_access_token({"sub": "7"}), PROFILE)
    orders = [{"pedido_id": 3, "estado_id": 1, "estado_nombre": "Pendiente", "notas": "<b>ya</b>"}]

    def handler(request):
        if request.url.path == "/pedidos/mis":
            return httpx.Response(200, json=orders)
        return httpx.Response(500)

    async with mock_client(handler) as client:
        html = await OrdersView(client, store).load()

    assert PRODUCTS_ERROR in html
    assert 'data-cancelar="3"' in html
    assert "&lt;b&gt;ya&lt;/b&gt;" in html


# ────────────── Cancel ──────────────
async def test_cancel_declined_sends_nothing(store):
    await store.save(create_access_token({"sub": "7"}), PROFILE)
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(200, json={})

    async with mock_client(handler) as client:
        message = await OrdersView(client, store, confirm=lambda _m: False).cancel(3)

    assert message == ""
    assert calls == []


async def test_cancel_then_reload(client, store, factory):
    user = await signed_in(store, client, factory)
    order_id = await checkout(client, store, factory, user)

    async def confirm(_message):
        return True

    view = OrdersView(client, store, confirm=confirm)
    await view.load()
    assert f'data-cancelar="{order_id}"' in view.html

    assert await view.cancel(order_id) == "Pedido cancelado correctamente."
    assert f'data-cancelar="{order_id}"' not in view.html
    assert "Cancelado" in view.html

    message = await view.cancel(order_id)
    assert message.startswith("No se pudo cancelar el pedido: ")
    assert "Cancelado" in message


async def test_cancel_network_failure(store):
    await store.save(create_access_token({"sub": "7"}), PROFILE)

    def handler(request):
        raise httpx.ConnectError("sin red", request=request)

    async with mock_client(handler) as client:
        assert await OrdersView(client, store).cancel(3) == "Error inesperado al cancelar el pedido."


async def test_cancel_with_non_bool_confirmation(store):
    await store.save(create_access_token({"sub": "7"}), PROFILE)

    async with mock_client(lambda request: httpx.Response(200, json=[])) as client:
        assert await OrdersView(client, store, confirm=lambda _m: None).cancel(3) == ""
        assert await OrdersView(client, store, confirm=lambda _m: "si").cancel(3) == "Pedido cancelado correctamente."


async def test_cancel_success_without_json_body(store):
    await store.save(create_access_token({"sub": "7"}), PROFILE)

    def handler(request):
        if request.method == "PUT":
            return httpx.Response(200, text="ok")
        return httpx.Response(200, json=[])

    async with mock_client(handler) as client:
        view = OrdersView(client, store)
        assert await view.cancel(3) == "Pedido cancelado correctamente."
        assert view.html == EMPTY_ROW


async def test_cancel_refused_without_json_body(store):
    await store.save(create_access_token({"sub": "7"}), PROFILE)

    async with mock_client(lambda request: httpx.Response(502, text="Bad Gateway")) as client:
        message = await OrdersView(client, store).cancel(3)

    assert message == "No se pudo cancelar el pedido: error desconocido"


# ────────────── Session store ──────────────
async def test_session_survives_reload(store):
    token = create_access_token({"sub": "7"})
    await store.save(token, PROFILE)

    loaded = await SessionStore(store.path).load()

    assert loaded.token == token
    assert loaded.usuario == PROFILE
    assert loaded.is_valid()


async def test_malformed_profile_or_expired_token_is_invalid(store):
    await store.save(create_access_token({"sub": "7"}), {**PROFILE, "permisos": None})
    assert not store.is_valid()

    await store.save(create_access_token({"sub": "7"}, expires_delta=timedelta(minutes=-5)), PROFILE)
    assert not store.is_valid()
    assert store.token_expired(store.token)
    assert SessionStore.seconds_left("basura") is None


async def test_profile_without_read_access_is_invalid(store):
    token = create_access_token({"sub": "7"})

    await store.save(token, {**PROFILE, "permisos": {"pedidos": {"crear": True}}})
    assert not store.is_valid()

    await store.save(token, {**PROFILE, "permisos": {"productos": {"leer": False}}})
    assert not store.is_valid()

    await store.save(token, {**PROFILE, "permisos": {"usuarios": {"leer": True}}})
    assert store.is_valid()


async def test_needs_renewal_near_expiry(store):
    await store.save(create_access_token({"sub": "7"}, expires_delta=timedelta(seconds=30)), PROFILE)
    assert store.needs_renewal()

    await store.save(create_access_token({"sub": "7"}), PROFILE)
    assert not store.needs_renewal()
    assert store.seconds_left(store.token, now=time.time()) > 60


async def test_refused_renewal_clears_session(store):
    await store.save(create_access_token({"sub": "7"}), PROFILE)

    async with mock_client(lambda request: httpx.Response(401, json={"detail": "Token expirado"})) as client:
        assert not await store.renew(client)

    assert store.token is None
    assert (await SessionStore(store.path).load()).token is None


async def test_view_renews_token_before_loading(client, store, factory):
    user = await signed_in(store, client, factory)
    short = create_access_token({"sub": str(user.usuario_id)}, expires_delta=timedelta(seconds=20))
    await store.save(short, store.usuario)

    assert await OrdersView(client, store).load() == EMPTY_ROW
    assert store.token != short
