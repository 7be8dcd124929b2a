# tests/conftest.py

import itertools
import os
import tempfile

# Settings are read at import time, so the environment goes first
_tmp = tempfile.mkdtemp(prefix="tianguistore-tests-")
os.environ["AUTH_SECRET_KEY"] = "pruebas-clave-secreta-de-al-menos-32-bytes-0123456789"
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{os.path.join(_tmp, 'tianguistore.db')}"
os.environ["LOG_DIR"] = os.path.join(_tmp, "log")
os.environ["LOG_PRINT"] = "0"

from decimal import Decimal

import httpx
import pytest_asyncio

from tianguistore.main import app
from tianguistore.models import CartEntry, Coupon, Product, User
from tianguistore.utils.database import AsyncSessionLocal, Base, engine, init_db
from tianguistore.utils.log import Log
from tianguistore.utils.security import create_access_token, hash_password


class Factory:
    """Creates rows directly through a session and commits them."""

    def __init__(self, session):
        self.session = session
        self.seq = itertools.count(1)

    async def user(self, nombre="Cliente", correo=None, rol="cliente", usuario_id=None,
                   password="secreto123", activo=True) -> User:
        user = User(
            usuario_id=usuario_id,
            nombre=nombre,
            apellido_paterno="Prueba",
            correo_electronico=correo or f"{nombre.lower()}{next(self.seq)}@example.com",
            contrasena_hash=hash_password(password),
            rol=rol,
            activo=activo,
        )
        self.session.add(user)
        await self.session.commit()
        return user

    async def product(self, nombre="Producto", precio="10.00", stock=100) -> Product:
        product = Product(nombre=nombre, precio=Decimal(precio), stock=stock, publicado=True)
        self.session.add(product)
        await self.session.commit()
        return product

    async def cart(self, user: User, product: Product, cantidad: int) -> CartEntry:
        entry = CartEntry(usuario_id=user.usuario_id, producto_id=product.producto_id, cantidad=cantidad)
        self.session.add(entry)
        await self.session.commit()
        return entry

    async def coupon(self, codigo="BIENVENIDA10", descuento="10", activo=True) -> Coupon:
        coupon = Coupon(codigo=codigo, descuento_porcentaje=Decimal(descuento), activo=activo)
        self.session.add(coupon)
        await self.session.commit()
        return coupon


def auth_headers(user: User) -> dict:
    token = create_access_token({"sub": str(user.usuario_id), "rol": user.rol})
    return {"Authorization": f"Bearer {token}"}


@pytest_asyncio.fixture
async def database():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await init_db()
    yield
    # pooled connections belong to this test's event loop
    await engine.dispose()


@pytest_asyncio.fixture
async def log():
    log = Log()
    yield log
    await log.shutdown()


@pytest_asyncio.fixture
async def session(database):
    async with AsyncSessionLocal() as session:
        yield session


@pytest_asyncio.fixture
async def factory(session):
    return Factory(session)


@pytest_asyncio.fixture
async def client(database, log):
    # ASGITransport does not run the lifespan, so the log is attached by hand
    app.state.log = log
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest_asyncio.fixture
async def auth():
    return auth_headers
