# tianguistore/utils/database.py

from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.orm import declarative_base
from sqlalchemy import select
from tianguistore.config import settings
from tianguistore.utils.security import hash_password

# ────────────── Base for the models ──────────────
Base = declarative_base()

# ────────────── Async engine ──────────────
engine = create_async_engine(
    settings.DATABASE_URL,
    echo=settings.DB_ECHO
)

# ────────────── Async session factory ──────────────
AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False
)

# ────────────── Database initialisation ──────────────
async def init_db():
    """
    Creates the tables that do not exist yet and seeds reference data:
        • estados_pedido rows from OrderStatus (missing ones only)
        • an administrator account when no active admin exists,
          with the credentials from AUTH_LOGIN / AUTH_PASSWORD
    """
    from tianguistore.models import User, OrderState, OrderStatus

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with AsyncSessionLocal() as session:
        result = await session.execute(select(OrderState.estado_id))
        existing = set(result.scalars().all())
        for status in OrderStatus:
            if status.value not in existing:
                session.add(OrderState(estado_id=status.value, estado_nombre=status.label))

        result = await session.execute(
            select(User).where(User.rol == "admin", User.activo.is_(True))
        )
        if result.scalars().first() is None:
            session.add(User(
                nombre="Administrador",
                correo_electronico=settings.AUTH_LOGIN,
                contrasena_hash=hash_password(settings.AUTH_PASSWORD),
                rol="admin",
            ))

        await session.commit()
