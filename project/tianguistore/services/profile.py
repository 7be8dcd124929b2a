# tianguistore/services/profile.py

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from fastapi import Request

from tianguistore.models import User
from tianguistore.schemas.user import UserCreate
from tianguistore.utils.errors import DomainConflictError
from tianguistore.utils.security import hash_password


async def read_user_by_email_service(email: str, request: Request) -> User | None:
    """
    Looks up an active or inactive user by login e-mail.
    """
    db = request.state.db
    result = await db.execute(select(User).where(User.correo_electronico == email.strip().lower()))
    return result.scalar_one_or_none()


async def create_user_service(user: UserCreate, request: Request) -> User:
    """
    Registers a customer account. The e-mail is stored lower-cased and must be unique.
    """
    db = request.state.db
    log = request.app.state.log

    db_user = User(
        nombre=user.nombre,
        apellido_paterno=user.apellido_paterno,
        correo_electronico=user.correo_electronico.lower(),
        contrasena_hash=hash_password(user.contrasena),
        rol="cliente",
        activo=True,
    )
    db.add(db_user)
    try:
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        raise DomainConflictError(f"El correo '{user.correo_electronico}' ya está registrado") from e
    await db.refresh(db_user)

    await log.log_info("auth", "Usuario registrado", {"id": db_user.usuario_id})
    return db_user
