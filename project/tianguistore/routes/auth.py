# tianguistore/routes/auth.py

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer, OAuth2PasswordRequestForm
from jwt import ExpiredSignatureError, InvalidTokenError

from tianguistore.models import User
from tianguistore.schemas.user import UserCreate, UserResponse, TokenResponse, RenewResponse, SessionUser
from tianguistore.services.profile import (
    create_user_service,
    read_user_by_email_service,
)
from tianguistore.utils.errors import TianguiError, http_error
from tianguistore.utils.permissions import policy
from tianguistore.utils.security import create_access_token, decode_access_token, verify_password

router = APIRouter()

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/token")


def session_user(user: User) -> SessionUser:
    """Profile object the client keeps next to its token."""
    return SessionUser(
        usuario_id=user.usuario_id,
        nombre=user.nombre_completo,
        correo_electronico=user.correo_electronico,
        rol=user.rol,
        permisos=policy.permissions_for(user),
    )


def issue_token(user: User) -> str:
    return create_access_token({"sub": str(user.usuario_id), "rol": user.rol})


async def get_current_user(request: Request, token: str = Depends(oauth2_scheme)) -> User:
    """
    Resolves the bearer token to an active user.

    **Statuses:**
    - 401 Unauthorized – token expired, malformed, or the user is missing/inactive
    """
    log = request.app.state.log
    try:
        payload = decode_access_token(token)
        user_id = int(payload.get("sub"))
    except ExpiredSignatureError:
        await log.log_warning("auth", "Token expirado")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Token expirado",
                            headers={"WWW-Authenticate": "Bearer"})
    except (InvalidTokenError, TypeError, ValueError):
        await log.log_warning("auth", "Token inválido")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Token inválido",
                            headers={"WWW-Authenticate": "Bearer"})

    user = await request.state.db.get(User, user_id)
    if user is None or not user.activo:
        await log.log_warning("auth", "Usuario inexistente o inactivo", {"id": user_id})
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Usuario no válido",
                            headers={"WWW-Authenticate": "Bearer"})

    return user


# ────────────── TOKEN ──────────────
@router.post(
    "/token",
    response_model=TokenResponse,
    summary="Iniciar sesión y obtener un JWT",
    responses={
        200: {"description": "Token emitido junto con el perfil y permisos del usuario"},
        401: {"description": "Correo o contraseña incorrectos"},
        422: {"description": "Formulario incompleto"},
    },
)
async def login_for_access_token(
    request: Request,
    form_data: OAuth2PasswordRequestForm = Depends()
):
    """
    Checks e-mail (`username`) and password and returns:

    - `access_token`: JWT with `sub` (user id), `rol` and `exp`
    - `token_type`: always `"bearer"`
    - `usuario`: id, name, e-mail, role and the permission map the client uses
      to decide which pages to show
    """
    log = request.app.state.log

    user = await read_user_by_email_service(form_data.username, request)
    if not user or not user.activo or not verify_password(form_data.password, user.contrasena_hash):
        await log.log_warning("auth", "Intento de acceso fallido", {"correo": form_data.username})
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Correo o contraseña incorrectos",
            headers={"WWW-Authenticate": "Bearer"}
        )

    await log.log_info("auth", "Sesión iniciada", {"id": user.usuario_id})
    return TokenResponse(access_token=issue_token(user), usuario=session_user(user))


# ────────────── RENEW ──────────────
@router.post(
    "/renovar",
    response_model=RenewResponse,
    summary="Renovar el JWT antes de que expire",
    responses={
        200: {"description": "Nuevo token emitido"},
        401: {"description": "Token expirado o inválido"},
    },
)
async def renew_token(request: Request, current_user: User = Depends(get_current_user)):
    await request.app.state.log.log_info("auth", "Token renovado", {"id": current_user.usuario_id})
    return RenewResponse(token=issue_token(current_user), usuario=session_user(current_user))


# ────────────── REGISTER ──────────────
@router.post(
    "/register",
    response_model=UserResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Registrar un cliente",
    responses={
        201: {"description": "Usuario registrado"},
        409: {"description": "El correo ya está registrado"},
        422: {"description": "Datos inválidos"},
    },
)
async def register_user(user: UserCreate, request: Request):
    """
    Self-registration. New accounts always get the `cliente` role;
    the password is hashed before it is stored.
    """
    try:
        return await create_user_service(user, request)
    except TianguiError as e:
        await request.app.state.log.log_warning("auth", f"Registro rechazado: {e}")
        raise http_error(e)
