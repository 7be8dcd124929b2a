# tianguistore/schemas/user.py

from pydantic import BaseModel, ConfigDict, Field
from typing import Optional
from datetime import datetime

class UserCreate(BaseModel):
    """
    Self-registration payload. The role is always "cliente".
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    nombre: str = Field(..., min_length=1, max_length=100)
    apellido_paterno: Optional[str] = Field(None, max_length=100)
    correo_electronico: str = Field(..., min_length=3, max_length=150, pattern=r"^[^@\s]+@[^@\s]+$")
    contrasena: str = Field(..., min_length=6, max_length=128)

class UserResponse(BaseModel):
    """
    User as returned by the API, without the password hash.
    """
    model_config = ConfigDict(from_attributes=True)

    usuario_id: int
    nombre: str
    apellido_paterno: Optional[str] = None
    correo_electronico: str
    rol: str
    activo: bool
    fecha_registro: Optional[datetime] = None

class SessionUser(BaseModel):
    """
    Profile stored by the client next to the token.
    """
    usuario_id: int
    nombre: str
    correo_electronico: str
    rol: str
    permisos: dict[str, dict[str, bool]]

class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    usuario: SessionUser

class RenewResponse(BaseModel):
    token: str
    usuario: SessionUser
