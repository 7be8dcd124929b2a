# tianguistore/models/user.py

from sqlalchemy import Column, Integer, String, DateTime, Boolean
from sqlalchemy.sql import func
from tianguistore.utils.database import Base

class User(Base):
    __tablename__ = "usuarios"

    usuario_id         = Column(Integer, primary_key=True, index=True)
    nombre             = Column(String(100), nullable=False)
    apellido_paterno   = Column(String(100), nullable=True)
    correo_electronico = Column(String(150), unique=True, nullable=False)  # login
    contrasena_hash    = Column(String(255), nullable=False)
    rol                = Column(String(30), nullable=False, default="cliente")
    activo             = Column(Boolean, nullable=False, default=True)
    fecha_registro     = Column(DateTime(timezone=True), server_default=func.now())

    @property
    def nombre_completo(self) -> str:
        return " ".join(p for p in (self.nombre, self.apellido_paterno) if p)
