# tianguistore/models/cart.py

from sqlalchemy import Column, Integer, ForeignKey, CheckConstraint, UniqueConstraint
from tianguistore.utils.database import Base

class CartEntry(Base):
    __tablename__ = "carrito"
    __table_args__ = (
        UniqueConstraint("usuario_id", "producto_id", name="uq_carrito_usuario_producto"),
        CheckConstraint("cantidad > 0", name="ck_carrito_cantidad"),
    )

    carrito_id  = Column(Integer, primary_key=True, index=True)
    usuario_id  = Column(Integer, ForeignKey("usuarios.usuario_id"), nullable=False, index=True)
    producto_id = Column(Integer, ForeignKey("productos.producto_id"), nullable=False)
    cantidad    = Column(Integer, nullable=False, default=1)
