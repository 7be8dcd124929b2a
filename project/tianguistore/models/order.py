# tianguistore/models/order.py

from sqlalchemy import (
    Column, Integer, String, Text, Numeric, Boolean, DateTime, ForeignKey, CheckConstraint,
)
from sqlalchemy.sql import func
from tianguistore.utils.database import Base
from tianguistore.utils.status import OrderStatus


class OrderState(Base):
    __tablename__ = "estados_pedido"

    estado_id     = Column(Integer, primary_key=True, autoincrement=False)
    estado_nombre = Column(String(50), nullable=False)
    descripcion   = Column(String(255), nullable=True)


class Order(Base):
    __tablename__ = "pedidos"
    __table_args__ = (CheckConstraint("total >= 0", name="ck_pedidos_total"),)

    pedido_id       = Column(Integer, primary_key=True, index=True)
    usuario_id      = Column(Integer, ForeignKey("usuarios.usuario_id"), nullable=False, index=True)
    estado_id       = Column(Integer, ForeignKey("estados_pedido.estado_id"), nullable=False,
                             default=int(OrderStatus.PENDING))
    total           = Column(Numeric(10, 2), nullable=False)
    metodo_pago     = Column(String(50), nullable=False)
    cupon           = Column(String(50), nullable=True)
    direccion_envio = Column(Text, nullable=True)
    notas           = Column(Text, nullable=True)
    fecha_pedido    = Column(DateTime(timezone=True), server_default=func.now())
    borrado_logico  = Column(Boolean, nullable=False, default=False)


class OrderProduct(Base):
    __tablename__ = "pedido_productos"
    __table_args__ = (CheckConstraint("cantidad > 0", name="ck_pedido_productos_cantidad"),)

    pedido_producto_id = Column(Integer, primary_key=True, index=True)
    fk_pedidos         = Column(Integer, ForeignKey("pedidos.pedido_id"), nullable=False, index=True)
    fk_productos       = Column(Integer, ForeignKey("productos.producto_id"), nullable=False)
    cantidad           = Column(Integer, nullable=False, default=1)
