# tianguistore/schemas/order.py

from datetime import datetime
from decimal import Decimal
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from tianguistore.utils.status import OrderStatus

# ────────────── Input ──────────────
class OrderCheckout(BaseModel):
    """Payment and shipping fields shared by both ways of creating an order."""
    model_config = ConfigDict(str_strip_whitespace=True)

    metodo_pago: str = Field(..., min_length=1, max_length=50)
    cupon: Optional[str] = Field(None, max_length=50)
    direccion_envio: Optional[str] = Field(None, max_length=255)
    notas: Optional[str] = Field(None, max_length=500)

class OrderItemIn(BaseModel):
    producto_id: int = Field(..., gt=0)
    cantidad: int = Field(1, gt=0)

class OrderCreate(OrderCheckout):
    productos: list[OrderItemIn] = Field(..., min_length=1)

class MyOrdersRequest(BaseModel):
    # The storefront sends the stored profile object, older pages send the bare id
    usuario: Optional[int] = None

    @field_validator("usuario", mode="before")
    @classmethod
    def extract_id(cls, value: Union[int, str, dict, None]):
        if isinstance(value, dict):
            return value.get("usuario_id")
        return value

class OrderProductLink(BaseModel):
    fkPedidos: int = Field(..., gt=0)
    fkProductos: int = Field(..., gt=0)

class StatusChange(BaseModel):
    estado_id: OrderStatus

# ────────────── Output ──────────────
class OrderRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    pedido_id: int
    usuario_id: int
    estado_id: int
    estado_nombre: Optional[str] = None
    total: Decimal
    metodo_pago: str
    cupon: Optional[str] = None
    direccion_envio: Optional[str] = None
    notas: Optional[str] = None
    fecha_pedido: Optional[datetime] = None

class OrderAdminRead(OrderRead):
    correo_electronico: Optional[str] = None
    nombre_usuario: Optional[str] = None

class OrderIdResponse(BaseModel):
    pedido_id: int

class OrderProductRead(BaseModel):
    pedido_producto_id: int
    fk_pedidos: int
    fk_productos: int
    cantidad: int

class LineItem(BaseModel):
    pedido_id: int
    producto_id: int
    nombre_producto: str
    precio: Decimal
    cantidad: int

class LineItemsResponse(BaseModel):
    pedidos: list[LineItem]

class OrderStatusResponse(BaseModel):
    mensaje: str
    pedido_id: int
    estado_id: int
