# tianguistore/schemas/cart.py

from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

class CartAdd(BaseModel):
    producto_id: int = Field(..., gt=0)
    cantidad: int = Field(1, gt=0)

class CartEntryRead(BaseModel):
    producto_id: int
    nombre_producto: str
    precio: Decimal
    cantidad: int
    subtotal: Decimal

class CartRead(BaseModel):
    productos: list[CartEntryRead]
    total: Optional[Decimal] = None     # None for an empty cart
