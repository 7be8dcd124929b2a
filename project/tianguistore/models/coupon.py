# tianguistore/models/coupon.py

from sqlalchemy import Column, Integer, String, Numeric, Boolean
from tianguistore.utils.database import Base

class Coupon(Base):
    __tablename__ = "cupones"

    cupon_id             = Column(Integer, primary_key=True, index=True)
    codigo               = Column(String(50), unique=True, nullable=False)
    descuento_porcentaje = Column(Numeric(5, 2), nullable=False, default=0)  # 0..100
    activo               = Column(Boolean, nullable=False, default=True)
