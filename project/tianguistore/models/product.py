# tianguistore/models/product.py

from sqlalchemy import Column, Integer, String, Numeric, Boolean, CheckConstraint
from tianguistore.utils.database import Base

class Product(Base):
    __tablename__ = "productos"
    __table_args__ = (CheckConstraint("stock >= 0", name="ck_productos_stock"),)

    producto_id    = Column(Integer, primary_key=True, index=True)
    nombre         = Column(String(150), nullable=False)
    precio         = Column(Numeric(10, 2), nullable=False)
    stock          = Column(Integer, nullable=False, default=0)
    publicado      = Column(Boolean, nullable=False, default=True)
    borrado_logico = Column(Boolean, nullable=False, default=False)
