# tianguistore/utils/errors.py

"""
Domain exceptions raised by repositories and services.
Routes translate them into HTTP responses with http_error().
"""

from fastapi import HTTPException, status
from sqlalchemy.exc import SQLAlchemyError


class TianguiError(Exception):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message

    @property
    def detail(self):
        return self.message


class ValidationError(TianguiError):
    status_code = 422

    def __init__(self, fields: dict[str, str]):
        super().__init__("Datos inválidos: " + ", ".join(sorted(fields)))
        self.fields = fields

    @property
    def detail(self):
        return [{"loc": ["body", name], "msg": msg, "type": "value_error"}
                for name, msg in sorted(self.fields.items())]


class AuthorizationError(TianguiError):
    status_code = status.HTTP_403_FORBIDDEN


class NotFoundError(TianguiError):
    status_code = status.HTTP_404_NOT_FOUND


class DomainConflictError(TianguiError):
    status_code = status.HTTP_409_CONFLICT


class EmptyCartError(DomainConflictError):
    def __init__(self, message: str = "El carrito está vacío"):
        super().__init__(message)


class OrderStateConflictError(DomainConflictError):
    pass


class InsufficientStockError(DomainConflictError):
    pass


class InvalidCouponError(DomainConflictError):
    pass


class OrderNotCreatedError(DomainConflictError):
    def __init__(self, message: str = "No se pudo crear el pedido. Verifica los datos."):
        super().__init__(message)


class PersistenceError(TianguiError):
    def __init__(self, message: str = "Error interno de la base de datos"):
        super().__init__(message)


def http_error(exc: Exception) -> HTTPException:
    """Maps a domain or database exception onto an HTTPException."""
    if isinstance(exc, TianguiError):
        return HTTPException(status_code=exc.status_code, detail=exc.detail)
    if isinstance(exc, SQLAlchemyError):
        return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                             detail=PersistenceError().message)
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                         detail="Error interno del servidor")
