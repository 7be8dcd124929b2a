# tianguistore/routes/cart.py

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.exc import SQLAlchemyError

from tianguistore.models import User
from tianguistore.schemas.cart import CartAdd, CartEntryRead, CartRead
from tianguistore.services.cart import CartService
from tianguistore.routes.auth import get_current_user
from tianguistore.utils.errors import TianguiError, http_error

router = APIRouter()


def get_service(request: Request) -> CartService:
    return CartService(request.state.db, request.app.state.log)


@router.get(
    "",
    response_model=CartRead,
    summary="Ver mi carrito",
    responses={
        200: {"description": "Productos del carrito; total nulo si está vacío"},
        401: {"description": "Token ausente o inválido"},
    },
)
async def read_cart(request: Request, current_user: User = Depends(get_current_user)):
    try:
        return await get_service(request).get_cart(current_user)
    except (TianguiError, SQLAlchemyError) as e:
        await request.app.state.log.log_error("cart", f"Error al obtener carrito: {e}")
        raise http_error(e)


@router.post(
    "",
    response_model=CartEntryRead,
    status_code=status.HTTP_201_CREATED,
    summary="Agregar producto al carrito",
    responses={
        201: {"description": "Producto agregado (o cantidad incrementada)"},
        404: {"description": "Producto inexistente o no publicado"},
        422: {"description": "Cantidad inválida"},
    },
)
async def add_to_cart(request: Request, item: CartAdd, current_user: User = Depends(get_current_user)):
    try:
        return await get_service(request).add_product(current_user, item.producto_id, item.cantidad)
    except (TianguiError, SQLAlchemyError) as e:
        await request.app.state.log.log_error("cart", f"Error al agregar al carrito: {e}", item.model_dump())
        raise http_error(e)


@router.delete(
    "/{producto_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Quitar producto del carrito",
    responses={
        204: {"description": "Producto retirado"},
        404: {"description": "El producto no estaba en el carrito"},
    },
)
async def remove_from_cart(producto_id: int, request: Request, current_user: User = Depends(get_current_user)):
    try:
        await get_service(request).remove_product(current_user, producto_id)
    except (TianguiError, SQLAlchemyError) as e:
        await request.app.state.log.log_error("cart", f"Error al quitar del carrito: {e}", {"producto_id": producto_id})
        raise http_error(e)
