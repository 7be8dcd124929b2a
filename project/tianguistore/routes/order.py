# tianguistore/routes/order.py

from fastapi import APIRouter, Body, Depends, Request, status
from typing import List, Optional
from sqlalchemy.exc import SQLAlchemyError

from tianguistore.models import User
from tianguistore.schemas.order import (
    LineItemsResponse,
    MyOrdersRequest,
    OrderAdminRead,
    OrderCheckout,
    OrderCreate,
    OrderIdResponse,
    OrderProductLink,
    OrderProductRead,
    OrderRead,
    OrderStatusResponse,
    StatusChange,
)
from tianguistore.services.order import OrderService
from tianguistore.routes.auth import get_current_user
from tianguistore.utils.errors import TianguiError, http_error

router = APIRouter()

HANDLED = (TianguiError, SQLAlchemyError)


def get_service(request: Request) -> OrderService:
    return OrderService(request.state.db, request.app.state.log)


async def fail(request: Request, message: str, e: Exception, data: dict | None = None):
    await request.app.state.log.log_error("order", f"{message}: {e}", data)
    return http_error(e)


# ────────────── READ ALL ──────────────
@router.get(
    "",
    response_model=List[OrderAdminRead],
    status_code=status.HTTP_200_OK,
    summary="Listar todos los pedidos",
    response_description="Pedidos no eliminados, del más reciente al más antiguo",
    responses={
        200: {"description": "Lista de pedidos"},
        401: {"description": "Token ausente o inválido"},
        403: {"description": "Se requiere el permiso pedidos.leer"},
        500: {"description": "Error interno del servidor"},
    },
)
async def read_orders(request: Request, current_user: User = Depends(get_current_user)):
    try:
        return await get_service(request).list_all(current_user)
    except HANDLED as e:
        raise await fail(request, "Error al obtener pedidos", e)


# ────────────── READ MINE ──────────────
@router.post(
    "/mis",
    response_model=List[OrderRead],
    status_code=status.HTTP_200_OK,
    summary="Listar mis pedidos",
    response_description="Hasta 25 pedidos del usuario autenticado",
    responses={
        200: {"description": "Pedidos del usuario"},
        401: {"description": "Token ausente o inválido"},
        403: {"description": "El usuario del cuerpo no coincide con la sesión"},
    },
)
async def read_my_orders(
    request: Request,
    body: Optional[MyOrdersRequest] = Body(None),
    current_user: User = Depends(get_current_user),
):
    claimed = body.usuario if body else None
    try:
        return await get_service(request).list_mine(current_user, claimed)
    except HANDLED as e:
        raise await fail(request, "Error al obtener pedidos del usuario", e)


# ────────────── CREATE (direct items) ──────────────
@router.post(
    "",
    response_model=OrderIdResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Crear pedido con productos directos",
    response_description="ID del pedido creado",
    responses={
        201: {"description": "Pedido creado con todas sus líneas"},
        401: {"description": "Token ausente o inválido"},
        403: {"description": "Se requiere el permiso pedidos.crear"},
        404: {"description": "Algún producto no existe"},
        409: {"description": "Stock insuficiente o cupón inválido"},
        422: {"description": "Datos del pedido inválidos"},
    },
)
async def create_order(
    request: Request,
    order: OrderCreate,
    current_user: User = Depends(get_current_user),
):
    try:
        order_id = await get_service(request).create_from_items(current_user, order)
        return {"pedido_id": order_id}
    except HANDLED as e:
        raise await fail(request, "Error al crear pedido", e)


# ────────────── CREATE (from cart) ──────────────
@router.post(
    "/desde-carrito",
    response_model=OrderIdResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Crear pedido desde el carrito",
    response_description="ID del pedido creado; el carrito queda vacío",
    responses={
        201: {"description": "Pedido creado, carrito vaciado"},
        401: {"description": "Token ausente o inválido"},
        403: {"description": "Se requiere el permiso pedidos.crear"},
        409: {"description": "Carrito vacío, stock insuficiente o cupón inválido"},
        422: {"description": "Datos de pago/envío inválidos"},
    },
)
async def create_order_from_cart(
    request: Request,
    checkout: OrderCheckout,
    current_user: User = Depends(get_current_user),
):
    try:
        order_id = await get_service(request).create_from_cart(current_user, checkout)
        return {"pedido_id": order_id}
    except HANDLED as e:
        raise await fail(request, "Error al crear pedido desde carrito", e)


# ────────────── LINK PRODUCT ──────────────
@router.post(
    "/makepp",
    response_model=OrderProductRead,
    status_code=status.HTTP_201_CREATED,
    summary="Vincular un producto a un pedido",
    responses={
        201: {"description": "Producto vinculado"},
        403: {"description": "El pedido no pertenece al usuario"},
        404: {"description": "Pedido o producto inexistente"},
        409: {"description": "Pedido no pendiente o sin stock"},
    },
)
async def link_order_product(
    request: Request,
    link: OrderProductLink,
    current_user: User = Depends(get_current_user),
):
    try:
        return await get_service(request).link_product(current_user, link.fkPedidos, link.fkProductos)
    except HANDLED as e:
        raise await fail(request, "Error al vincular producto", e, link.model_dump())


# ────────────── LINE ITEMS ──────────────
@router.get(
    "/traerinfopedido/{id}",
    response_model=LineItemsResponse,
    summary="Productos de un pedido",
    responses={
        200: {"description": "Líneas del pedido con nombre y precio"},
        403: {"description": "El pedido no pertenece al usuario"},
        404: {"description": "Pedido inexistente"},
    },
)
async def read_order_products(id: int, request: Request, current_user: User = Depends(get_current_user)):
    try:
        items = await get_service(request).get_line_items(current_user, id)
        return {"pedidos": items}
    except HANDLED as e:
        raise await fail(request, "Error al obtener productos del pedido", e, {"id": id})


# ────────────── CANCEL ──────────────
@router.put(
    "/{id}/cancelar",
    response_model=OrderStatusResponse,
    summary="Cancelar un pedido",
    responses={
        200: {"description": "Pedido cancelado"},
        403: {"description": "Sin permiso o pedido ajeno"},
        404: {"description": "Pedido inexistente"},
        409: {"description": "El pedido ya no se puede cancelar"},
    },
)
async def cancel_order(id: int, request: Request, current_user: User = Depends(get_current_user)):
    try:
        order = await get_service(request).cancel(current_user, id)
        return {"mensaje": "Pedido cancelado correctamente", "pedido_id": order.pedido_id,
                "estado_id": order.estado_id}
    except HANDLED as e:
        raise await fail(request, "Error al cancelar pedido", e, {"id": id})


# ────────────── STATUS ──────────────
@router.put(
    "/{id}/estado",
    response_model=OrderStatusResponse,
    summary="Cambiar el estado de un pedido",
    responses={
        200: {"description": "Estado actualizado"},
        403: {"description": "Se requiere el permiso pedidos.actualizar"},
        404: {"description": "Pedido inexistente"},
        409: {"description": "Transición no permitida"},
    },
)
async def change_order_status(
    id: int,
    change: StatusChange,
    request: Request,
    current_user: User = Depends(get_current_user),
):
    try:
        order = await get_service(request).change_status(current_user, id, change.estado_id)
        return {"mensaje": "Estado actualizado", "pedido_id": order.pedido_id, "estado_id": order.estado_id}
    except HANDLED as e:
        raise await fail(request, "Error al cambiar estado", e, {"id": id})


# ────────────── DELETE (soft) ──────────────
@router.delete(
    "/{id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Eliminar un pedido (borrado lógico)",
    responses={
        204: {"description": "Pedido marcado como eliminado"},
        403: {"description": "Se requiere el permiso pedidos.eliminar"},
        404: {"description": "Pedido inexistente"},
    },
)
async def delete_order(id: int, request: Request, current_user: User = Depends(get_current_user)):
    try:
        await get_service(request).soft_delete(current_user, id)
    except HANDLED as e:
        raise await fail(request, "Error al eliminar pedido", e, {"id": id})
