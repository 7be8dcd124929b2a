# tianguistore/utils/status.py

import enum


class OrderStatus(enum.IntEnum):
    """Closed set of order states; ids match the rows seeded into estados_pedido."""

    PENDING = 1
    PROCESSING = 2
    SHIPPED = 3
    COMPLETED = 4
    CANCELLED = 5

    @property
    def label(self) -> str:
        return STATUS_LABELS[self]

    @property
    def is_cancellable(self) -> bool:
        return OrderStatus.CANCELLED in TRANSITIONS[self]

    def can_become(self, target: "OrderStatus") -> bool:
        return target in TRANSITIONS[self]


STATUS_LABELS = {
    OrderStatus.PENDING: "Pendiente",
    OrderStatus.PROCESSING: "Procesando",
    OrderStatus.SHIPPED: "Enviado",
    OrderStatus.COMPLETED: "Entregado",
    OrderStatus.CANCELLED: "Cancelado",
}

TRANSITIONS = {
    OrderStatus.PENDING: frozenset({OrderStatus.PROCESSING, OrderStatus.CANCELLED}),
    OrderStatus.PROCESSING: frozenset({OrderStatus.SHIPPED, OrderStatus.CANCELLED}),
    OrderStatus.SHIPPED: frozenset({OrderStatus.COMPLETED}),
    OrderStatus.COMPLETED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
}
