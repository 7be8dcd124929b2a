# tests/test_order_status.py

import pytest

from tianguistore.utils.status import OrderStatus, TRANSITIONS


@pytest.mark.parametrize("status", [OrderStatus.PENDING, OrderStatus.PROCESSING])
def test_open_orders_can_be_cancelled(status):
    assert status.is_cancellable
    assert status.can_become(OrderStatus.CANCELLED)


@pytest.mark.parametrize("status", [OrderStatus.SHIPPED, OrderStatus.COMPLETED, OrderStatus.CANCELLED])
def test_other_orders_cannot_be_cancelled(status):
    assert not status.is_cancellable


def test_forward_path():
    assert OrderStatus.PENDING.can_become(OrderStatus.PROCESSING)
    assert OrderStatus.PROCESSING.can_become(OrderStatus.SHIPPED)
    assert OrderStatus.SHIPPED.can_become(OrderStatus.COMPLETED)
    assert not OrderStatus.PENDING.can_become(OrderStatus.COMPLETED)
    assert not OrderStatus.SHIPPED.can_become(OrderStatus.PENDING)


def test_terminal_states_have_no_way_out():
    assert TRANSITIONS[OrderStatus.COMPLETED] == frozenset()
    assert TRANSITIONS[OrderStatus.CANCELLED] == frozenset()


def test_every_state_has_a_label_and_transition_row():
    for status in OrderStatus:
        assert status.label
        assert status in TRANSITIONS
    assert OrderStatus(1).label == "Pendiente"
