import time

from wat.cancel import CancelScope, Cancelled, DeadlineExceeded


def test_child_sees_parent_cancellation():
    parent = CancelScope()
    child = CancelScope(parent=parent)

    parent.cancel()

    assert child.cancelled
    assert isinstance(child.error(), Cancelled)


def test_child_cancellation_leaves_parent_alone():
    parent = CancelScope()
    child = CancelScope(parent=parent)

    child.cancel()

    assert child.cancelled
    assert not parent.cancelled
    assert parent.error() is None


def test_deadline():
    scope = CancelScope(timeout=0.05)
    assert not scope.cancelled

    time.sleep(0.1)

    assert isinstance(scope.error(), DeadlineExceeded)
    assert scope.remaining() == 0.0


def test_remaining_takes_nearest_deadline():
    parent = CancelScope(timeout=10)
    child = CancelScope(parent=parent, timeout=100)

    assert CancelScope().remaining() is None
    assert 9 < child.remaining() <= 10


def test_scope_cancels_on_exit():
    with CancelScope() as scope:
        assert not scope.cancelled
    assert scope.cancelled
