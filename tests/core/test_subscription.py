from __future__ import annotations

from engine.core.subscription import Subscription


def test_close_releases_exactly_once() -> None:
    calls: list[int] = []
    sub = Subscription(lambda: calls.append(1))
    assert not sub.closed
    sub.close()
    sub.close()
    assert calls == [1]
    assert sub.closed


def test_context_manager_closes() -> None:
    calls: list[int] = []
    with Subscription(lambda: calls.append(1)) as sub:
        assert not sub.closed
    assert sub.closed
    assert calls == [1]


def test_without_release_is_noop() -> None:
    sub = Subscription()
    sub.close()
    assert sub.closed
    assert "closed=True" in repr(sub)
