from __future__ import annotations

import asyncio
import threading

from cotacoes.services.bootstrap_tokens import BootstrapTokenRegistry, TOKEN_PREFIX, sweep_periodically


class FakeClock:
    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def test_issued_token_has_prefix_and_is_registered():
    registry = BootstrapTokenRegistry(30)
    token = registry.issue()
    assert token.startswith(TOKEN_PREFIX)
    assert token in registry
    assert registry.looks_like_token(token)
    assert not registry.looks_like_token("eyJhbGciOi")


def test_token_redeems_once():
    registry = BootstrapTokenRegistry(30)
    token = registry.issue()
    assert registry.redeem(token) is True
    assert registry.redeem(token) is False


def test_unknown_or_empty_token_is_rejected():
    registry = BootstrapTokenRegistry(30)
    assert registry.redeem("TEMP-123-abc") is False
    assert registry.redeem("") is False
    assert registry.redeem(None) is False


def test_token_expires_after_window_even_if_unused():
    clock = FakeClock()
    registry = BootstrapTokenRegistry(30, clock=clock)
    token = registry.issue()
    clock.advance(31)
    assert registry.redeem(token) is False
    assert token not in registry


def test_token_is_valid_until_end_of_window():
    clock = FakeClock()
    registry = BootstrapTokenRegistry(30, clock=clock)
    token = registry.issue()
    clock.advance(30)
    assert registry.redeem(token) is True


def test_sweep_removes_expired_tokens_used_or_not():
    clock = FakeClock()
    registry = BootstrapTokenRegistry(30, clock=clock)
    used = registry.issue()
    unused = registry.issue()
    registry.redeem(used)
    clock.advance(20)
    fresh = registry.issue()
    clock.advance(15)

    assert registry.sweep() == 2
    assert used not in registry
    assert unused not in registry
    assert fresh in registry
    assert len(registry) == 1


def test_concurrent_redeem_succeeds_exactly_once():
    registry = BootstrapTokenRegistry(30)
    token = registry.issue()
    results: list[bool] = []
    barrier = threading.Barrier(16)

    def _worker():
        barrier.wait()
        results.append(registry.redeem(token))

    threads = [threading.Thread(target=_worker) for _ in range(16)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert results.count(True) == 1
    assert results.count(False) == 15


def test_periodic_sweeper_removes_expired_tokens_until_cancelled():
    clock = FakeClock()
    registry = BootstrapTokenRegistry(30, clock=clock)
    registry.issue()
    clock.advance(31)

    async def run() -> None:
        task = asyncio.create_task(sweep_periodically(registry, 0.01))
        await asyncio.sleep(0.05)
        assert not task.done()
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    asyncio.run(run())
    assert len(registry) == 0
