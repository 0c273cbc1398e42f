import asyncio

from assistant.services.scheduler import AsyncioScheduler, ManualScheduler


def test_manual_scheduler_runs_due_callbacks_in_order():
    scheduler = ManualScheduler()
    fired = []
    scheduler.call_later(2.0, fired.append, "b")
    scheduler.call_later(1.0, fired.append, "a")
    cancelled = scheduler.call_later(1.5, fired.append, "x")
    cancelled.cancel()

    assert scheduler.advance(0.5) == 0
    assert scheduler.advance(2.0) == 2
    assert fired == ["a", "b"]
    assert scheduler.now() == 2.5
    assert scheduler.pending() == 0


def test_manual_scheduler_callback_can_reschedule():
    scheduler = ManualScheduler()
    fired = []

    def _tick():
        fired.append(scheduler.now())
        if len(fired) < 3:
            scheduler.call_later(1.0, _tick)

    scheduler.call_later(1.0, _tick)
    scheduler.advance(10.0)
    assert fired == [1.0, 2.0, 3.0]


def test_asyncio_scheduler_uses_running_loop():
    fired = []

    async def _main():
        scheduler = AsyncioScheduler()
        scheduler.call_later(0.01, fired.append, "done")
        handle = scheduler.call_later(0.01, fired.append, "cancelled")
        handle.cancel()
        await asyncio.sleep(0.05)

    asyncio.run(_main())
    assert fired == ["done"]
