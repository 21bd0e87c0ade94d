import asyncio

from bingo.logic.timer import RevertTimer


class TestRevertTimer:
    async def test_callback_fires_after_delay(self):
        fired = asyncio.Event()

        async def on_fire():
            fired.set()

        timer = RevertTimer(0.02, on_fire)
        timer.start()
        assert timer.active
        await asyncio.wait_for(fired.wait(), timeout=1.0)

    async def test_cancel_prevents_callback(self):
        fired = False

        async def on_fire():
            nonlocal fired
            fired = True

        timer = RevertTimer(0.02, on_fire)
        timer.start()
        timer.cancel()
        await asyncio.sleep(0.05)
        assert fired is False
        assert not timer.active

    async def test_cancel_is_idempotent(self):
        async def on_fire():
            pass

        timer = RevertTimer(0.01, on_fire)
        timer.cancel()
        timer.start()
        timer.cancel()
        timer.cancel()
        await asyncio.sleep(0.03)
        timer.cancel()

    async def test_restart_replaces_pending_countdown(self):
        calls = []

        async def on_fire():
            calls.append(1)

        timer = RevertTimer(0.03, on_fire)
        timer.start()
        timer.start()
        await asyncio.sleep(0.08)
        assert calls == [1]

    async def test_callback_error_is_logged_not_raised(self):
        async def on_fire():
            raise RuntimeError("send failed")

        timer = RevertTimer(0.0, on_fire)
        timer.start()
        await asyncio.sleep(0.02)
        assert not timer.active
