"""Test ReadinessMonitor"""
import asyncio
import pytest
from unittest.mock import AsyncMock, Mock

from docdrift.services.readiness import ReadinessMonitor, UNREACHABLE_MESSAGE
from docdrift.utils.cancellation import CancellationToken
from docdrift.utils.errors import ServiceError


def make_monitor(probe, **kwargs):
    return ReadinessMonitor(probe=probe, health_paths=["/health", "/"], interval=0.01, **kwargs)


@pytest.mark.asyncio
class TestCheckNow:
    async def test_first_path_reachable_short_circuits(self):
        probe = AsyncMock(return_value=200)
        monitor = make_monitor(probe)

        await monitor.check_now()

        assert monitor.ready
        probe.assert_awaited_once_with("/health")
        assert monitor.state.retry_count == 0
        assert monitor.state.last_error is None

    async def test_client_error_counts_as_reachable(self):
        probe = AsyncMock(side_effect=[503, 404])
        monitor = make_monitor(probe)

        await monitor.check_now()

        assert monitor.ready
        assert [c.args[0] for c in probe.await_args_list] == ["/health", "/"]

    async def test_all_probes_fail_increments_retry(self):
        probe = AsyncMock(side_effect=[ServiceError("connection refused"), 502])
        monitor = make_monitor(probe)

        await monitor.check_now()

        assert not monitor.ready
        assert monitor.state.retry_count == 1
        assert monitor.state.last_error == "Backend responded with status 502 at /"
        assert monitor.state.checking is False

    async def test_network_error_message_recorded(self):
        probe = AsyncMock(side_effect=ServiceError("connection refused"))
        monitor = make_monitor(probe)

        await monitor.check_now()
        await monitor.check_now()

        assert monitor.state.retry_count == 2
        assert monitor.state.last_error == "connection refused"

    async def test_empty_error_message_falls_back(self):
        probe = AsyncMock(side_effect=OSError())
        monitor = make_monitor(probe)

        await monitor.check_now()

        assert monitor.state.last_error == UNREACHABLE_MESSAGE

    async def test_success_after_failures_resets_counter(self):
        probe = AsyncMock(side_effect=[500, 500, 200])
        monitor = make_monitor(probe)

        await monitor.check_now()
        assert monitor.state.retry_count == 1

        await monitor.check_now()
        assert monitor.ready
        assert monitor.state.retry_count == 0
        assert monitor.state.last_error is None

    async def test_no_probe_once_ready(self):
        probe = AsyncMock(return_value=200)
        monitor = make_monitor(probe)

        await monitor.check_now()
        await monitor.check_now()
        await monitor.check_now()

        assert probe.await_count == 1

    async def test_reentry_while_checking_is_noop(self):
        gate = asyncio.Event()

        async def slow_probe(path):
            await gate.wait()
            return 200

        probe = AsyncMock(side_effect=slow_probe)
        monitor = make_monitor(probe)

        first = asyncio.create_task(monitor.check_now())
        await asyncio.sleep(0)
        assert monitor.state.checking

        await monitor.check_now()  # returns immediately
        gate.set()
        await first

        assert probe.await_count == 1
        assert monitor.ready
        assert monitor.state.checking is False

    async def test_result_discarded_after_teardown(self):
        gate = asyncio.Event()

        async def slow_probe(path):
            await gate.wait()
            return 200

        on_ready = Mock()
        token = CancellationToken()
        monitor = make_monitor(AsyncMock(side_effect=slow_probe), token=token, on_ready=on_ready)

        task = asyncio.create_task(monitor.check_now())
        await asyncio.sleep(0)
        token.cancel()
        gate.set()
        await task

        assert not monitor.ready
        on_ready.assert_not_called()
        assert monitor.state.checking is False

    async def test_on_ready_called_once(self):
        on_ready = Mock()
        monitor = make_monitor(AsyncMock(return_value=204), on_ready=on_ready)

        await monitor.check_now()
        await monitor.check_now()

        on_ready.assert_called_once()


@pytest.mark.asyncio
class TestPolling:
    async def test_run_polls_until_ready_then_stops(self):
        probe = AsyncMock(side_effect=[ServiceError("down"), ServiceError("down"), 503, 200])
        monitor = ReadinessMonitor(probe=probe, health_paths=["/health"], interval=0.001)

        await asyncio.wait_for(monitor.run(), timeout=2)

        assert monitor.ready
        assert probe.await_count == 4
        assert await monitor.wait_ready(timeout=0.1)

    async def test_wait_ready_times_out(self):
        monitor = make_monitor(AsyncMock(return_value=500))
        assert await monitor.wait_ready(timeout=0.01) is False

    async def test_stop_cancels_polling(self):
        probe = AsyncMock(return_value=500)
        monitor = make_monitor(probe)

        monitor.start()
        await asyncio.sleep(0.05)
        monitor.stop()
        calls = probe.await_count
        await asyncio.sleep(0.05)

        assert probe.await_count == calls
        assert not monitor.ready

    async def test_stop_leaves_token_alive(self):
        token = CancellationToken()
        monitor = make_monitor(AsyncMock(return_value=500), token=token)

        monitor.start()
        await asyncio.sleep(0)
        monitor.stop()
        await asyncio.sleep(0)

        assert token.alive
