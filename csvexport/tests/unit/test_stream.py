"""
Unit tests for the export stream lifecycle.
"""

import asyncio

import pytest

from csvexport.export import CsvExportStream, StreamConsumedError, StreamState


class TestCsvExportStream:
    """Test suite for the single-pass stream."""

    def test_state_transitions_on_success(self) -> None:
        async def run():
            stream = CsvExportStream()
            assert stream.state is StreamState.PENDING

            await stream.put(b"a\n")
            await stream.finish()

            seen = []
            async for chunk in stream:
                seen.append((chunk, stream.state))
            return stream, seen

        stream, seen = asyncio.run(run())

        assert seen == [(b"a\n", StreamState.RUNNING)]
        assert stream.state is StreamState.SUCCEEDED
        assert stream.bytes_sent == 2

    def test_failure_raises_after_buffered_chunks(self) -> None:
        error = OSError("disk full")

        async def run():
            stream = CsvExportStream()
            await stream.put(b"a\n")
            await stream.fail(error)

            seen = []
            with pytest.raises(OSError) as exc_info:
                async for chunk in stream:
                    seen.append(chunk)
            return stream, seen, exc_info.value

        stream, seen, raised = asyncio.run(run())

        assert seen == [b"a\n"]
        assert raised is error
        assert stream.state is StreamState.FAILED
        assert stream.error is error

    def test_consumed_only_once(self) -> None:
        async def run():
            stream = CsvExportStream()
            await stream.finish()
            assert await stream.read_all() == b""
            await stream.read_all()

        with pytest.raises(StreamConsumedError):
            asyncio.run(run())

    def test_empty_chunks_are_skipped(self) -> None:
        async def run():
            stream = CsvExportStream(buffer_size=1)
            await stream.put(b"")
            await stream.put(b"x")
            await stream.finish()
            return await stream.read_all()

        assert asyncio.run(run()) == b"x"

    def test_full_buffer_blocks_producer(self) -> None:
        async def run():
            stream = CsvExportStream(buffer_size=2)
            produced = []

            async def producer():
                for i in range(10):
                    await stream.put(b"%d" % i)
                    produced.append(i)
                await stream.finish()

            stream.attach_producer(asyncio.create_task(producer()))
            await asyncio.sleep(0.01)
            blocked_at = len(produced)

            data = await stream.read_all()
            return blocked_at, data

        blocked_at, data = asyncio.run(run())

        assert blocked_at == 2
        assert data == b"0123456789"

    def test_aclose_cancels_producer(self) -> None:
        async def run():
            stream = CsvExportStream(buffer_size=1)

            async def producer():
                while True:
                    await stream.put(b"x")

            task = asyncio.create_task(producer())
            stream.attach_producer(task)
            await asyncio.sleep(0)

            await stream.aclose()
            await stream.aclose()
            return stream, task

        stream, task = asyncio.run(run())

        assert task.cancelled()
        assert stream.state is StreamState.FAILED

    def test_aclose_after_success_keeps_state(self) -> None:
        async def run():
            stream = CsvExportStream()
            await stream.finish()
            await stream.read_all()
            await stream.aclose()
            return stream

        assert asyncio.run(run()).state is StreamState.SUCCEEDED
