#!/usr/bin/env python3
"""Tests for the single-flight TTS and STS job runners."""

import sys
import os

# Add parent directory to path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

import unittest
import asyncio

from webspeech_client.config import ClientConfig
from webspeech_client.errors import (
    ErrorKind,
    TransportError,
    MSG_ALREADY_PROCESSING,
    MSG_AUDIO_REQUIRED,
    MSG_SPEED_RANGE,
    MSG_TEXT_REQUIRED,
    MSG_VOICE_REQUIRED,
)
from webspeech_client.jobs.models import (
    ApiResult,
    Err,
    Notice,
    Ok,
    Pending,
    PollState,
    StsParams,
    TtsParams,
)
from webspeech_client.jobs.runner import StsJobRunner, TtsJobRunner, callbacks
from webspeech_client.jobs.scheduler import VirtualScheduler
from tests.fakes import FakeTransport


def spawn(coro):
    return asyncio.get_running_loop().create_task(coro)


class TestTtsRunner(unittest.TestCase):

    def test_progress_then_single_result(self):
        async def run_test():
            scheduler = VirtualScheduler()
            transport = FakeTransport()
            transport.script('generate_tts', ApiResult(0, {'name': 'out.wav'}))
            gate = transport.hold('generate_tts')
            runner = TtsJobRunner(transport, scheduler)
            events = []

            task = spawn(runner.generate(TtsParams(text="Hello world", voice="speaker.wav"), events.append))
            await scheduler.advance(2)
            processing_while_running = runner.processing
            gate.set_result(None)
            outcome = await task
            return events, outcome, processing_while_running, runner

        events, outcome, processing_while_running, runner = asyncio.run(run_test())
        self.assertTrue(processing_while_running)
        self.assertEqual(events, [Pending(1), Pending(2), Ok({'name': 'out.wav'})])
        self.assertEqual(outcome, Ok({'name': 'out.wav'}))
        self.assertFalse(runner.processing)
        self.assertFalse(runner._ticker.running)
        self.assertEqual(runner.elapsed, 0)

    def test_success_carries_server_message(self):
        async def run_test():
            transport = FakeTransport()
            transport.script('generate_tts', ApiResult(0, {'name': 'out.wav'}, msg="Queued behind 2 jobs"))
            runner = TtsJobRunner(transport, VirtualScheduler())
            events = []
            outcome = await runner.generate(TtsParams(text="Hello", voice="speaker.wav"), events.append)
            return events, outcome

        events, outcome = asyncio.run(run_test())
        self.assertEqual(outcome, Ok({'name': 'out.wav'}, "Queued behind 2 jobs"))
        self.assertEqual(outcome.message, "Queued behind 2 jobs")
        self.assertEqual(events, [outcome])

    def test_busy_submission_makes_no_call(self):
        async def run_test():
            scheduler = VirtualScheduler()
            transport = FakeTransport()
            gate = transport.hold('generate_tts')
            runner = TtsJobRunner(transport, scheduler)
            first_events, second_events = [], []

            first = spawn(runner.generate(TtsParams("First", "speaker.wav"), first_events.append))
            await scheduler.settle()
            second = await runner.generate(TtsParams("Second", "speaker.wav"), second_events.append)
            calls_while_busy = transport.count('generate_tts')
            gate.set_result(None)
            await first
            return second, second_events, calls_while_busy, transport

        second, second_events, calls_while_busy, transport = asyncio.run(run_test())
        self.assertIsInstance(second, Err)
        self.assertEqual(second.kind, ErrorKind.BUSY)
        self.assertEqual(second.message, MSG_ALREADY_PROCESSING)
        self.assertEqual(second_events, [second])
        self.assertEqual(calls_while_busy, 1)
        self.assertEqual(transport.calls['generate_tts'][0]['text'], "First")

    def test_invalid_speed_degrades_to_default(self):
        async def run_test():
            transport = FakeTransport()
            runner = TtsJobRunner(transport, VirtualScheduler())
            events = []
            outcome = await runner.generate(
                TtsParams(text="Hello", voice="speaker.wav", speed="3.5"), events.append
            )
            return outcome, events, transport

        outcome, events, transport = asyncio.run(run_test())
        self.assertIsInstance(outcome, Ok)
        self.assertEqual(events[0], Notice(MSG_SPEED_RANGE))
        self.assertEqual(transport.count('generate_tts'), 1)
        self.assertEqual(transport.calls['generate_tts'][0]['speed'], 1.0)

    def test_validation_failures_make_no_call(self):
        cases = [
            (TtsParams(text="", voice="speaker.wav"), MSG_TEXT_REQUIRED),
            (TtsParams(text="，。！", voice="speaker.wav"), MSG_TEXT_REQUIRED),
            (TtsParams(text="Hello", voice=""), MSG_VOICE_REQUIRED),
            (TtsParams(text="Hello", voice="speaker.wav", language="xx"), "Invalid language selection."),
        ]

        async def run_test(params):
            transport = FakeTransport()
            runner = TtsJobRunner(transport, VirtualScheduler())
            events = []
            outcome = await runner.generate(params, events.append)
            return outcome, events, transport, runner

        for params, message in cases:
            outcome, events, transport, runner = asyncio.run(run_test(params))
            self.assertEqual(outcome.kind, ErrorKind.VALIDATION, params)
            self.assertEqual(outcome.message, message)
            self.assertEqual(events, [outcome])
            self.assertEqual(transport.count(), 0)
            self.assertFalse(runner.processing)
            self.assertEqual(runner.epoch, 0)

    def test_stopped_model_is_rejected(self):
        async def run_test(model):
            transport = FakeTransport()
            runner = TtsJobRunner(transport, VirtualScheduler(), model_gate=lambda name: False)
            outcome = await runner.generate(TtsParams("Hello", "speaker.wav", model=model))
            return outcome, transport

        outcome, transport = asyncio.run(run_test("custom"))
        self.assertEqual(outcome.kind, ErrorKind.VALIDATION)
        self.assertEqual(transport.count(), 0)

        outcome, transport = asyncio.run(run_test("default"))
        self.assertIsInstance(outcome, Ok)
        self.assertEqual(transport.calls['generate_tts'][0]['model'], "")

    def test_remote_failure(self):
        async def run_test(result):
            transport = FakeTransport()
            transport.script('generate_tts', result)
            runner = TtsJobRunner(transport, VirtualScheduler())
            outcome = await runner.generate(TtsParams("Hello", "speaker.wav"))
            return outcome, runner

        outcome, runner = asyncio.run(run_test(ApiResult(1, msg="Voice file missing")))
        self.assertEqual(outcome.kind, ErrorKind.REMOTE_FAILURE)
        self.assertEqual(outcome.message, "Voice file missing")
        self.assertFalse(runner.processing)

        outcome, _ = asyncio.run(run_test(ApiResult(3)))
        self.assertEqual(outcome.message, "TTS generation failed")

    def test_transport_failure(self):
        async def run_test():
            transport = FakeTransport()
            transport.script('generate_tts', TransportError("connection refused"))
            runner = TtsJobRunner(transport, VirtualScheduler())
            outcome = await runner.generate(TtsParams("Hello", "speaker.wav"))
            return outcome, runner

        outcome, runner = asyncio.run(run_test())
        self.assertEqual(outcome.kind, ErrorKind.TRANSPORT_FAILURE)
        self.assertEqual(outcome.message, "Error: connection refused")
        self.assertFalse(runner.processing)
        self.assertTrue(runner.logger.get_error_logs())

    def test_response_after_cancel_is_discarded(self):
        async def run_test():
            scheduler = VirtualScheduler()
            transport = FakeTransport()
            transport.script('generate_tts', ApiResult(0, {'name': 'late.wav'}), ApiResult(0, {'name': 'next.wav'}))
            gate = transport.hold('generate_tts')
            runner = TtsJobRunner(transport, scheduler)
            events = []

            task = spawn(runner.generate(TtsParams("Hello", "speaker.wav"), events.append))
            await scheduler.advance(1)
            runner.cancel()
            processing_after_cancel = runner.processing

            follow_up = await runner.generate(TtsParams("Again", "speaker.wav"))
            gate.set_result(None)
            outcome = await task
            return events, outcome, follow_up, processing_after_cancel, runner

        events, outcome, follow_up, processing_after_cancel, runner = asyncio.run(run_test())
        self.assertFalse(processing_after_cancel)
        self.assertEqual(outcome.kind, ErrorKind.CANCELLED)
        self.assertEqual(events, [Pending(1)])
        self.assertEqual(follow_up, Ok({'name': 'next.wav'}))
        self.assertFalse(runner.processing)

    def test_callbacks_adapter(self):
        progress, completed, errors, notices = [], [], [], []
        listener = callbacks(
            on_progress=progress.append,
            on_complete=completed.append,
            on_error=errors.append,
            on_notice=notices.append
        )

        async def run_test():
            scheduler = VirtualScheduler()
            transport = FakeTransport()
            transport.script('generate_tts', ApiResult(0, {'name': 'out.wav'}))
            gate = transport.hold('generate_tts')
            runner = TtsJobRunner(transport, scheduler)
            task = spawn(runner.generate(TtsParams("Hello", "speaker.wav", speed="fast"), listener))
            await scheduler.advance(1)
            gate.set_result(None)
            await task
            await runner.generate(TtsParams("", "speaker.wav"), listener)

        asyncio.run(run_test())
        self.assertEqual(progress, [1])
        self.assertEqual(completed, [{'name': 'out.wav'}])
        self.assertEqual(errors, [MSG_TEXT_REQUIRED])
        self.assertEqual(notices, [MSG_SPEED_RANGE])


class TestStsRunner(unittest.TestCase):

    def test_missing_upload_is_rejected_immediately(self):
        async def run_test():
            transport = FakeTransport()
            runner = StsJobRunner(transport, VirtualScheduler())
            events = []
            outcome = await runner.generate(StsParams(voice="speaker.wav"), events.append)
            return outcome, events, transport, runner

        outcome, events, transport, runner = asyncio.run(run_test())
        self.assertEqual(outcome.kind, ErrorKind.VALIDATION)
        self.assertEqual(outcome.message, MSG_AUDIO_REQUIRED)
        self.assertEqual(events, [outcome])
        self.assertEqual(transport.count(), 0)
        self.assertFalse(runner.processing)

    def test_voice_checked_before_upload(self):
        async def run_test():
            runner = StsJobRunner(FakeTransport(), VirtualScheduler())
            return await runner.generate(StsParams(voice=""))

        self.assertEqual(asyncio.run(run_test()).message, MSG_VOICE_REQUIRED)

    def test_conversion_uses_uploaded_name(self):
        async def run_test():
            transport = FakeTransport()
            transport.script('generate_sts', ApiResult(0, {'name': 'converted.wav'}))
            runner = StsJobRunner(transport, VirtualScheduler())
            runner.set_uploaded_audio("upload-123.wav")
            outcome = await runner.generate(StsParams(voice="speaker.wav"))
            return outcome, transport

        outcome, transport = asyncio.run(run_test())
        self.assertEqual(outcome, Ok({'name': 'converted.wav'}))
        self.assertEqual(transport.calls['generate_sts'], [{'voice': 'speaker.wav', 'name': 'upload-123.wav'}])

    def test_remote_failure_message(self):
        async def run_test():
            transport = FakeTransport()
            transport.script('generate_sts', ApiResult(1))
            runner = StsJobRunner(transport, VirtualScheduler())
            runner.set_uploaded_audio("upload-123.wav")
            return await runner.generate(StsParams(voice="speaker.wav"))

        self.assertEqual(asyncio.run(run_test()).message, "STS conversion failed")

    def test_status_check_until_running(self):
        async def run_test():
            scheduler = VirtualScheduler()
            transport = FakeTransport()
            transport.script(
                'get_sts_status',
                ApiResult(0, msg='stop'),
                ApiResult(0, msg='stop'),
                ApiResult(0, msg='ok'),
            )
            runner = StsJobRunner(transport, scheduler)
            statuses = []
            session = runner.start_status_check(lambda running, msg: statuses.append((running, msg)))
            await scheduler.advance(60)
            return statuses, session, transport

        statuses, session, transport = asyncio.run(run_test())
        self.assertEqual(statuses, [(False, 'stop'), (False, 'stop'), (True, 'ok')])
        self.assertEqual(session.state, PollState.TERMINAL)
        self.assertEqual(transport.count('get_sts_status'), 3)

    def test_status_check_budget(self):
        async def run_test():
            scheduler = VirtualScheduler()
            transport = FakeTransport()
            transport.script('get_sts_status', ApiResult(0, msg='stop'))
            config = ClientConfig(sts_status_interval=5.0, sts_status_max_attempts=4)
            runner = StsJobRunner(transport, scheduler, config=config)
            session = runner.start_status_check()
            await scheduler.advance(300)
            return session, transport

        session, transport = asyncio.run(run_test())
        self.assertEqual(session.state, PollState.EXHAUSTED)
        self.assertEqual(transport.count('get_sts_status'), 4)

    def test_dispose_clears_upload_and_polling(self):
        async def run_test():
            scheduler = VirtualScheduler()
            transport = FakeTransport()
            transport.script('get_sts_status', ApiResult(0, msg='stop'))
            runner = StsJobRunner(transport, scheduler)
            runner.set_uploaded_audio("upload-123.wav")
            runner.start_status_check()
            await scheduler.advance(5)
            runner.dispose()
            checks = transport.count('get_sts_status')
            await scheduler.advance(50)
            return runner, checks, transport.count('get_sts_status')

        runner, checks, total = asyncio.run(run_test())
        self.assertIsNone(runner.get_uploaded_audio())
        self.assertFalse(runner.status_poller.active)
        self.assertEqual(runner.status_poller.attempts, 0)
        self.assertEqual(checks, 2)
        self.assertEqual(total, 2)


if __name__ == '__main__':
    unittest.main(verbosity=2)
