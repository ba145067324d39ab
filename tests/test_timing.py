#!/usr/bin/env python3
"""Tests for the ticker and the bounded poller, driven by a virtual clock."""

import sys
import os

# Add parent directory to path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

import unittest
import asyncio

from webspeech_client.jobs.models import PollState
from webspeech_client.jobs.poller import BoundedPoller
from webspeech_client.jobs.scheduler import VirtualScheduler
from webspeech_client.jobs.ticker import Ticker


class TestTicker(unittest.TestCase):

    def test_ticks_once_per_second_from_one(self):
        async def run_test():
            scheduler = VirtualScheduler()
            ticker = Ticker(scheduler)
            ticks = []
            ticker.start(ticks.append)
            await scheduler.advance(3)
            return ticks, ticker.elapsed

        ticks, elapsed = asyncio.run(run_test())
        self.assertEqual(ticks, [1, 2, 3])
        self.assertEqual(elapsed, 3)

    def test_stop_resets_and_silences(self):
        async def run_test():
            scheduler = VirtualScheduler()
            ticker = Ticker(scheduler)
            ticks = []
            ticker.start(ticks.append)
            await scheduler.advance(2)
            ticker.stop()
            elapsed = ticker.elapsed
            await scheduler.advance(5)
            ticker.stop()
            return ticks, elapsed, ticker.running, scheduler.pending

        ticks, elapsed, running, pending = asyncio.run(run_test())
        self.assertEqual(ticks, [1, 2])
        self.assertEqual(elapsed, 0)
        self.assertFalse(running)
        self.assertEqual(pending, 0)

    def test_restart_counts_from_one(self):
        async def run_test():
            scheduler = VirtualScheduler()
            ticker = Ticker(scheduler)
            first, second = [], []
            ticker.start(first.append)
            await scheduler.advance(2)
            ticker.start(second.append)
            await scheduler.advance(2)
            ticker.stop()
            return first, second

        first, second = asyncio.run(run_test())
        self.assertEqual(first, [1, 2])
        self.assertEqual(second, [1, 2])

    def test_stop_when_idle(self):
        ticker = Ticker(VirtualScheduler())
        ticker.stop()
        self.assertEqual(ticker.elapsed, 0)


class TestBoundedPoller(unittest.TestCase):

    def _counting_check(self, results=None):
        calls = []

        async def check():
            calls.append(len(calls) + 1)
            if results is not None:
                value = results[min(len(calls), len(results)) - 1]
                if isinstance(value, Exception):
                    raise value
                return value
            return 'waiting'

        return check, calls

    def test_budget_limits_attempts(self):
        async def run_test():
            scheduler = VirtualScheduler()
            poller = BoundedPoller(scheduler)
            check, calls = self._counting_check()
            statuses = []
            session = poller.start_polling(check, interval=1.0, max_attempts=3, on_status=statuses.append)
            await scheduler.advance(10)
            return calls, statuses, session, poller

        calls, statuses, session, poller = asyncio.run(run_test())
        self.assertEqual(len(calls), 3)
        self.assertEqual(len(statuses), 3)
        self.assertEqual(session.state, PollState.EXHAUSTED)
        self.assertFalse(poller.active)

    def test_first_check_is_immediate(self):
        async def run_test():
            scheduler = VirtualScheduler()
            poller = BoundedPoller(scheduler)
            check, calls = self._counting_check()
            poller.start_polling(check, interval=5.0)
            await scheduler.settle()
            first = len(calls)
            await scheduler.advance(4)
            before_interval = len(calls)
            await scheduler.advance(1)
            after_interval = len(calls)
            poller.stop_polling()
            return first, before_interval, after_interval

        self.assertEqual(asyncio.run(run_test()), (1, 1, 2))

    def test_terminal_status_ends_polling(self):
        async def run_test():
            scheduler = VirtualScheduler()
            poller = BoundedPoller(scheduler)
            check, calls = self._counting_check(['stop', 'stop', 'running'])
            statuses = []
            session = poller.start_polling(
                check,
                interval=5.0,
                max_attempts=60,
                on_status=statuses.append,
                is_terminal=lambda status: status == 'running'
            )
            await scheduler.advance(60)
            return calls, statuses, session

        calls, statuses, session = asyncio.run(run_test())
        self.assertEqual(len(calls), 3)
        self.assertEqual(statuses, ['stop', 'stop', 'running'])
        self.assertEqual(session.state, PollState.TERMINAL)

    def test_failed_check_counts_but_is_not_delivered(self):
        async def run_test():
            scheduler = VirtualScheduler()
            poller = BoundedPoller(scheduler)
            check, calls = self._counting_check([RuntimeError("unreachable"), 'waiting'])
            statuses = []
            poller.start_polling(check, interval=1.0, max_attempts=2, on_status=statuses.append)
            await scheduler.advance(5)
            return calls, statuses, poller.attempts

        calls, statuses, attempts = asyncio.run(run_test())
        self.assertEqual(len(calls), 2)
        self.assertEqual(statuses, ['waiting'])
        self.assertEqual(attempts, 2)

    def test_stop_twice_resets_attempts(self):
        async def run_test():
            scheduler = VirtualScheduler()
            poller = BoundedPoller(scheduler)
            check, calls = self._counting_check()
            session = poller.start_polling(check, interval=1.0)
            await scheduler.advance(2)
            poller.stop_polling()
            poller.stop_polling()
            checks_at_stop = len(calls)
            await scheduler.advance(10)
            return session, poller.attempts, checks_at_stop, len(calls)

        session, attempts, checks_at_stop, total = asyncio.run(run_test())
        self.assertEqual(session.state, PollState.CANCELLED)
        self.assertEqual(attempts, 0)
        self.assertEqual(checks_at_stop, 3)
        self.assertEqual(total, 3)

    def test_stop_when_idle(self):
        poller = BoundedPoller(VirtualScheduler())
        poller.stop_polling()
        self.assertEqual(poller.attempts, 0)
        self.assertFalse(poller.active)

    def test_new_session_replaces_old(self):
        async def run_test():
            scheduler = VirtualScheduler()
            poller = BoundedPoller(scheduler)
            first_check, first_calls = self._counting_check()
            second_check, second_calls = self._counting_check()
            first = poller.start_polling(first_check, interval=1.0)
            await scheduler.advance(1)
            poller.start_polling(second_check, interval=1.0)
            await scheduler.advance(2)
            poller.stop_polling()
            return first, first_calls, second_calls

        first, first_calls, second_calls = asyncio.run(run_test())
        self.assertEqual(first.state, PollState.CANCELLED)
        self.assertEqual(len(first_calls), 2)
        self.assertEqual(len(second_calls), 3)

    def test_failing_status_callback_keeps_polling(self):
        async def run_test(results, max_attempts):
            scheduler = VirtualScheduler()
            poller = BoundedPoller(scheduler)
            check, calls = self._counting_check(results)

            def on_status(status):
                raise RuntimeError("display gone")

            session = poller.start_polling(
                check,
                interval=5.0,
                max_attempts=max_attempts,
                on_status=on_status,
                is_terminal=lambda status: status == 'running'
            )
            await scheduler.advance(400)
            return session, calls, poller

        session, calls, poller = asyncio.run(run_test(['stop', 'stop', 'running'], 60))
        self.assertEqual(session.state, PollState.TERMINAL)
        self.assertEqual(len(calls), 3)
        self.assertFalse(poller.active)

        session, calls, poller = asyncio.run(run_test(['stop'], 4))
        self.assertEqual(session.state, PollState.EXHAUSTED)
        self.assertEqual(len(calls), 4)
        self.assertFalse(poller.active)

    def test_delay_first_waits_one_interval(self):
        async def run_test():
            scheduler = VirtualScheduler()
            poller = BoundedPoller(scheduler)
            check, calls = self._counting_check()
            poller.start_polling(check, interval=30.0, delay_first=True)
            await scheduler.advance(29)
            before = len(calls)
            await scheduler.advance(1)
            first = len(calls)
            await scheduler.advance(30)
            poller.stop_polling()
            return before, first, len(calls)

        self.assertEqual(asyncio.run(run_test()), (0, 1, 2))


if __name__ == '__main__':
    unittest.main(verbosity=2)
