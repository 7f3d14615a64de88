# SPDX-License-Identifier: LGPL-3.0-or-later
import unittest
from unittest.mock import Mock

from fakes.fake_host import FakeServiceManager
from mntkeeper.maintenance.model import FailureTally, RunSnapshot, ServiceState
from mntkeeper.maintenance.service_control import ServiceController


def _snapshot(states):
    return RunSnapshot(list(states.items()))


class TestServiceController(unittest.TestCase):
    def setUp(self):
        self.logger = Mock()
        self.sleeps = []

    def _ctl(self, services, critical=()):
        return ServiceController(
            self.logger,
            services,
            critical=critical,
            stop_timeout=30,
            start_timeout=45,
            start_settle=2,
            sleep=self.sleeps.append,
        )

    def test_stop_all_reverse_order_active_only(self):
        svc = FakeServiceManager(["a", "c"], enabled=["a", "b", "c"])
        snap = _snapshot({"a": ServiceState.ACTIVE, "b": ServiceState.INACTIVE, "c": ServiceState.ACTIVE})

        attempted = self._ctl(svc).stop_all(snap)

        self.assertEqual(attempted, ["c", "a"])
        self.assertEqual(svc.stopped(), ["c", "a"])

    def test_stop_all_honours_cancel(self):
        svc = FakeServiceManager(["a", "b", "c"])
        snap = _snapshot({n: ServiceState.ACTIVE for n in "abc"})
        cancelled = iter([False, True])

        attempted = self._ctl(svc).stop_all(snap, cancel=lambda: next(cancelled))

        self.assertEqual(attempted, ["c"])

    def test_stop_one_kill_failure_is_not_fatal(self):
        svc = FakeServiceManager(["a"], stop_fail=["a"], kill_fail=["a"])

        self.assertFalse(self._ctl(svc).stop_one("a"))
        self.assertEqual(svc.calls, [("stop", "a"), ("kill", "a")])

    def test_start_one_settles_before_check(self):
        svc = FakeServiceManager([], enabled=["a"])

        res = self._ctl(svc).start_one("a")

        self.assertTrue(res.running)
        self.assertEqual(res.start_attempts, 1)
        self.assertEqual(self.sleeps, [2.0])

    def test_start_one_retries_once_after_reset_failed(self):
        svc = FakeServiceManager([], enabled=["a"], start_failures={"a": 5})

        res = self._ctl(svc).start_one("a")

        self.assertFalse(res.running)
        self.assertEqual(res.start_attempts, 2)
        self.assertEqual(svc.calls, [("start", "a"), ("reset-failed", "a"), ("start", "a")])

    def test_restore_all_tallies_only_critical(self):
        svc = FakeServiceManager([], enabled=["a", "b"], never_active=["a", "b"])
        snap = _snapshot({"a": ServiceState.ACTIVE, "b": ServiceState.ACTIVE})
        tally = FailureTally()

        results = self._ctl(svc, critical=["b"]).restore_all(snap, tally)

        self.assertEqual([r.name for r in results], ["a", "b"])
        self.assertEqual(tally.failed, ["b"])

    def test_verify_critical_never_double_counts(self):
        svc = FakeServiceManager([], enabled=["a"], never_active=["a"])
        ctl = self._ctl(svc, critical=["a"])
        snap = _snapshot({"a": ServiceState.ACTIVE})
        tally = FailureTally()

        results = ctl.restore_all(snap, tally)
        died = ctl.verify_critical(results, tally)

        self.assertEqual(died, [])
        self.assertEqual(tally.count, 1)

    def test_verify_critical_catches_late_death(self):
        svc = FakeServiceManager([], enabled=["a"], dies_after_checks={"a": 1})
        ctl = self._ctl(svc, critical=["a"])
        tally = FailureTally()

        results = ctl.restore_all(_snapshot({"a": ServiceState.ACTIVE}), tally)
        self.assertEqual(tally.count, 0)

        died = ctl.verify_critical(results, tally)

        self.assertEqual(died, ["a"])
        self.assertEqual(tally.failed, ["a"])
        self.assertFalse(results[0].running)


if __name__ == "__main__":
    unittest.main()
