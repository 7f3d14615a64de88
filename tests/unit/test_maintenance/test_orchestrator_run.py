# SPDX-License-Identifier: LGPL-3.0-or-later
import json
import logging
import signal
import tempfile
import unittest
from pathlib import Path

import pytest

from fakes.fake_host import disk_entry, make_host
from mntkeeper.config.settings import DEFAULT_FALLBACK_OPTIONS, MaintenanceConfig
from mntkeeper.maintenance.orchestrator import MaintenanceRun
from mntkeeper.maintenance.recovery import ExitCode, InterruptFlag, RunState


def _ops(host, *names):
    return [c for c in host.services.calls if c[0] in names]


@pytest.mark.unit
class MaintenanceRunTestBase(unittest.TestCase):
    SERVICES = ("a", "b", "c")

    def setUp(self):
        self._td = tempfile.TemporaryDirectory()
        self.log_dir = self._td.name
        self.logger = logging.getLogger("mntkeeper.test.run")
        self.interrupt = InterruptFlag(self.logger)

    def tearDown(self):
        self._td.cleanup()

    def config(self, **kw):
        base = dict(
            target="/tmp",
            services=self.SERVICES,
            critical_services=("a",),
            log_dir=self.log_dir,
        )
        base.update(kw)
        return MaintenanceConfig(**base)

    def run_with(self, host, *, log_file=None, **cfg):
        run = MaintenanceRun(
            self.logger,
            self.config(**cfg),
            host,
            interrupt=self.interrupt,
            sleep=lambda _s: None,
            log_file=log_file,
        )
        rc = run.run()
        self.assertIs(run.controller.state, RunState.DONE)
        return rc, run


class TestHappyPath(MaintenanceRunTestBase):
    def test_full_cycle_order(self):
        """Stop in reverse, release, check, remount, start in forward order."""
        host = make_host(active=self.SERVICES, entry=disk_entry())

        rc, _run = self.run_with(host)

        self.assertEqual(rc, ExitCode.OK)
        self.assertEqual(host.services.stopped(), ["c", "b", "a"])
        self.assertEqual(host.services.started(), ["a", "b", "c"])

        ops = [c[0] for c in host.services.calls]
        self.assertEqual(
            ops,
            ["resolve", "stop", "stop", "stop", "umount", "fsck", "mount", "mountpoint", "start", "start", "start"],
        )

    def test_fsck_and_mount_arguments(self):
        host = make_host(active=("a",), entry=disk_entry("/dev/sdb1", "ext4", "rw,nosuid,nodev,relatime"))

        self.run_with(host)

        (fsck,) = _ops(host, "fsck")
        self.assertEqual(fsck[1], ["e2fsck", "-f", "-y", "/dev/sdb1"])
        (mount,) = _ops(host, "mount")
        self.assertEqual(mount, ("mount", "/tmp", "/dev/sdb1", "ext4", "defaults,data=writeback,barrier=0,nosuid,nodev"))

    def test_only_active_services_are_touched(self):
        host = make_host(active=("a", "c"), enabled=("a", "b", "c"), entry=disk_entry())

        rc, run = self.run_with(host)

        self.assertEqual(rc, ExitCode.OK)
        self.assertEqual(host.services.stopped(), ["c", "a"])
        self.assertEqual(host.services.started(), ["a", "c"])
        self.assertEqual(run.controller.snapshot.to_dict(), {"a": "active", "b": "inactive", "c": "active"})

    def test_service_state_query_error_means_untouched(self):
        host = make_host(active=("a", "b"), entry=disk_entry(), query_errors=("b",))

        rc, _run = self.run_with(host)

        self.assertEqual(rc, ExitCode.OK)
        self.assertNotIn("b", host.services.stopped())
        self.assertNotIn("b", host.services.started())


class TestSkippedMaintenance(MaintenanceRunTestBase):
    def test_memory_backed_skips_check_and_remount(self):
        host = make_host(active=self.SERVICES, entry=disk_entry("tmpfs", "tmpfs", "rw,nosuid,nodev"))

        rc, run = self.run_with(host)

        self.assertEqual(rc, ExitCode.OK)
        self.assertEqual(_ops(host, "umount", "umount-f", "fsck", "mount", "mount-fallback"), [])
        self.assertEqual(host.services.stopped(), [])
        self.assertEqual(host.services.started(), ["a", "b", "c"])
        self.assertEqual(run.report.classification, "memory-backed")

    def test_not_a_mount_point_skips_check_and_remount(self):
        host = make_host(active=self.SERVICES, entry=None)

        rc, run = self.run_with(host)

        self.assertEqual(rc, ExitCode.OK)
        self.assertEqual(_ops(host, "umount", "fsck", "mount"), [])
        self.assertEqual(host.services.started(), ["a", "b", "c"])
        self.assertEqual(run.report.classification, "standalone-not-mounted")

    def test_mount_table_unreadable_is_fatal_but_restores(self):
        host = make_host(active=self.SERVICES, entry=disk_entry())
        host.mount_table.error = True

        rc, _run = self.run_with(host)

        self.assertEqual(rc, ExitCode.FATAL)
        self.assertEqual(host.services.started(), ["a", "b", "c"])


class TestCheckOutcomes(MaintenanceRunTestBase):
    def test_critical_fsck_failure_never_remounts(self):
        host = make_host(active=self.SERVICES, entry=disk_entry(), fsck_code=8)

        rc, run = self.run_with(host)

        self.assertEqual(rc, ExitCode.FATAL)
        self.assertEqual(_ops(host, "mount", "mount-fallback"), [])
        self.assertEqual(host.services.started(), ["a", "b", "c"])
        self.assertEqual(run.report.check_outcome, "critical-failure(8)")

    def test_fsck_that_could_not_run_is_critical(self):
        host = make_host(active=("a",), entry=disk_entry(), fsck_code=None)

        rc, _run = self.run_with(host)

        self.assertEqual(rc, ExitCode.FATAL)
        self.assertEqual(_ops(host, "mount"), [])
        self.assertEqual(host.services.started(), ["a"])

    def test_missing_checker_aborts_before_anything_is_stopped(self):
        host = make_host(active=self.SERVICES, entry=disk_entry(fstype="xfs"))
        host.fsck.missing = {"xfs_repair"}

        rc, run = self.run_with(host)

        self.assertEqual(rc, ExitCode.FATAL)
        self.assertEqual(host.services.stopped(), [])
        self.assertEqual(_ops(host, "umount", "umount-f", "fsck", "mount"), [])
        self.assertIn("No filesystem checker for xfs", run.report.error)

    def test_repaired_filesystem_is_success(self):
        host = make_host(active=("a",), entry=disk_entry(), fsck_code=1)

        rc, _run = self.run_with(host)

        self.assertEqual(rc, ExitCode.OK)

    def test_reboot_recommended_exit_code(self):
        host = make_host(active=("a",), entry=disk_entry(), fsck_code=2)

        rc, run = self.run_with(host)

        self.assertEqual(rc, ExitCode.REBOOT_ADVISED)
        self.assertEqual(len(_ops(host, "mount")), 1)
        self.assertEqual(run.controller.outcome_label(), "success (reboot recommended)")

    def test_xfs_uses_its_own_code_table(self):
        host = make_host(active=("a",), entry=disk_entry("/dev/sdc1", "xfs", "rw"), fsck_code=1)

        rc, _run = self.run_with(host)

        (fsck,) = _ops(host, "fsck")
        self.assertEqual(fsck[1], ["xfs_repair", "/dev/sdc1"])
        self.assertEqual(rc, ExitCode.FATAL)


class TestRemountFallback(MaintenanceRunTestBase):
    def test_fallback_is_degraded_not_failed(self):
        host = make_host(active=self.SERVICES, entry=disk_entry())
        host.mounter.mount_ok = False

        rc, run = self.run_with(host)

        self.assertEqual(rc, ExitCode.DEGRADED)
        (fallback,) = _ops(host, "mount-fallback")
        self.assertEqual(fallback, ("mount-fallback", "/tmp", DEFAULT_FALLBACK_OPTIONS))
        self.assertEqual(run.report.mount_outcome, "degraded")
        self.assertEqual(host.services.started(), ["a", "b", "c"])

    def test_fallback_failure_is_fatal(self):
        host = make_host(active=self.SERVICES, entry=disk_entry())
        host.mounter.mount_ok = False
        host.mounter.fallback_ok = False

        rc, _run = self.run_with(host)

        self.assertEqual(rc, ExitCode.FATAL)
        self.assertEqual(host.services.started(), ["a", "b", "c"])

    def test_failed_verification_is_fatal(self):
        host = make_host(active=("a",), entry=disk_entry())
        host.mounter.verify_ok = False

        rc, _run = self.run_with(host)

        self.assertEqual(rc, ExitCode.FATAL)
        self.assertEqual(host.services.started(), ["a"])


class TestBusyMount(MaintenanceRunTestBase):
    def test_busy_mount_escalates_to_force(self):
        host = make_host(active=("a",), entry=disk_entry())
        host.mounter.unmount_results = [False, False, True]
        host.holders.pids = [4242]

        rc, _run = self.run_with(host)

        self.assertEqual(rc, ExitCode.OK)
        self.assertEqual(
            [c[0] for c in _ops(host, "umount", "umount-f", "signal")],
            ["umount", "signal", "umount", "umount-f"],
        )

    def test_unmount_impossible_aborts_before_check(self):
        host = make_host(active=self.SERVICES, entry=disk_entry())
        host.mounter.unmount_results = [False, False, False]

        rc, run = self.run_with(host)

        self.assertEqual(rc, ExitCode.FATAL)
        self.assertEqual(_ops(host, "fsck", "mount"), [])
        self.assertEqual(host.services.started(), ["a", "b", "c"])
        self.assertIn("Cannot unmount /tmp", run.report.error)


class TestInterrupts(MaintenanceRunTestBase):
    def test_interrupt_while_stopping_restores_everything(self):
        host = make_host(active=self.SERVICES, entry=disk_entry())
        host.services.on_stop = lambda name: self.interrupt.set(signal.SIGINT)

        rc, run = self.run_with(host)

        self.assertEqual(rc, ExitCode.INTERRUPTED)
        # Cancelled after the first stop.
        self.assertEqual(host.services.stopped(), ["c"])
        self.assertEqual(_ops(host, "umount", "fsck", "mount"), [])
        self.assertEqual(host.services.started(), ["a", "b", "c"])
        self.assertTrue(run.controller.interrupted)

    def test_interrupt_while_repairing_finishes_remount_first(self):
        host = make_host(active=self.SERVICES, entry=disk_entry())
        host.fsck.on_check = lambda argv: self.interrupt.set(signal.SIGTERM)

        rc, run = self.run_with(host)

        self.assertEqual(rc, ExitCode.INTERRUPTED)
        self.assertEqual(len(_ops(host, "mount")), 1)
        self.assertEqual(host.services.started(), ["a", "b", "c"])
        self.assertEqual(run.report.error, "interrupted by SIGTERM")

    def test_interrupt_during_unmount_skips_fsck_but_remounts(self):
        host = make_host(active=self.SERVICES, entry=disk_entry())
        unmount = host.mounter.unmount

        def unmount_then_interrupt(path, *, force=False):
            self.interrupt.set(signal.SIGINT)
            return unmount(path, force=force)

        host.mounter.unmount = unmount_then_interrupt

        rc, run = self.run_with(host)

        self.assertEqual(rc, ExitCode.INTERRUPTED)
        self.assertEqual(_ops(host, "fsck"), [])
        self.assertEqual(len(_ops(host, "mount")), 1)
        self.assertEqual(host.services.started(), ["a", "b", "c"])
        self.assertIsNone(run.report.check_outcome)

    def test_interrupt_during_restore_does_not_cut_it_short(self):
        host = make_host(active=self.SERVICES, entry=disk_entry())
        host.services.on_start = lambda name: self.interrupt.set(signal.SIGINT)

        rc, _run = self.run_with(host)

        self.assertEqual(rc, ExitCode.INTERRUPTED)
        self.assertEqual(host.services.started(), ["a", "b", "c"])

    def test_unexpected_error_still_restores(self):
        host = make_host(active=self.SERVICES, entry=disk_entry())

        def boom(argv):
            raise RuntimeError("checker exploded")

        host.fsck.on_check = boom

        rc, run = self.run_with(host)

        self.assertEqual(rc, ExitCode.FATAL)
        self.assertEqual(host.services.started(), ["a", "b", "c"])
        self.assertIsInstance(run.controller.fatal, RuntimeError)


class TestServiceFailures(MaintenanceRunTestBase):
    def test_non_critical_failure_keeps_success(self):
        host = make_host(active=self.SERVICES, entry=disk_entry(), start_failures={"c": 2})

        rc, run = self.run_with(host)

        self.assertEqual(rc, ExitCode.OK)
        self.assertEqual(run.controller.tally.count, 0)
        # One retry after reset-failed, never more.
        self.assertEqual(host.services.started().count("c"), 2)

    def test_critical_failure_sets_services_failed(self):
        host = make_host(active=self.SERVICES, entry=disk_entry(), never_active=("a",))

        rc, run = self.run_with(host)

        self.assertEqual(rc, ExitCode.SERVICES_FAILED)
        self.assertEqual(run.controller.tally.failed, ["a"])
        # Later services still get their start.
        self.assertEqual(host.services.started(), ["a", "b", "c"])

    def test_critical_retry_success(self):
        host = make_host(active=self.SERVICES, entry=disk_entry(), start_failures={"a": 1})

        rc, _run = self.run_with(host)

        self.assertEqual(rc, ExitCode.OK)
        self.assertIn(("reset-failed", "a"), host.services.calls)

    def test_critical_dies_after_restore_counted_once(self):
        host = make_host(active=self.SERVICES, entry=disk_entry(), dies_after_checks={"a": 1})

        rc, run = self.run_with(host)

        self.assertEqual(rc, ExitCode.SERVICES_FAILED)
        self.assertEqual(run.controller.tally.failed, ["a"])

    def test_stop_escalates_to_kill(self):
        host = make_host(active=("a",), entry=disk_entry(), stop_fail=("a",))

        rc, _run = self.run_with(host)

        self.assertEqual(rc, ExitCode.OK)
        self.assertEqual([c for c in host.services.calls if c[0] in ("stop", "kill")], [("stop", "a"), ("kill", "a")])


class TestRunReport(MaintenanceRunTestBase):
    def test_report_written_next_to_log(self):
        host = make_host(active=("a",), entry=disk_entry())
        log_file = Path(self.log_dir) / "mntkeeper_20260101_000000.log"

        rc, _run = self.run_with(host, log_file=log_file)

        data = json.loads(log_file.with_suffix(".json").read_text(encoding="utf-8"))
        self.assertEqual(rc, ExitCode.OK)
        self.assertEqual(data["status"], "success")
        self.assertEqual(data["exit_code"], 0)
        self.assertEqual(data["classification"], "disk-backed")
        self.assertEqual(data["check_outcome"], "clean")
        self.assertEqual(data["services"][0]["name"], "a")

    def test_no_report_when_disabled(self):
        host = make_host(active=("a",), entry=disk_entry())
        log_file = Path(self.log_dir) / "mntkeeper_20260101_000000.log"

        self.run_with(host, log_file=log_file, report=False)

        self.assertFalse(log_file.with_suffix(".json").exists())


if __name__ == "__main__":
    unittest.main()
