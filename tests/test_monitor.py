"""Tests for the psutil-backed ProcessMonitor."""

import os
import subprocess
import sys
import time

import psutil
import pytest

from rpai import monitor as monitor_module
from rpai.errors import ExternalToolFailure
from rpai.models import ProcessMetrics, ProcessSnapshot
from rpai.monitor import ProcessMonitor


@pytest.fixture
def sleeper():
    """A short-lived child process."""
    child = subprocess.Popen([sys.executable, "-c", "import time; time.sleep(30)"])
    try:
        yield child
    finally:
        if child.poll() is None:
            child.kill()
        child.wait(timeout=5)


class TestProcessMonitor:
    """Tests for ProcessMonitor against the live process table."""

    def test_list_processes_returns_snapshots(self):
        processes = ProcessMonitor().list_processes()

        assert len(processes) > 0
        for proc in processes:
            assert isinstance(proc, ProcessSnapshot)
            assert isinstance(proc.short_name, str)
            assert proc.cpu_percent == 0.0

    def test_list_processes_includes_self_with_parent(self):
        processes = {p.pid: p for p in ProcessMonitor().list_processes()}

        me = processes[os.getpid()]
        assert me.parent_pid == os.getppid()
        assert me.full_command_line

    def test_relations_include_child(self, sleeper):
        relations = ProcessMonitor().relations()

        assert (sleeper.pid, os.getpid()) in relations

    def test_metrics_for_self(self):
        metrics = ProcessMonitor().metrics(os.getpid())

        assert isinstance(metrics, ProcessMetrics)
        assert metrics.memory_bytes > 0
        assert metrics.uptime_seconds >= 0
        assert metrics.working_dir == os.getcwd()

    def test_metrics_for_exited_process(self, sleeper):
        sleeper.kill()
        sleeper.wait(timeout=5)

        assert ProcessMonitor().metrics(sleeper.pid) is None

    def test_cwd_falls_back_to_lsof(self, monkeypatch):
        def denied(self):
            raise psutil.AccessDenied(pid=self.pid)

        monkeypatch.setattr(psutil.Process, "cwd", denied)
        monkeypatch.setattr(monitor_module, "_lsof_cwd", lambda pid: "/from/lsof")

        metrics = ProcessMonitor().metrics(os.getpid())

        assert metrics.working_dir == "/from/lsof"

    def test_cpu_usage_for_self_and_child(self, sleeper):
        monitor = ProcessMonitor(cpu_sample_interval=0.05)

        usage = monitor.cpu_usage([os.getpid(), sleeper.pid])

        assert set(usage) == {os.getpid(), sleeper.pid}
        cpu, command_line = usage[sleeper.pid]
        assert cpu >= 0.0
        assert "time.sleep" in command_line
        assert {os.getpid(), sleeper.pid} <= monitor.tracked_pids

    def test_cpu_usage_skips_missing_pid(self, sleeper):
        sleeper.kill()
        sleeper.wait(timeout=5)

        usage = ProcessMonitor(cpu_sample_interval=0).cpu_usage([sleeper.pid])

        assert usage == {}

    def test_cpu_usage_measures_busy_process(self):
        busy = subprocess.Popen([sys.executable, "-c", "while True: pass"])
        try:
            monitor = ProcessMonitor(cpu_sample_interval=0.2)
            monitor.cpu_usage([busy.pid])
            time.sleep(0.3)

            cpu, _ = monitor.cpu_usage([busy.pid])[busy.pid]

            assert cpu > 10.0
        finally:
            busy.kill()
            busy.wait(timeout=5)

    def test_tracked_pids_pruned(self, sleeper):
        monitor = ProcessMonitor(cpu_sample_interval=0)
        monitor.cpu_usage([sleeper.pid])
        sleeper.kill()
        sleeper.wait(timeout=5)

        monitor.list_processes()

        assert sleeper.pid not in monitor.tracked_pids

    def test_terminate(self, sleeper):
        ProcessMonitor().terminate(sleeper.pid)

        assert sleeper.wait(timeout=5) != 0

    def test_terminate_missing_process(self, sleeper):
        sleeper.kill()
        sleeper.wait(timeout=5)

        with pytest.raises(ExternalToolFailure):
            ProcessMonitor().terminate(sleeper.pid)


def test_lsof_cwd_parses_name_field(monkeypatch):
    def fake_run(cmd, **kwargs):
        return subprocess.CompletedProcess(cmd, 0, stdout="p123\nfcwd\nn/home/dev/repo\n", stderr="")

    monkeypatch.setattr(subprocess, "run", fake_run)

    assert monitor_module._lsof_cwd(123) == "/home/dev/repo"


def test_lsof_cwd_missing_tool(monkeypatch):
    def fake_run(cmd, **kwargs):
        raise FileNotFoundError("lsof")

    monkeypatch.setattr(subprocess, "run", fake_run)

    assert monitor_module._lsof_cwd(123) is None
