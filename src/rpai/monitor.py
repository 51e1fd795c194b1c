"""Process table access for rpai."""

import logging
import subprocess
import time
from collections.abc import Iterable

import psutil

from rpai.errors import ExternalToolFailure
from rpai.models import ProcessMetrics, ProcessSnapshot

logger = logging.getLogger(__name__)

LSOF_TIMEOUT = 5.0


def _lsof_cwd(pid: int) -> str | None:
    """Look up a process's cwd in its file-descriptor table via lsof."""
    try:
        result = subprocess.run(
            ["lsof", "-a", "-p", str(pid), "-d", "cwd", "-Fn"],
            capture_output=True,
            text=True,
            timeout=LSOF_TIMEOUT,
        )
    except (subprocess.SubprocessError, OSError) as exc:
        logger.debug("lsof cwd lookup for %d failed: %s", pid, exc)
        return None

    for line in result.stdout.splitlines():
        # -F output: one field per line, 'n' prefixes the name column
        if line.startswith("n") and len(line) > 1:
            return line[1:]
    return None


class ProcessMonitor:
    """
    Snapshot source backed by psutil.

    Every call queries the live process table; nothing here is cached between
    scans except psutil handles, which ``cpu_percent`` needs as a baseline.
    Handles AccessDenied, ZombieProcess and NoSuchProcess by skipping the
    affected process.
    """

    def __init__(self, cpu_sample_interval: float = 0.1) -> None:
        """
        Initialize the ProcessMonitor.

        Args:
            cpu_sample_interval: How long to wait before reading CPU usage of
                processes seen for the first time (seconds). Default 0.1s.
        """
        self._cpu_sample_interval = max(0.0, cpu_sample_interval)
        self._tracked: dict[int, psutil.Process] = {}

    @property
    def tracked_pids(self) -> set[int]:
        """Pids holding a CPU baseline."""
        return set(self._tracked)

    def list_processes(self) -> list[ProcessSnapshot]:
        """
        Enumerate all visible processes.

        Only identity fields are filled in; metrics are fetched per pid via
        ``metrics`` and ``cpu_usage``.
        """
        processes: list[ProcessSnapshot] = []

        try:
            for proc in psutil.process_iter(attrs=["pid", "ppid", "name", "cmdline"]):
                info = proc.info
                cmdline = info.get("cmdline") or []
                processes.append(
                    ProcessSnapshot(
                        pid=info["pid"],
                        parent_pid=info.get("ppid") or 0,
                        short_name=info.get("name") or "",
                        full_command_line=" ".join(cmdline) if cmdline else None,
                    )
                )
        except (psutil.Error, OSError) as exc:
            logger.warning("Process enumeration failed: %s", exc)
            return []

        live = {p.pid for p in processes}
        self._tracked = {pid: proc for pid, proc in self._tracked.items() if pid in live}
        return processes

    def relations(self) -> list[tuple[int, int]]:
        """Fresh ``(pid, parent_pid)`` pairs for the whole process table."""
        pairs: list[tuple[int, int]] = []
        try:
            for proc in psutil.process_iter(attrs=["pid", "ppid"]):
                pairs.append((proc.info["pid"], proc.info.get("ppid") or 0))
        except (psutil.Error, OSError) as exc:
            logger.warning("Process relation query failed: %s", exc)
            return []
        return pairs

    def cpu_usage(self, pids: Iterable[int]) -> dict[int, tuple[float, str]]:
        """
        CPU percent and command line for exactly the given pids.

        Processes without a baseline are primed first and read after
        ``cpu_sample_interval``; vanished or inaccessible pids are omitted.
        """
        wanted = list(dict.fromkeys(pids))
        primed = False

        for pid in wanted:
            proc = self._tracked.get(pid)
            try:
                if proc is not None and proc.is_running():
                    continue
                proc = psutil.Process(pid)
                proc.cpu_percent(interval=None)
                self._tracked[pid] = proc
                primed = True
            except (psutil.NoSuchProcess, psutil.AccessDenied, psutil.ZombieProcess):
                self._tracked.pop(pid, None)

        if primed and self._cpu_sample_interval > 0:
            time.sleep(self._cpu_sample_interval)

        usage: dict[int, tuple[float, str]] = {}
        for pid in wanted:
            proc = self._tracked.get(pid)
            if proc is None:
                continue
            try:
                with proc.oneshot():
                    cpu = proc.cpu_percent(interval=None)
                    cmdline = proc.cmdline()
                    command_line = " ".join(cmdline) if cmdline else proc.name()
                usage[pid] = (cpu, command_line)
            except (psutil.NoSuchProcess, psutil.AccessDenied, psutil.ZombieProcess):
                continue

        return usage

    def metrics(self, pid: int) -> ProcessMetrics | None:
        """
        Memory, uptime and working directory for one pid.

        Returns None if the process exited or cannot be inspected at all.
        The working directory alone may be missing.
        """
        try:
            proc = psutil.Process(pid)
            with proc.oneshot():
                memory_bytes = proc.memory_info().rss
                created = proc.create_time()
                try:
                    working_dir = proc.cwd() or None
                except psutil.AccessDenied:
                    working_dir = _lsof_cwd(pid)
        except (psutil.NoSuchProcess, psutil.AccessDenied, psutil.ZombieProcess) as exc:
            logger.debug("Metrics for %d unavailable: %s", pid, exc)
            return None

        return ProcessMetrics(
            memory_bytes=memory_bytes,
            working_dir=working_dir,
            uptime_seconds=max(0, int(time.time() - created)),
        )

    def terminate(self, pid: int) -> None:
        """Send SIGTERM to pid."""
        try:
            psutil.Process(pid).terminate()
        except psutil.NoSuchProcess as exc:
            raise ExternalToolFailure(f"PID {pid} no longer exists") from exc
        except psutil.AccessDenied as exc:
            raise ExternalToolFailure(f"Permission denied signalling PID {pid}") from exc
        logger.info("Sent SIGTERM to %d", pid)
