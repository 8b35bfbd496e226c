"""Runs external media tools with a deadline and cancellation."""

import logging
import os
import signal
import subprocess
import time
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence, Union

from hls_pipeline.stop_flag import StopFlag

POLL_INTERVAL = 0.5
TERMINATE_GRACE_PERIOD = 5.0


@dataclass
class ProcessResult:
    """Outcome of one external command."""
    command: List[str]
    returncode: Optional[int]
    stdout: str
    stderr: str
    elapsed: float
    timed_out: bool = False
    cancelled: bool = False
    launch_error: Optional[str] = None

    @property
    def success(self) -> bool:
        return (
            self.returncode == 0
            and not self.timed_out
            and not self.cancelled
            and self.launch_error is None
        )

    def describe_error(self) -> str:
        """Short human-readable reason for a failed run."""
        if self.launch_error:
            return f"could not start {self.command[0]}: {self.launch_error}"
        if self.cancelled:
            return "cancelled"
        if self.timed_out:
            return f"timed out after {self.elapsed:.1f}s"
        tail = self.stderr.strip()[-500:]
        return f"exit code {self.returncode}" + (f": {tail}" if tail else "")


def _terminate(proc: subprocess.Popen):
    """Stop the process and everything it spawned."""
    use_group = hasattr(os, "killpg")
    try:
        if use_group:
            os.killpg(proc.pid, signal.SIGTERM)
        else:
            proc.terminate()
    except ProcessLookupError:
        return

    try:
        proc.wait(timeout=TERMINATE_GRACE_PERIOD)
    except subprocess.TimeoutExpired:
        logging.warning(f"Process {proc.pid} ignored SIGTERM, killing")
        try:
            if use_group:
                os.killpg(proc.pid, signal.SIGKILL)
            else:
                proc.kill()
        except ProcessLookupError:
            pass


def run_process(
    command: Sequence[str],
    timeout: Optional[float] = None,
    stop_flag: Optional[StopFlag] = None,
    cwd: Optional[Union[str, Path]] = None,
) -> ProcessResult:
    """
    Run a command to completion, a timeout, or a stop request.

    The child is started in its own session so that expiry or cancellation
    terminates the whole process group.

    Args:
        command: Program and arguments
        timeout: Seconds before the process is terminated, None for no deadline
        stop_flag: Flag polled while the process runs
        cwd: Working directory for the child

    Returns:
        ProcessResult describing how the command ended
    """
    command = [str(part) for part in command]
    logging.debug(f"Running: {' '.join(command)}")
    start = time.monotonic()

    if stop_flag is not None and stop_flag.is_stop_requested():
        return ProcessResult(command, None, "", "", 0.0, cancelled=True)

    try:
        proc = subprocess.Popen(
            command,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            encoding="utf-8",
            errors="replace",
            cwd=str(cwd) if cwd is not None else None,
            start_new_session=hasattr(os, "killpg"),
        )
    except OSError as e:
        logging.error(f"Failed to launch {command[0]}: {e}")
        return ProcessResult(command, None, "", "", time.monotonic() - start, launch_error=str(e))

    timed_out = False
    cancelled = False
    while True:
        try:
            stdout, stderr = proc.communicate(timeout=POLL_INTERVAL)
            break
        except subprocess.TimeoutExpired:
            if stop_flag is not None and stop_flag.is_stop_requested():
                cancelled = True
            elif timeout is not None and time.monotonic() - start >= timeout:
                timed_out = True
            else:
                continue
            _terminate(proc)
            stdout, stderr = proc.communicate()
            break

    elapsed = time.monotonic() - start
    if timed_out:
        logging.error(f"{command[0]} timed out after {elapsed:.1f}s")
    elif cancelled:
        logging.warning(f"{command[0]} cancelled after {elapsed:.1f}s")

    return ProcessResult(
        command=command,
        returncode=proc.returncode,
        stdout=stdout or "",
        stderr=stderr or "",
        elapsed=elapsed,
        timed_out=timed_out,
        cancelled=cancelled,
    )
