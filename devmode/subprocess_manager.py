"""
Subprocess management for external tool invocations.

Every wash/make call goes through here so that the processes still running at
shutdown (detached actor builds in particular) can be terminated.
"""
import contextlib
import os
import subprocess
import threading
from typing import Any, Dict, List, Optional

from devmode.dev_core.config import LOGGER as logger
from devmode.logger import safe_float

# Global registry to track active subprocess processes
_ACTIVE_PROCESSES: Dict[int, subprocess.Popen] = {}
_PROCESS_LOCK = threading.Lock()
_PROCESS_COUNTER = 0


def _default_timeout() -> float:
    return safe_float(
        os.environ.get("SUBPROCESS_DEFAULT_TIMEOUT"), 600.0, logger=logger, context="SUBPROCESS_DEFAULT_TIMEOUT"
    )


class SubprocessManager:
    """Context manager for subprocess lifecycle management."""

    def __init__(
        self,
        timeout: Optional[float] = None,
        env: Optional[Dict[str, str]] = None,
        cwd: Optional[str] = None,
    ):
        self.timeout = timeout
        self.env = env
        self.cwd = cwd
        self.process: Optional[subprocess.Popen] = None
        self._id: Optional[int] = None

    def __enter__(self):
        return self

    def run_sync(self, cmd: List[str]) -> Dict[str, Any]:
        """Run a command to completion and capture its output.

        Never raises: launch failures and timeouts are reported through the
        returned dict as ``ok=False`` with a negative ``code``.
        """
        global _PROCESS_COUNTER

        with _PROCESS_LOCK:
            _PROCESS_COUNTER += 1
            self._id = _PROCESS_COUNTER

        eff_timeout = self.timeout if self.timeout is not None else _default_timeout()
        env = {**os.environ, **self.env} if self.env else None

        try:
            self.process = subprocess.Popen(
                cmd,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                env=env,
                cwd=self.cwd,
            )
        except (OSError, ValueError) as e:
            logger.error(f"Failed to run subprocess {self._id} ({cmd[0]}): {e}")
            self._id = None
            return {"ok": False, "code": -2, "stdout": "", "stderr": str(e)}

        with _PROCESS_LOCK:
            _ACTIVE_PROCESSES[self._id] = self.process

        try:
            stdout, stderr = self.process.communicate(timeout=eff_timeout)
            return {
                "ok": self.process.returncode == 0,
                "code": self.process.returncode,
                "stdout": stdout.decode("utf-8", errors="ignore") if stdout else "",
                "stderr": stderr.decode("utf-8", errors="ignore") if stderr else "",
            }
        except subprocess.TimeoutExpired:
            logger.warning(f"Subprocess {self._id} timed out after {eff_timeout}s, terminating")
            with contextlib.suppress(OSError):
                self.process.kill()
            return {
                "ok": False,
                "code": -1,
                "stdout": "",
                "stderr": f"Command timed out after {eff_timeout}s",
            }
        finally:
            self._cleanup_sync()

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self.process is not None:
            try:
                self._cleanup_sync()
            except Exception as e:
                logger.error(f"Error during subprocess cleanup: {e}")

    def _cleanup_sync(self):
        if self.process is None:
            return
        try:
            if self.process.stdout:
                self.process.stdout.close()
            if self.process.stderr:
                self.process.stderr.close()

            if self.process.poll() is None:
                self.process.terminate()
                try:
                    self.process.wait(timeout=5)
                except subprocess.TimeoutExpired:
                    self.process.kill()

            with contextlib.suppress(Exception):
                self.process.wait()

            with _PROCESS_LOCK:
                _ACTIVE_PROCESSES.pop(self._id, None)
        except OSError as e:
            logger.error(f"Error during subprocess sync cleanup: {e}")
        finally:
            self.process = None
            self._id = None


def get_active_processes() -> Dict[int, str]:
    """Get information about currently active subprocess processes."""
    with _PROCESS_LOCK:
        info = {}
        for pid, proc in _ACTIVE_PROCESSES.items():
            try:
                args = ' '.join(proc.args) if isinstance(proc.args, (list, tuple)) else str(proc.args)
            except TypeError:
                args = 'unknown'
            status = 'running' if proc.poll() is None else f"returncode: {proc.returncode}"
            info[pid] = f"cmd: {args}, status: {status}"
        return info


def cleanup_all_processes() -> int:
    """Terminate every tracked subprocess. Returns how many were still running."""
    terminated = 0
    with _PROCESS_LOCK:
        for pid, proc in list(_ACTIVE_PROCESSES.items()):
            try:
                if proc.poll() is None:
                    terminated += 1
                    proc.terminate()
                    try:
                        proc.wait(timeout=5)
                    except subprocess.TimeoutExpired:
                        proc.kill()

                with contextlib.suppress(Exception):
                    proc.wait()
            except OSError as e:
                logger.error(f"Error cleaning up process {pid}: {e}")

        _ACTIVE_PROCESSES.clear()
    return terminated


def run_subprocess_sync(
    cmd: List[str],
    timeout: Optional[float] = None,
    env: Optional[Dict[str, str]] = None,
    cwd: Optional[str] = None,
) -> Dict[str, Any]:
    """Convenience function to run subprocess synchronously with proper cleanup."""
    with SubprocessManager(timeout=timeout, env=env, cwd=cwd) as manager:
        return manager.run_sync(cmd)
