"""
Executor: run one external program and capture its outcome.

Behavior:
- Spawn argv (no shell) with the caller's variables overlaid on os.environ
- Drain stderr and stdout on background threads before waiting
- Wait up to the timeout; a child still running afterwards is terminated
- Return an immutable ProcessResult; nothing is raised to the caller
"""

from __future__ import annotations

import logging
import os
import signal
import subprocess
import time
from typing import List, Mapping, Optional, Sequence

from .configuration import ConfigurationError, ExecutionConfig, load_config
from .models import FailureKind, ProcessResult
from .watcher import StreamWatcher
from ..utils.time_format import format_millis

logger = logging.getLogger(__name__)

# Exit code reserved for runs that could not be confirmed to have finished
FAILED_EXIT_CODE = -1

_POSIX = os.name == "posix"
_SIGKILL = getattr(signal, "SIGKILL", signal.SIGTERM)


def build_command(argv: Sequence[str]) -> str:
    """Display form of argv: every element followed by a single space."""
    return "".join(f"{a} " for a in argv)


def _elapsed_ms(start: float) -> int:
    return int((time.monotonic() - start) * 1000)


def _normalize_returncode(rc: int) -> int:
    # Popen reports death by signal N as -N; use the shell's 128+N instead
    return 128 - rc if rc < 0 else rc


def _describe(ex: BaseException) -> str:
    return f"{type(ex).__name__}: {ex}"


def _signal_group(proc: subprocess.Popen, sig: int) -> None:
    """Signal the child's session (the child and anything it left behind)."""
    if not _POSIX:
        # No process groups here; TerminateProcess on the child only
        if proc.poll() is None:
            proc.terminate()
        return
    try:
        os.killpg(proc.pid, sig)
    except ProcessLookupError:
        # group already empty
        pass
    except PermissionError as e:
        logger.warning("cannot signal process group %s: %s", proc.pid, e)


def _terminate(proc: subprocess.Popen, grace: float) -> None:
    """SIGTERM the child's group, then SIGKILL it if the child outlives the grace period."""
    if proc.poll() is not None:
        return
    _signal_group(proc, signal.SIGTERM)
    try:
        proc.wait(timeout=grace)
    except subprocess.TimeoutExpired:
        logger.warning("pid %s ignored SIGTERM for %.1fs; killing", proc.pid, grace)
        _signal_group(proc, _SIGKILL)
        proc.wait()


def _join_all(watchers: Sequence[Optional[StreamWatcher]], timeout: Optional[float]) -> List[StreamWatcher]:
    """Join watchers against one shared deadline; return those still running."""
    deadline = None if timeout is None else time.monotonic() + timeout
    for w in watchers:
        if w is None or not w.is_alive():
            continue
        w.join(timeout=None if deadline is None else max(0.0, deadline - time.monotonic()))
    return [w for w in watchers if w is not None and w.is_alive()]


def _drain(proc: subprocess.Popen, watchers: Sequence[Optional[StreamWatcher]], timeout: Optional[float]) -> None:
    """Wait for both readers to reach end of stream after the child is gone.

    A background process started by the child inherits the pipes; its
    session is killed so the readers see end of stream.
    """
    alive = _join_all(watchers, timeout)
    if not alive:
        return
    logger.warning(
        "%s still open after pid %s exited; killing its process group",
        ", ".join(w.name for w in alive), proc.pid,
    )
    _signal_group(proc, _SIGKILL)
    for w in _join_all(alive, timeout):
        logger.warning("%s did not exit within %ss; output may be truncated", w.name, timeout)


def execute(
    process: str,
    argv: Sequence[str],
    env: Optional[Mapping[str, str]] = None,
    optional: bool = False,
    timeout: Optional[float] = None,
    *,
    join_timeout: float = 5.0,
    kill_grace: float = 2.0,
) -> ProcessResult:
    """Run argv to completion (or timeout) and describe what happened.

    Args:
        process: label of the logical operation, used in logs and the result
        argv: executable followed by its literal arguments
        env: variables overlaid on the inherited environment
        optional: passed through; tells the caller a failure is not fatal
        timeout: seconds to wait for the child; None waits indefinitely
        join_timeout: seconds to wait for the reader threads once the child is gone
        kill_grace: seconds between SIGTERM and SIGKILL

    Returns:
        ProcessResult; failures are reported through exit_code -1 and
        the failure/error/exception fields.
    """
    if not isinstance(optional, bool):
        logger.warning("optional=%r for %s is not a bool; using %s", optional, process, bool(optional))
    process = str(process)
    optional = bool(optional)
    argv = [str(a) for a in argv]
    command = build_command(argv)
    logger.debug("START %s ################# ", process)
    logger.debug(command)

    exit_code = FAILED_EXIT_CODE
    out = ""
    error = ""
    exception: Optional[str] = None
    failure: Optional[FailureKind] = None

    proc: Optional[subprocess.Popen] = None
    err_watcher: Optional[StreamWatcher] = None
    out_watcher: Optional[StreamWatcher] = None
    drained = False
    start = time.monotonic()
    try:
        merged_env = dict(os.environ)
        merged_env.update({str(k): str(v) for k, v in (env or {}).items()})
        try:
            if not argv:
                raise ValueError("argv must contain at least the executable")
            proc = subprocess.Popen(
                argv,
                shell=False,
                env=merged_env,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                encoding="utf-8",
                errors="replace",
                # own process group, so leftovers can be signalled together
                start_new_session=_POSIX,
            )
        except (OSError, ValueError):
            failure = FailureKind.SPAWN_ERROR
            raise

        err_watcher = StreamWatcher(proc.stderr, name=f"{process}-stderr")
        out_watcher = StreamWatcher(proc.stdout, name=f"{process}-stdout")
        err_watcher.start()
        out_watcher.start()

        try:
            rc = proc.wait(timeout=timeout)
        except subprocess.TimeoutExpired:
            failure = FailureKind.TIMEOUT
            elapsed = _elapsed_ms(start)
            logger.error("%s still running after %ss; terminating pid %s", process, timeout, proc.pid)
            _terminate(proc, kill_grace)
            _drain(proc, (err_watcher, out_watcher), join_timeout)
            drained = True
            out = out_watcher.snapshot()
            error = (
                f"Timed out after {format_millis(elapsed)} of work; "
                f"process still running after {timeout}s"
            )
        else:
            # EOF on both pipes: everything the child wrote has been read
            _drain(proc, (err_watcher, out_watcher), join_timeout)
            drained = True
            exit_code = _normalize_returncode(rc)
            out = out_watcher.snapshot()
            error = err_watcher.snapshot()
    except Exception as ex:
        logger.error("execute %s", process, exc_info=True)
        failure = failure if failure is FailureKind.SPAWN_ERROR else FailureKind.UNEXPECTED
        exit_code = FAILED_EXIT_CODE
        error = f"Exception after {format_millis(_elapsed_ms(start))} of work; {ex}"
        exception = _describe(ex)
    finally:
        if proc is not None:
            for w in (err_watcher, out_watcher):
                if w is not None:
                    w.stop()
            _terminate(proc, kill_grace)
            if not drained:
                _drain(proc, (err_watcher, out_watcher), join_timeout)
            # A watcher still blocked in read keeps its pipe; it is a daemon thread
            for watcher, stream in ((err_watcher, proc.stderr), (out_watcher, proc.stdout)):
                if stream is not None and (watcher is None or not watcher.is_alive()):
                    stream.close()

    if failure is not None:
        exit_code = FAILED_EXIT_CODE
    result = ProcessResult(
        process=process,
        command=command,
        optional=optional,
        exit_code=exit_code,
        out=out,
        error=error,
        exception=exception,
        failure=failure,
        elapsed_ms=_elapsed_ms(start),
    )
    logger.debug("END %s ################# ", process)
    return result


def execute_script(
    process: str,
    argv: Sequence[str],
    optional: bool = False,
    *,
    env: Optional[Mapping[str, str]] = None,
    config: Optional[ExecutionConfig] = None,
) -> ProcessResult:
    """Run argv with limits taken from the execution configuration.

    ``execute_script(label, argv)`` and ``execute_script(label, argv, True)``
    cover the common cases; extra variables go in the keyword-only ``env``.
    An unreadable configuration is logged and the default limits are used instead.
    """
    if config is None:
        try:
            config = load_config()
        except ConfigurationError as e:
            logger.error("execution config unusable, using defaults: %s", e)
            config = ExecutionConfig()
    return execute(
        process,
        argv,
        env=env,
        optional=optional,
        timeout=config.timeout_seconds,
        join_timeout=config.join_timeout,
        kill_grace=config.kill_grace,
    )
