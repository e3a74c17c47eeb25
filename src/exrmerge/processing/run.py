"""
Batch dispatch for exrmerge.

`submit` groups the input into frame jobs and starts a fixed pool of worker
threads. Workers claim jobs through a shared cursor, so each job runs exactly
once, and report back only through progress counters and the error log of the
returned `RunHandle`. The caller polls the handle without blocking and calls
`release()` to join the workers.
"""

from __future__ import annotations

import multiprocessing
import threading
from collections.abc import Callable, Iterable

from ..config import MAX_WORKERS, PLACEHOLDER_CHAR, RESERVED_CORES, MergeRequest
from ..core.types import FrameJob, Progress
from ..output.logger import SimpleLogger
from .exr import Codec, OpenEXRCodec
from .jobs import build_jobs
from .merge import merge_frame

ProgressFn = Callable[["RunHandle"], None]


class AtomicCounter:
    """Thread-safe integer counter with fetch-and-add semantics."""

    def __init__(self, value: int = 0) -> None:
        self._lock = threading.Lock()
        self._value = value

    def fetch_add(self, amount: int = 1) -> int:
        """Add `amount` and return the value held before the addition."""
        with self._lock:
            previous = self._value
            self._value += amount
            return previous

    def load(self) -> int:
        with self._lock:
            return self._value


def resolve_worker_count(
    requested: int,
    cores: int | None = None,
    reserved: int = RESERVED_CORES,
    cap: int = MAX_WORKERS,
) -> int:
    """Pick the number of worker threads within the cap.

    A nonzero request is used up to `cap`. Otherwise all cores but `reserved`
    are used, never fewer than one and never more than `cap`.

    Raises:
        ValueError: If `requested` is negative
    """
    if requested < 0:
        raise ValueError(f"worker count must be >= 0, got {requested}")
    if requested:
        return min(requested, cap)
    if cores is None:
        cores = multiprocessing.cpu_count()
    return min(max(1, cores - reserved), cap)


class RunState:
    """State shared by the workers of one batch."""

    def __init__(
        self,
        jobs: list[FrameJob],
        output_template: str,
        workers: int,
        placeholder: str = PLACEHOLDER_CHAR,
        logger: SimpleLogger | None = None,
    ) -> None:
        self.jobs = jobs
        self.output_template = output_template
        self.workers = workers
        self.placeholder = placeholder
        self.num_files = sum(len(job) for job in jobs)
        self.logger = logger

        self.cursor = AtomicCounter()
        self.progress = AtomicCounter()
        self.workers_done = AtomicCounter()

        self._error_lock = threading.Lock()
        self._errors: list[str] = []

    def claim(self) -> FrameJob | None:
        """Claim the next unprocessed job, or None when all are taken."""
        index = self.cursor.fetch_add()
        if index >= len(self.jobs):
            return None
        return self.jobs[index]

    def advance(self) -> None:
        self.progress.fetch_add()

    def error(self, message: str) -> None:
        with self._error_lock:
            self._errors.append(message)
        if self.logger:
            self.logger.error(message)

    def error_count(self) -> int:
        with self._error_lock:
            return len(self._errors)

    def error_at(self, index: int) -> str | None:
        with self._error_lock:
            if 0 <= index < len(self._errors):
                return self._errors[index]
            return None

    def errors(self) -> list[str]:
        with self._error_lock:
            return list(self._errors)


class RunHandle:
    """Handle on a submitted batch.

    The progress callback, when given, is called with this handle after every
    job and once more when each worker exits. It runs on the worker threads and
    may be called from several of them at the same time.
    """

    def __init__(
        self,
        state: RunState,
        codec: Codec,
        progress_fn: ProgressFn | None = None,
    ) -> None:
        self.state = state
        self.codec = codec
        self.progress_fn = progress_fn
        self._threads = [
            threading.Thread(target=self._worker, name=f"exrmerge-worker-{i}")
            for i in range(state.workers)
        ]
        self._released = False

    @property
    def jobs(self) -> list[FrameJob]:
        return self.state.jobs

    @property
    def workers(self) -> int:
        return self.state.workers

    def start(self) -> None:
        for thread in self._threads:
            thread.start()

    def _notify(self) -> None:
        if self.progress_fn is None:
            return
        try:
            self.progress_fn(self)
        except Exception as ex:
            self.state.error(f"progress callback failed: {type(ex).__name__}: {ex}")

    def _worker(self) -> None:
        state = self.state
        try:
            while True:
                job = state.claim()
                if job is None:
                    break
                try:
                    merge_frame(job, state, self.codec, state.output_template, state.placeholder)
                except Exception as ex:
                    state.error(f"frame {job.label}: {type(ex).__name__}: {ex}")
                self._notify()
        finally:
            state.workers_done.fetch_add()
            self._notify()

    def poll(self) -> Progress:
        """Non-blocking progress snapshot."""
        state = self.state
        finished = state.workers_done.load() == state.workers
        return Progress(
            done=state.progress.load(),
            max=state.num_files + len(state.jobs),
            finished=finished,
        )

    def error_count(self) -> int:
        return self.state.error_count()

    def error_at(self, index: int) -> str | None:
        return self.state.error_at(index)

    def errors(self) -> list[str]:
        return self.state.errors()

    def release(self) -> None:
        """Block until every worker has exited. Safe to call more than once."""
        if self._released:
            return
        for thread in self._threads:
            if thread.ident is not None:
                thread.join()
        self._threads = []
        self._released = True

    def __enter__(self) -> RunHandle:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()


def submit(
    files: Iterable[tuple[str, Iterable[str]]],
    output_template: str,
    threads: int = 0,
    progress_fn: ProgressFn | None = None,
    codec: Codec | None = None,
    logger: SimpleLogger | None = None,
    placeholder: str = PLACEHOLDER_CHAR,
) -> RunHandle:
    """Start merging `files` in the background and return immediately.

    Args:
        files: (path, channel names) pairs; files sharing a frame number are merged.
        output_template: Output path with a placeholder run for the frame number.
        threads: Worker count, 0 to pick one from the CPU count.
        progress_fn: Called with the handle after each job and when each worker exits.
        codec: File-format collaborator, OpenEXRCodec by default.
        logger: Optional logger; recorded errors are also logged.
        placeholder: Placeholder character of the output template.

    Returns:
        RunHandle: Handle to poll, inspect and release.

    Raises:
        ValueError: If `threads` is negative
    """
    jobs = build_jobs(files)
    workers = resolve_worker_count(threads)
    state = RunState(jobs, output_template, workers, placeholder=placeholder, logger=logger)
    handle = RunHandle(state, codec or OpenEXRCodec(), progress_fn)
    if logger:
        logger.info(f"Merging {state.num_files} files into {len(jobs)} frames with {workers} workers")
    handle.start()
    return handle


def submit_request(request: MergeRequest, **kwargs) -> RunHandle:
    """Submit a validated MergeRequest."""
    return submit(request.entries(), request.output, request.threads, **kwargs)
