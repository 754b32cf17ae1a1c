"""Concurrent, fault-tolerant reference-base resolution.

Residual rows are split into contiguous chunks. Worker threads pull chunk
indices from a shared queue, fetch the bases for the chunk's regions in one
sequence-tool call and write them into the chunk's result slots.

Failure handling per chunk:
- ResourceExhaustedError: the host could not start the tool. The chunk goes
  back to the queue after a linear backoff, up to ``max_attempts`` dispatches.
- SequenceToolError: the chunk is abandoned and its slots stay empty.

Workers exit once the queue is empty and no chunk is in flight, so a chunk
requeued by the last busy worker is still picked up.
"""

import logging
import threading
import time
from collections import deque
from collections.abc import Iterable
from dataclasses import dataclass, field

from rich.console import Console
from rich.progress import (
    BarColumn,
    Progress,
    SpinnerColumn,
    TaskID,
    TaskProgressColumn,
    TextColumn,
    TimeElapsedColumn,
)

from gwas_harmonizer.config import DEFAULT_BATCH_SIZE, DEFAULT_MAX_ATTEMPTS
from gwas_harmonizer.exceptions import ResourceExhaustedError, SequenceToolError
from gwas_harmonizer.models import ResultSlots, Statistics, WorkChunk
from gwas_harmonizer.sequence.faidx import SequenceLookup

logger = logging.getLogger(__name__)


def make_chunks(n_rows: int, batch_size: int) -> list[WorkChunk]:
    """Split ``n_rows`` rows into contiguous chunks of at most ``batch_size``.

    Example:
        >>> [(c.start, c.stop) for c in make_chunks(5, 2)]
        [(0, 2), (2, 4), (4, 5)]
    """
    if batch_size < 1:
        raise ValueError(f"batch_size must be at least 1: {batch_size}")
    return [
        WorkChunk(index=i, start=start, stop=min(start + batch_size, n_rows))
        for i, start in enumerate(range(0, n_rows, batch_size))
    ]


class ChunkQueue:
    """FIFO of chunk indices with an in-flight count.

    An index handed out by ``acquire()`` is held by exactly one worker until
    it calls ``complete()`` or ``requeue()``.
    """

    def __init__(self, indices: Iterable[int]) -> None:
        self._pending: deque[int] = deque(indices)
        self._held: set[int] = set()
        self._cond = threading.Condition()

    def __len__(self) -> int:
        with self._cond:
            return len(self._pending)

    @property
    def in_flight(self) -> int:
        with self._cond:
            return len(self._held)

    def acquire(self) -> int | None:
        """Take the next chunk index.

        Blocks while the queue is empty but other chunks are in flight.

        Returns:
            Chunk index, or None when no work is pending or in flight
        """
        with self._cond:
            while not self._pending and self._held:
                self._cond.wait()
            if not self._pending:
                return None
            index = self._pending.popleft()
            self._held.add(index)
            return index

    def complete(self, index: int) -> None:
        """Release a chunk that is finished (resolved or abandoned)."""
        with self._cond:
            self._release(index)
            self._cond.notify_all()

    def requeue(self, index: int) -> None:
        """Return a held chunk to the back of the queue."""
        with self._cond:
            self._release(index)
            self._pending.append(index)
            self._cond.notify_all()

    def _release(self, index: int) -> None:
        if index not in self._held:
            raise RuntimeError(f"Chunk {index} is not held by a worker")
        self._held.remove(index)


@dataclass
class _PoolRun:
    """Structures shared by the workers of one ``resolve()`` call."""

    chunks: list[WorkChunk]
    regions: list[str]
    slots: ResultSlots
    queue: ChunkQueue
    progress: Progress
    task: TaskID
    attempts: list[int] = field(default_factory=list)
    failed: set[int] = field(default_factory=set)
    errors: list[Exception] = field(default_factory=list)
    lock: threading.Lock = field(default_factory=threading.Lock)


class SequenceResolutionPool:
    """Resolves one reference base per region with a pool of worker threads."""

    def __init__(
        self,
        lookup: SequenceLookup,
        threads: int = 1,
        batch_size: int = DEFAULT_BATCH_SIZE,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        retry_backoff: float = 1.0,
        stats: Statistics | None = None,
        console: Console | None = None,
        show_progress: bool = True,
    ) -> None:
        """Initialize pool.

        Args:
            lookup: Sequence lookup shared by all workers
            threads: Maximum number of worker threads
            batch_size: Regions per chunk (one lookup call each)
            max_attempts: Dispatches per chunk before giving up on
                resource exhaustion
            retry_backoff: Seconds slept per attempt before requeueing
            stats: Optional Statistics object to update (mutated in place)
            console: Rich console for the progress bar
            show_progress: Display the progress bar
        """
        if threads < 1:
            raise ValueError(f"threads must be at least 1: {threads}")
        if max_attempts < 1:
            raise ValueError(f"max_attempts must be at least 1: {max_attempts}")

        self.lookup = lookup
        self.threads = threads
        self.batch_size = batch_size
        self.max_attempts = max_attempts
        self.retry_backoff = retry_backoff
        self.stats = stats if stats is not None else Statistics()
        self.console = console or Console()
        self.show_progress = show_progress

    def resolve(self, regions: list[str]) -> ResultSlots:
        """Fetch the base for every region.

        Args:
            regions: faidx regions, one per residual row

        Returns:
            ResultSlots aligned with ``regions``; slots of failed chunks are None

        Raises:
            SequenceToolError: If a chunk that did not fail left slots unfilled
        """
        slots = ResultSlots(len(regions))
        chunks = make_chunks(len(regions), self.batch_size)
        if not chunks:
            return slots

        n_workers = min(self.threads, len(chunks))
        logger.info(
            f"Resolving {len(regions):,} residual rows in {len(chunks):,} chunks "
            f"with {n_workers} workers"
        )

        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            TaskProgressColumn(),
            TimeElapsedColumn(),
            console=self.console,
            transient=True,
            disable=not self.show_progress,
        ) as progress:
            run = _PoolRun(
                chunks=chunks,
                regions=regions,
                slots=slots,
                queue=ChunkQueue(range(len(chunks))),
                progress=progress,
                task=progress.add_task("Fetching reference bases...", total=len(chunks)),
                attempts=[0] * len(chunks),
            )

            workers = [
                threading.Thread(target=self._worker, args=(run,), name=f"faidx-{n}")
                for n in range(n_workers)
            ]
            for worker in workers:
                worker.start()
            for worker in workers:
                worker.join()

        if run.errors:
            raise run.errors[0]

        for chunk in chunks:
            if chunk.index in run.failed:
                continue
            missing = slots.missing(chunk.start, chunk.stop)
            if missing:
                raise SequenceToolError(
                    f"Chunk {chunk.index} finished with {len(missing)} unfilled slots"
                )

        if run.failed:
            logger.warning(
                f"{len(run.failed):,} of {len(chunks):,} chunks failed; "
                f"their rows are dropped"
            )
        return slots

    def _worker(self, run: _PoolRun) -> None:
        while True:
            index = run.queue.acquire()
            if index is None:
                return

            requeue = False
            try:
                requeue = self._process(run, run.chunks[index])
            except Exception as e:
                logger.exception(f"Unexpected error in chunk {index}")
                with run.lock:
                    run.errors.append(e)
                    run.failed.add(index)
            finally:
                if requeue:
                    run.queue.requeue(index)
                else:
                    run.queue.complete(index)
                    run.progress.advance(run.task)

    def _process(self, run: _PoolRun, chunk: WorkChunk) -> bool:
        """Run one dispatch of a chunk. Returns True if it must be requeued."""
        with run.lock:
            run.attempts[chunk.index] += 1
            attempt = run.attempts[chunk.index]
            self.stats.chunks_dispatched += 1

        try:
            bases = self.lookup.fetch(run.regions[chunk.start:chunk.stop])
            if len(bases) != len(chunk):
                raise SequenceToolError(
                    f"Lookup returned {len(bases)} bases for {len(chunk)} regions"
                )
        except ResourceExhaustedError as e:
            if attempt >= self.max_attempts:
                logger.error(f"Chunk {chunk.index} failed after {attempt} attempts: {e}")
                with run.lock:
                    run.failed.add(chunk.index)
                    self.stats.chunks_failed += 1
                return False
            logger.warning(f"Chunk {chunk.index} attempt {attempt} deferred: {e}")
            with run.lock:
                self.stats.chunk_retries += 1
            time.sleep(self.retry_backoff * attempt)
            return True
        except SequenceToolError as e:
            logger.error(f"Chunk {chunk.index} abandoned: {e}")
            with run.lock:
                run.failed.add(chunk.index)
                self.stats.chunks_failed += 1
            return False

        run.slots.write_chunk(chunk.start, bases)
        logger.debug(f"Chunk {chunk.index} resolved ({len(chunk)} rows)")
        return False
