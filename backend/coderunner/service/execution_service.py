"""
Execution service: runs submissions in containers and streams their I/O.

A run goes READY -> RUNNING -> one terminal status (FINISHED, STOPPED,
TIMEOUT or ERROR). Each run executes on a pooled worker thread, holds one
admission slot while it owns container resources, and always tears down
its workspace, container, stdin conduit, registry entry and client channel.

Terminal transitions are check-and-set under the session lock and their
status events are emitted under the same lock, so whichever of natural
exit, timeout or stop gets there first wins and the client sees exactly
one terminal status.
"""

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from functools import partial
from typing import Iterable, Optional, Tuple

from coderunner.config import log_print
from coderunner.config.settings import ExecutorConfig, get_settings
from coderunner.core.channel_manager import get_channel_manager
from coderunner.core.executor import (
    AdmissionGate,
    ContainerAttachment,
    ContainerRuntime,
    ContainerWaitTimeout,
    EventSink,
    ExecutorError,
    IsolationProfile,
    LanguageSpecFactory,
    NullEventSink,
    StdinPipe,
    create_workspace,
    delete_workspace,
)
from coderunner.models import ExecutionSession, ExecutionStatus
from coderunner.schemas import ExecuteRequest
from coderunner.service.session_registry import ExecutionSessionRegistry
from coderunner.utils.exceptions import BusinessException

logger = logging.getLogger(__name__)

Event = Tuple[str, str]


def _as_line(text: str) -> str:
    """Inline input is delivered as a complete line."""
    return text if text.endswith("\n") else f"{text}\n"


def _error_message(exc: Exception) -> str:
    if isinstance(exc, BusinessException):
        return exc.message
    return str(exc) or type(exc).__name__


class ExecutionService:
    """Orchestrates run lifecycles."""

    def __init__(
        self,
        runtime: Optional[ContainerRuntime] = None,
        registry: Optional[ExecutionSessionRegistry] = None,
        sink: Optional[EventSink] = None,
        spec_factory: Optional[LanguageSpecFactory] = None,
        max_concurrent_runs: Optional[int] = None,
        timeout_seconds: Optional[float] = None,
        worker_threads: Optional[int] = None,
        output_drain_seconds: Optional[float] = None,
        workspace_root: Optional[str] = None,
    ):
        """
        Args:
            runtime: Container runtime (docker SDK wrapper)
            registry: Session registry
            sink: Destination for run events
            spec_factory: Language table
            max_concurrent_runs: Admission gate capacity
            timeout_seconds: Wall-clock limit for the exit wait
            worker_threads: Size of the run worker pool
            output_drain_seconds: How long to wait for trailing output after exit
            workspace_root: Parent directory of run workspaces
        """
        self._runtime = runtime if runtime is not None else ContainerRuntime()
        self._registry = registry if registry is not None else ExecutionSessionRegistry()
        self._sink = sink if sink is not None else NullEventSink()
        self._spec_factory = spec_factory or LanguageSpecFactory()
        self._gate = AdmissionGate(max_concurrent_runs or ExecutorConfig.MAX_CONCURRENT_RUNS)
        self._timeout = timeout_seconds if timeout_seconds is not None else ExecutorConfig.TIMEOUT_SECONDS
        self._drain_timeout = (
            output_drain_seconds if output_drain_seconds is not None else ExecutorConfig.OUTPUT_DRAIN_SECONDS
        )
        self._workspace_root = workspace_root if workspace_root is not None else ExecutorConfig.WORKSPACE_ROOT
        self._pool = ThreadPoolExecutor(
            max_workers=worker_threads or ExecutorConfig.WORKER_THREADS,
            thread_name_prefix="coderunner-run",
        )

    @property
    def registry(self) -> ExecutionSessionRegistry:
        return self._registry

    @property
    def gate(self) -> AdmissionGate:
        return self._gate

    @property
    def runtime(self) -> ContainerRuntime:
        return self._runtime

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    @log_print
    def start(self, request: ExecuteRequest) -> str:
        """
        Accept a run and schedule it. Returns immediately.

        Args:
            request: Language, code and optional initial input

        Returns:
            Run identifier
        """
        session = ExecutionSession()
        self._registry.put(session)
        self._emit_status(session.run_id, ExecutionStatus.READY)
        try:
            future = self._pool.submit(self.execute, session, request)
        except RuntimeError:
            # Pool already shut down
            self._registry.remove(session.run_id)
            raise
        future.add_done_callback(partial(self._finalize_cancelled, session))
        return session.run_id

    def send_input(self, run_id: str, text: str) -> None:
        """Forward client input to the run's stdin; silently dropped when there is no receiver."""
        session = self._registry.get(run_id)
        if session is None:
            return
        sink = session.stdin_sink
        if sink is None or session.status.is_terminal:
            return
        try:
            sink.write(text.encode("utf-8"))
        except (OSError, ValueError) as e:
            logger.debug(f"[{run_id}] input dropped: {e}")

    @log_print
    def stop(self, run_id: str) -> bool:
        """
        Force a run to end with STOPPED.

        The status is claimed before the kill so a wait that returns
        because of the kill cannot report FINISHED. Pending stdin is
        abandoned so a client write blocked on a full pipe is released.

        Returns:
            True if this call stopped the run
        """
        session = self._registry.get(run_id)
        if session is None:
            return False
        with session.lock:
            container_id = session.container_id
            stdin_sink = session.stdin_sink
            if not self._advance(session, ExecutionStatus.STOPPED):
                return False
        if stdin_sink is not None:
            self._quietly(run_id, "abandon stdin", stdin_sink.abandon)
        if container_id is not None:
            self._kill_quietly(run_id, container_id)
        return True

    def current_status(self, run_id: str) -> Optional[ExecutionStatus]:
        """Live status, or the final status of a recently torn-down run."""
        session = self._registry.get(run_id)
        if session is not None:
            return session.status
        return self._registry.last_status(run_id)

    def is_live(self, run_id: str) -> bool:
        return run_id in self._registry

    def announce_status(self, run_id: str) -> bool:
        """
        Emit the run's current status to its sink.

        Emitted under the session lock so it cannot overtake a concurrent
        transition's own status event.

        Returns:
            True while the run is live, False once torn down or unknown
        """
        session = self._registry.get(run_id)
        if session is None:
            status = self._registry.last_status(run_id)
            if status is not None:
                self._emit_status(run_id, status)
            return False
        with session.lock:
            self._emit_status(run_id, session.status)
        return True

    def shutdown(self) -> None:
        """
        Stop accepting runs and release worker pools.

        Runs still queued for a worker end with ERROR.
        """
        self._pool.shutdown(wait=False, cancel_futures=True)
        self._runtime.shutdown()

    # ------------------------------------------------------------------
    # Run lifecycle (worker thread)
    # ------------------------------------------------------------------

    def execute(self, session: ExecutionSession, request: ExecuteRequest) -> None:
        """Full lifecycle of one run: admission, run, teardown."""
        run_id = session.run_id
        try:
            if session.status.is_terminal:
                logger.info(f"[{run_id}] {session.status.value} before admission, skipping")
                return
            with self._gate.slot(run_id, cancelled=lambda: session.status.is_terminal) as admitted:
                if not admitted:
                    logger.info(f"[{run_id}] {session.status.value} while waiting for a slot, skipping")
                    return
                self._run(session, request)
        except Exception as e:
            logger.exception(f"[{run_id}] unexpected failure outside the run: {e}")
            self._advance(session, ExecutionStatus.ERROR, following=[("error", _error_message(e))])
        finally:
            self._registry.remove(run_id)
            self._sink.close(run_id)
            logger.info(f"[{run_id}] run complete: {session.status.value}")

    def _run(self, session: ExecutionSession, request: ExecuteRequest) -> None:
        run_id = session.run_id
        container_id: Optional[str] = None
        stdin: Optional[StdinPipe] = None
        attachment: Optional[ContainerAttachment] = None
        try:
            if session.status.is_terminal:
                return

            spec = self._spec_factory.get_spec(request.language)
            session.workspace = create_workspace(run_id, spec.file_name, request.code, root=self._workspace_root)

            container_id = self._runtime.create_container(run_id, spec, session.workspace)
            stdin = StdinPipe()
            attachment = self._runtime.attach(container_id, stdin, partial(self._emit, run_id))
            session.attach(container_id, stdin)

            if session.status.is_terminal:
                return

            self._runtime.start(container_id)
            if not self._advance(session, ExecutionStatus.RUNNING):
                # Stopped while the container was starting
                self._kill_quietly(run_id, container_id)
                return

            if request.input and request.input.strip():
                self.send_input(run_id, _as_line(request.input))

            self._await_exit(session, container_id, attachment)
        except Exception as e:
            logger.exception(f"[{run_id}] run failed: {e}")
            self._advance(session, ExecutionStatus.ERROR, following=[("error", _error_message(e))])
        finally:
            self._teardown(session, container_id, stdin, attachment)

    def _await_exit(self, session: ExecutionSession, container_id: str, attachment: ContainerAttachment) -> None:
        run_id = session.run_id
        try:
            exit_code = self._runtime.wait(container_id, self._timeout)
        except ContainerWaitTimeout:
            logger.warning(f"[{run_id}] timed out after {self._timeout}s, killing container")
            self._kill_quietly(run_id, container_id)
            self._advance(session, ExecutionStatus.TIMEOUT)
            return

        if not attachment.drain(self._drain_timeout):
            logger.warning(f"[{run_id}] output still open {self._drain_timeout}s after exit")

        self._advance(session, ExecutionStatus.FINISHED, preceding=[("exit", str(exit_code))])

    def _finalize_cancelled(self, session: ExecutionSession, future: Future) -> None:
        """Done callback: a run whose worker never started still ends with one terminal status."""
        if not future.cancelled():
            return
        run_id = session.run_id
        self._advance(
            session, ExecutionStatus.ERROR, following=[("error", "Execution service shut down before the run started")]
        )
        self._registry.remove(run_id)
        self._sink.close(run_id)
        logger.info(f"[{run_id}] cancelled while queued: {session.status.value}")

    def _teardown(
        self,
        session: ExecutionSession,
        container_id: Optional[str],
        stdin: Optional[StdinPipe],
        attachment: Optional[ContainerAttachment],
    ) -> None:
        run_id = session.run_id
        session.detach()
        if attachment is not None:
            self._quietly(run_id, "close attachment", attachment.close)
        if stdin is not None:
            self._quietly(run_id, "close stdin reader", stdin.close_reader)
            self._quietly(run_id, "close stdin writer", stdin.close_writer)
        if container_id is not None:
            self._quietly(run_id, "remove container", self._runtime.remove, container_id)
        if session.workspace is not None:
            self._quietly(run_id, "delete workspace", delete_workspace, session.workspace)
            session.workspace = None

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _advance(
        self,
        session: ExecutionSession,
        status: ExecutionStatus,
        preceding: Iterable[Event] = (),
        following: Iterable[Event] = (),
    ) -> bool:
        """Apply a status transition and emit its events atomically."""
        with session.lock:
            if not session.transition(status):
                logger.debug(f"[{session.run_id}] {status.value} ignored, run is {session.status.value}")
                return False
            for event_type, data in preceding:
                self._emit(session.run_id, event_type, data)
            self._emit_status(session.run_id, status)
            for event_type, data in following:
                self._emit(session.run_id, event_type, data)
        logger.info(f"[{session.run_id}] status -> {status.value}")
        return True

    def _emit_status(self, run_id: str, status: ExecutionStatus) -> None:
        self._emit(run_id, "status", status.value)

    def _emit(self, run_id: str, event_type: str, data: str) -> None:
        try:
            self._sink.send(run_id, event_type, data)
        except Exception as e:
            logger.warning(f"[{run_id}] failed to emit {event_type}: {e}")

    def _kill_quietly(self, run_id: str, container_id: str) -> None:
        try:
            self._runtime.kill(container_id)
        except ExecutorError as e:
            # Usually the container already exited or was never started
            logger.debug(f"[{run_id}] kill {container_id[:12]} failed: {e}")

    @staticmethod
    def _quietly(run_id: str, what: str, func, *args) -> None:
        try:
            func(*args)
        except Exception as e:
            logger.warning(f"[{run_id}] teardown: {what} failed: {e}")


_execution_service: Optional[ExecutionService] = None


def get_execution_service() -> ExecutionService:
    """Get global execution service instance, wired from settings."""
    global _execution_service
    if _execution_service is None:
        settings = get_settings()
        runtime = ContainerRuntime(
            profile=IsolationProfile(
                memory_bytes=settings.executor_memory_bytes,
                cpu_period=settings.executor_cpu_period,
                cpu_quota=settings.executor_cpu_quota,
                pids_limit=settings.executor_pids_limit,
            ),
            container_prefix=settings.docker_container_prefix,
            wait_workers=settings.executor_worker_threads,
            base_url=settings.docker_base_url,
        )
        _execution_service = ExecutionService(
            runtime=runtime,
            registry=ExecutionSessionRegistry(settings.executor_finished_history_size),
            sink=get_channel_manager(),
            spec_factory=LanguageSpecFactory(settings.executor_images),
            max_concurrent_runs=settings.executor_max_concurrent_runs,
            timeout_seconds=settings.executor_timeout_seconds,
            worker_threads=settings.executor_worker_threads,
            output_drain_seconds=settings.executor_output_drain_seconds,
            workspace_root=settings.executor_workspace_root,
        )
    return _execution_service
