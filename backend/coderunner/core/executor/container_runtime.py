# -*- coding: utf-8 -*-
"""
Docker runtime for run containers.

This module handles:
- Container creation with the fixed isolation profile
- Attaching stdin/stdout/stderr and demultiplexing the output stream
- Waiting for exit with a wall-clock limit
- Forced kill and removal
"""

import codecs
import logging
import socket
import threading
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeoutError
from dataclasses import dataclass, field
from functools import wraps
from pathlib import Path
from typing import Callable, Dict, Optional

import docker
from docker.errors import APIError, DockerException, NotFound
from docker.utils.socket import frames_iter

from coderunner.config.settings import DockerConfig, ExecutorConfig
from coderunner.core.executor.base import (
    ContainerLifecycleError,
    ContainerNotFoundError,
    ContainerWaitTimeout,
    ExecutorError,
)
from coderunner.core.executor.constants import (
    CAP_DROP,
    CONTAINER_OWNER,
    CONTAINER_OWNER_LABEL,
    CONTAINER_SHELL,
    RUN_ID_LABEL,
    SECURITY_OPTS,
    STDIN_CHUNK_SIZE,
    STREAM_STDERR,
    STREAM_STDOUT,
    THREAD_JOIN_TIMEOUT,
    WORKSPACE_MOUNT_PATH,
)
from coderunner.core.executor.language_spec import ExecutionSpec
from coderunner.core.executor.stdin_pipe import StdinPipe

logger = logging.getLogger(__name__)

# (stream name, decoded text)
OutputCallback = Callable[[str, str], None]


@dataclass(frozen=True)
class IsolationProfile:
    """Resource and security limits applied to every run container."""
    memory_bytes: int = field(default_factory=lambda: ExecutorConfig.MEMORY_BYTES)
    cpu_period: int = field(default_factory=lambda: ExecutorConfig.CPU_PERIOD)
    cpu_quota: int = field(default_factory=lambda: ExecutorConfig.CPU_QUOTA)
    pids_limit: int = field(default_factory=lambda: ExecutorConfig.PIDS_LIMIT)

    def host_options(self) -> Dict[str, object]:
        """Keyword arguments for ``containers.create``."""
        return {
            "read_only": True,
            "network_mode": "none",
            "mem_limit": self.memory_bytes,
            "memswap_limit": self.memory_bytes,
            "cpu_period": self.cpu_period,
            "cpu_quota": self.cpu_quota,
            "pids_limit": self.pids_limit,
            "cap_drop": list(CAP_DROP),
            "security_opt": list(SECURITY_OPTS),
        }


def docker_operation(operation_name: str):
    """Decorator mapping docker SDK failures to executor errors."""
    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            try:
                return func(*args, **kwargs)
            except ExecutorError:
                raise
            except NotFound as e:
                raise ContainerNotFoundError(
                    message=str(e),
                    operation=operation_name,
                )
            except APIError as e:
                raise ContainerLifecycleError(
                    message=str(e),
                    operation=operation_name,
                    details={"status_code": getattr(e, "status_code", None)},
                )
            except Exception as e:
                raise ContainerLifecycleError(
                    message=str(e) or type(e).__name__,
                    operation=operation_name,
                )
        return wrapper
    return decorator


def _raw_socket(sock):
    # attach_socket returns a SocketIO wrapper for unix/http connections
    return getattr(sock, "_sock", sock)


class ContainerAttachment:
    """
    Live attachment to a container's stdio.

    Owns the attach socket, the read end of the stdin pipe, and two
    threads: one demultiplexing output frames into ``on_output``, one
    pumping stdin bytes into the socket.
    """

    def __init__(self, sock, stdin: StdinPipe, on_output: OutputCallback, name: str = "run"):
        self._sock = sock
        self._stdin = stdin
        self._on_output = on_output
        self._closed = False
        self._output_thread = threading.Thread(
            target=self._pump_output, name=f"{name}-output", daemon=True
        )
        self._stdin_thread = threading.Thread(
            target=self._pump_stdin, name=f"{name}-stdin", daemon=True
        )

    def start(self) -> "ContainerAttachment":
        self._output_thread.start()
        self._stdin_thread.start()
        return self

    def _pump_output(self) -> None:
        decoders = {
            STREAM_STDOUT: ("stdout", codecs.getincrementaldecoder("utf-8")(errors="replace")),
            STREAM_STDERR: ("stderr", codecs.getincrementaldecoder("utf-8")(errors="replace")),
        }
        try:
            for stream_id, chunk in frames_iter(self._sock, tty=False):
                if stream_id not in decoders:
                    continue
                name, decoder = decoders[stream_id]
                text = decoder.decode(chunk)
                if text:
                    self._on_output(name, text)
        except (OSError, ValueError) as e:
            if not self._closed:
                logger.debug(f"Output stream ended with error: {e}")
        finally:
            for name, decoder in decoders.values():
                tail = decoder.decode(b"", final=True)
                if tail:
                    self._on_output(name, tail)

    def _pump_stdin(self) -> None:
        try:
            while True:
                data = self._stdin.read(STDIN_CHUNK_SIZE)
                if not data:
                    break
                _raw_socket(self._sock).sendall(data)
        except (OSError, ValueError) as e:
            if not self._closed:
                logger.debug(f"Stdin pump stopped: {e}")

    def drain(self, timeout: float) -> bool:
        """Wait for the output stream to reach EOF. Returns False on timeout."""
        self._output_thread.join(timeout)
        return not self._output_thread.is_alive()

    def close(self) -> None:
        """Close the socket and let both pumps exit. Idempotent."""
        if self._closed:
            return
        self._closed = True
        raw = _raw_socket(self._sock)
        try:
            raw.shutdown(socket.SHUT_RDWR)
        except OSError:
            pass
        handles = [self._sock] if raw is self._sock else [self._sock, raw]
        for handle in handles:
            try:
                handle.close()
            except OSError:
                pass
        self._output_thread.join(THREAD_JOIN_TIMEOUT)


class ContainerRuntime:
    """Thin wrapper over the docker SDK for run containers."""

    def __init__(
        self,
        client: Optional[docker.DockerClient] = None,
        profile: Optional[IsolationProfile] = None,
        container_prefix: Optional[str] = None,
        wait_workers: Optional[int] = None,
        base_url: Optional[str] = None,
    ):
        """
        Args:
            client: Docker client (created lazily from config when omitted)
            profile: Isolation profile (defaults from ExecutorConfig)
            container_prefix: Name prefix for run containers
            wait_workers: Size of the pool running blocking container waits
            base_url: Docker engine URL (empty means docker.from_env())
        """
        self._client = client
        self._base_url = base_url if base_url is not None else DockerConfig.BASE_URL
        self._profile = profile or IsolationProfile()
        self._prefix = container_prefix if container_prefix is not None else DockerConfig.CONTAINER_PREFIX
        self._waiters = ThreadPoolExecutor(
            max_workers=wait_workers or ExecutorConfig.WORKER_THREADS,
            thread_name_prefix="coderunner-wait",
        )

    @property
    def client(self) -> docker.DockerClient:
        """Get Docker client, creating if needed."""
        if self._client is None:
            if self._base_url:
                self._client = docker.DockerClient(base_url=self._base_url)
            else:
                self._client = docker.from_env()
        return self._client

    @property
    def profile(self) -> IsolationProfile:
        return self._profile

    def container_name(self, run_id: str) -> str:
        return f"{self._prefix}{run_id}"

    def check_available(self) -> bool:
        """Check if the Docker engine answers a ping."""
        try:
            return bool(self.client.ping())
        except (DockerException, OSError) as e:
            logger.warning(f"Docker engine unavailable: {e}")
            return False

    @docker_operation("create_container")
    def create_container(self, run_id: str, spec: ExecutionSpec, workspace: Path) -> str:
        """
        Create (not start) the run container.

        Args:
            run_id: Run identifier
            spec: Language execution spec
            workspace: Host directory mounted read-write at the working dir

        Returns:
            Container id
        """
        container = self.client.containers.create(
            image=spec.image,
            command=[*CONTAINER_SHELL, spec.command],
            name=self.container_name(run_id),
            working_dir=WORKSPACE_MOUNT_PATH,
            volumes={
                str(Path(workspace).resolve()): {
                    "bind": WORKSPACE_MOUNT_PATH,
                    "mode": "rw",
                }
            },
            stdin_open=True,
            tty=False,
            labels={CONTAINER_OWNER_LABEL: CONTAINER_OWNER, RUN_ID_LABEL: run_id},
            **self._profile.host_options(),
        )
        logger.info(f"[{run_id}] created container {container.id[:12]} from {spec.image}")
        return container.id

    @docker_operation("attach_container")
    def attach(self, container_id: str, stdin: StdinPipe, on_output: OutputCallback) -> ContainerAttachment:
        """
        Attach to stdin/stdout/stderr and start the pump threads.

        ``logs`` replays anything written before the attach completed.
        """
        sock = self.client.api.attach_socket(
            container_id,
            params={"stdin": 1, "stdout": 1, "stderr": 1, "stream": 1, "logs": 1},
        )
        return ContainerAttachment(sock, stdin, on_output, name=f"attach-{container_id[:12]}").start()

    @docker_operation("start_container")
    def start(self, container_id: str) -> None:
        self.client.api.start(container_id)

    @docker_operation("wait_container")
    def _wait_for_exit(self, container_id: str) -> int:
        result = self.client.api.wait(container_id)
        return int(result.get("StatusCode", -1))

    def wait(self, container_id: str, timeout: float) -> int:
        """
        Block until the container exits or ``timeout`` seconds pass.

        Returns:
            Exit status code

        Raises:
            ContainerWaitTimeout: If the container is still running at the deadline
            ExecutorError: If the engine reports a failure
        """
        future = self._waiters.submit(self._wait_for_exit, container_id)
        try:
            return future.result(timeout=timeout)
        except FutureTimeoutError:
            raise ContainerWaitTimeout(
                message=f"Container {container_id[:12]} still running after {timeout}s",
                operation="wait_container",
                details={"timeout": timeout},
            )

    @docker_operation("kill_container")
    def kill(self, container_id: str) -> None:
        self.client.api.kill(container_id)

    @docker_operation("remove_container")
    def remove(self, container_id: str) -> None:
        self.client.api.remove_container(container_id, force=True)

    def shutdown(self) -> None:
        self._waiters.shutdown(wait=False)
