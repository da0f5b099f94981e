"""Persistent preview worker and the channel that drives it.

Loading the engine takes seconds, so previews go to one long-lived
headless process running a small TCP server. The channel owns that
process: it starts it lazily, sends one script per connection, and on a
timeout or socket error kills it, restarts it and retries.

State machine (all transitions happen under one lock):

    NOT_STARTED -> STARTING -> READY
    READY -> SENDING -> AWAITING_RESPONSE -> READY
    SENDING/AWAITING_RESPONSE -> RESTARTING -> STARTING -> READY
    retries exhausted -> FAILED (worker stopped, restarted on next send)
    stop() -> STOPPED
"""

from __future__ import annotations

import logging
import threading
import time
from enum import Enum
from pathlib import Path
from string import Template
from typing import Callable

from ..core.config import ConfigProvider
from ..core.console import LogSink, LoggingSink
from ..core.errors import ExecutableNotFoundError, ProtocolError, ProtocolTimeoutError
from .protocol import exchange
from .supervisor import ManagedProcess, ProcessSupervisor, write_temp_script

logger = logging.getLogger(__name__)

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 5000
DEFAULT_TIMEOUT = 20.0
DEFAULT_MAX_RETRIES = 2
DEFAULT_SETTLE_DELAY = 2.0
WORKER_SCRIPT_NAME = "autorender_worker.py"

PREVIEW_FAILURE = "Error: Render Preview Failed after retries."

Transport = Callable[..., str]

SERVER_SCRIPT = Template('''\
import socket
import struct
import sys
import traceback

HOST = $host
PORT = $port

sys.stdout.reconfigure(line_buffering=True)


def read_exact(conn, size):
    data = b''
    while len(data) < size:
        chunk = conn.recv(size - len(data))
        if not chunk:
            raise ConnectionError('connection closed mid-frame')
        data += chunk
    return data


def handle(conn):
    size = struct.unpack('<I', read_exact(conn, 4))[0]
    script = read_exact(conn, size).decode('utf-8')
    response = 'OK'
    try:
        exec(script, {'__name__': '__main__'})
    except Exception as e:
        traceback.print_exc()
        response = str(e)
    data = response.encode('utf-8')
    conn.sendall(struct.pack('<I', len(data)) + data)


server = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
server.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
server.bind((HOST, PORT))
server.listen(1)
print(f'Blender Server Listening on {PORT}')

while True:
    conn, _ = server.accept()
    try:
        handle(conn)
    except Exception as e:
        print(f'Server Loop Error: {e}')
    finally:
        conn.close()
''')


def render_server_script(host: str = DEFAULT_HOST, port: int = DEFAULT_PORT) -> str:
    """Source of the worker's TCP server."""
    return SERVER_SCRIPT.substitute(host=repr(host), port=int(port))


class WorkerState(Enum):
    NOT_STARTED = "not_started"
    STARTING = "starting"
    READY = "ready"
    SENDING = "sending"
    AWAITING_RESPONSE = "awaiting_response"
    RESTARTING = "restarting"
    FAILED = "failed"
    STOPPED = "stopped"


class PreviewChannel:
    """Single owner of the preview worker process and its port."""

    def __init__(
        self,
        config_provider: ConfigProvider,
        supervisor: ProcessSupervisor | None = None,
        log_sink: LogSink | None = None,
        host: str = DEFAULT_HOST,
        port: int = DEFAULT_PORT,
        timeout: float = DEFAULT_TIMEOUT,
        max_retries: int = DEFAULT_MAX_RETRIES,
        settle_delay: float = DEFAULT_SETTLE_DELAY,
        transport: Transport = exchange,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """Initialize channel.

        Args:
            config_provider: Source of the executable path, read on every start
            supervisor: Launches the worker. Defaults to a new supervisor on log_sink.
            log_sink: Receives progress and failure lines
            host: Worker address
            port: Worker port
            timeout: Deadline for one request/response exchange in seconds
            max_retries: Restarts allowed per request after the first attempt
            settle_delay: Wait after launch before the worker is assumed ready
            transport: Function performing one exchange (see protocol.exchange)
            sleep: Delay function used for the settle wait
        """
        self.config_provider = config_provider
        self.log_sink = log_sink or LoggingSink()
        self.supervisor = supervisor or ProcessSupervisor(self.log_sink)
        self.host = host
        self.port = port
        self.timeout = timeout
        self.max_retries = max_retries
        self.settle_delay = settle_delay
        self._transport = transport
        self._sleep = sleep

        self._lock = threading.Lock()
        self._process: ManagedProcess | None = None
        self._state = WorkerState.NOT_STARTED

        self.restart_count = 0
        self.last_attempts = 0
        self.last_restarts = 0

    @property
    def state(self) -> WorkerState:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._process is not None and self._process.is_running

    def start(self) -> None:
        """Start the worker if it is not already running.

        Raises:
            ExecutableNotFoundError: If no valid executable is configured
            ProcessLaunchError: If the process could not be started
        """
        with self._lock:
            if not self.is_running:
                self._start_locked()

    def stop(self) -> None:
        """Kill the worker. Safe to call when it is not running."""
        with self._lock:
            self._stop_locked()
            self._state = WorkerState.STOPPED

    def send(self, script: str) -> str:
        """Execute a script in the worker and return its response.

        Timeouts and socket errors restart the worker and retry, up to
        ``max_retries`` times. When every attempt fails the worker is left
        stopped and a failure string is returned instead of raising.

        Returns:
            "OK", the script's error text, or PREVIEW_FAILURE
        """
        with self._lock:
            if not self.is_running:
                self._start_locked()

            attempts = self.max_retries + 1
            self.last_attempts = 0
            self.last_restarts = 0
            for attempt in range(1, attempts + 1):
                self.last_attempts = attempt
                self._state = WorkerState.SENDING
                try:
                    response = self._transport(
                        self.host,
                        self.port,
                        script,
                        self.timeout,
                        on_sent=self._mark_awaiting,
                    )
                except ProtocolTimeoutError:
                    self.log_sink.append(
                        f"Render Preview Timeout (Attempt {attempt}/{attempts}). "
                        "Restarting Blender Service..."
                    )
                except ProtocolError as e:
                    self.log_sink.append(
                        f"Socket Error: {e} (Attempt {attempt}/{attempts}). "
                        "Restarting Blender Service..."
                    )
                else:
                    self._state = WorkerState.READY
                    return response

                self._stop_locked()
                if attempt < attempts:
                    self._state = WorkerState.RESTARTING
                    self.restart_count += 1
                    self.last_restarts += 1
                    self._start_locked()

            self._state = WorkerState.FAILED
            logger.error(f"Preview failed after {attempts} attempts")
            return PREVIEW_FAILURE

    def _mark_awaiting(self) -> None:
        self._state = WorkerState.AWAITING_RESPONSE

    def _start_locked(self) -> None:
        config = self.config_provider.get_config()
        executable = config.executable_path
        if executable is None or not Path(executable).is_file():
            raise ExecutableNotFoundError(executable)

        self._state = WorkerState.STARTING
        script_path = write_temp_script(
            render_server_script(self.host, self.port),
            name=WORKER_SCRIPT_NAME,
        )
        try:
            self._process = self.supervisor.spawn(executable, script_path)
        except Exception:
            self._state = WorkerState.FAILED
            raise

        logger.info(f"Preview worker started (pid {self._process.pid}) on {self.host}:{self.port}")
        # No handshake: the server is assumed listening after the delay
        self._sleep(self.settle_delay)
        self._state = WorkerState.READY

    def _stop_locked(self) -> None:
        if self._process is None:
            return
        logger.info(f"Stopping preview worker (pid {self._process.pid})")
        self.supervisor.terminate(self._process)
        self._process = None
