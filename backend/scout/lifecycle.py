"""
Knowledge Scout Backend - Server Lifecycle Manager
==================================================

What:  Owns the process: binds the listening socket, runs uvicorn over it,
       seeds the demo account once the server is up, and turns SIGTERM /
       SIGINT into a graceful drain.
Why:   Binding before uvicorn starts makes "port in use" a clean, logged
       exit(1) instead of a traceback deep inside the event loop.

Phases:
    STARTING ──bind + lifespan──▶ LISTENING ──signal──▶ SHUTTING_DOWN ──drained──▶ TERMINATED

    - EADDRINUSE on bind → SystemExit(1). The only fatal startup condition.
    - Demo seed runs `demo_seed_delay` seconds after LISTENING. A failure is
      logged and recorded; the phase stays LISTENING.
    - On a signal uvicorn stops accepting connections, lets in-flight
      requests finish (up to `shutdown_grace_seconds`), runs the lifespan
      shutdown, and serve() returns normally (exit code 0).

Only the LifecycleManager writes LifecycleState.
"""

import asyncio
import errno
import logging
import signal
import socket
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from types import FrameType
from typing import Optional

import uvicorn
from fastapi import FastAPI

from scout.config import Settings
from scout.config import settings as default_settings
from scout.main import create_app, setup_logging

logger = logging.getLogger(__name__)

# How often the startup watcher polls uvicorn's `started` flag
STARTUP_POLL_INTERVAL = 0.05


class ServerPhase(str, Enum):
    STARTING = "starting"
    LISTENING = "listening"
    SHUTTING_DOWN = "shutting_down"
    TERMINATED = "terminated"


@dataclass
class LifecycleState:
    phase: ServerPhase = ServerPhase.STARTING
    sock: Optional[socket.socket] = None
    started_at: Optional[datetime] = None
    demo_seeded: bool = False
    demo_seed_error: Optional[str] = None


class ScoutServer(uvicorn.Server):
    """
    uvicorn.Server that reports signals to the lifecycle manager.

    The base implementation re-raises captured signals once serving ends,
    which would turn a graceful SIGTERM into a non-zero exit. Signals here
    only request the drain.
    """

    def __init__(self, config: uvicorn.Config, manager: "LifecycleManager"):
        super().__init__(config)
        self.manager = manager

    def handle_exit(self, sig: int, frame: Optional[FrameType]) -> None:
        self.manager.mark_shutting_down(sig)
        if self.should_exit and sig == signal.SIGINT:
            # Second Ctrl+C skips the drain
            self.force_exit = True
        else:
            self.should_exit = True


class LifecycleManager:
    """
    Runs one Knowledge Scout server.

    Usage:
        manager = LifecycleManager(settings)
        manager.run()              # blocking, process entry point

        await manager.serve()      # inside an event loop (tests)
        manager.request_shutdown() # same path as SIGTERM
    """

    def __init__(self, settings: Optional[Settings] = None, app: Optional[FastAPI] = None):
        self.settings = settings or default_settings
        self.app = app or create_app(self.settings)
        self.state = LifecycleState()
        self.server: Optional[ScoutServer] = None

    # ── Bind ──────────────────────────────────────────────────────────────

    def bind_socket(self) -> socket.socket:
        """
        Bind the listening socket.

        Raises:
            SystemExit(1): the address is already in use
        """
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        try:
            sock.bind((self.settings.host, self.settings.port))
        except OSError as e:
            sock.close()
            if e.errno == errno.EADDRINUSE:
                logger.critical(
                    "Port %d is already in use on %s. Stop the other process or set PORT.",
                    self.settings.port,
                    self.settings.host,
                )
                raise SystemExit(1) from e
            raise
        sock.set_inheritable(True)
        self.state.sock = sock
        return sock

    @property
    def port(self) -> Optional[int]:
        """Actual bound port (useful when PORT=0 asks for an ephemeral one)."""
        if self.state.sock is None:
            return None
        return self.state.sock.getsockname()[1]

    # ── Phase transitions ─────────────────────────────────────────────────

    def mark_listening(self) -> None:
        if self.state.phase is ServerPhase.STARTING:
            self.state.phase = ServerPhase.LISTENING
            self.state.started_at = datetime.now(timezone.utc)
            logger.info("Server listening on http://%s:%d", self.settings.host, self.port)

    def mark_shutting_down(self, sig: Optional[int] = None) -> None:
        if self.state.phase in (ServerPhase.STARTING, ServerPhase.LISTENING):
            self.state.phase = ServerPhase.SHUTTING_DOWN
            reason = signal.Signals(sig).name if sig else "shutdown requested"
            logger.info("Received %s, draining in-flight requests...", reason)

    def request_shutdown(self) -> None:
        """Begin a graceful shutdown, exactly as SIGTERM would."""
        if self.server is None:
            return
        self.server.handle_exit(signal.SIGTERM, None)

    # ── Demo seed ─────────────────────────────────────────────────────────

    async def seed_demo(self) -> None:
        """
        Create the demo account. Never raises: a failure is logged and
        recorded on the state while the server keeps serving.
        """
        try:
            async with self.app.state.database.session() as db:
                created = await self.app.state.auth_service.ensure_demo_user(db)
        except Exception as e:
            self.state.demo_seed_error = str(e) or type(e).__name__
            logger.error("Demo account seeding failed: %s", self.state.demo_seed_error, exc_info=True)
            return

        self.state.demo_seeded = True
        if created:
            logger.info("Demo account created: %s", self.settings.demo_email)
        else:
            logger.info("Demo account already present: %s", self.settings.demo_email)

    async def _after_startup(self, server: ScoutServer) -> None:
        while not server.started:
            if server.should_exit:
                return
            await asyncio.sleep(STARTUP_POLL_INTERVAL)

        self.mark_listening()
        if not self.settings.demo_seed_enabled:
            return
        await asyncio.sleep(self.settings.demo_seed_delay)
        if self.state.phase is ServerPhase.LISTENING:
            await self.seed_demo()

    # ── Serve ─────────────────────────────────────────────────────────────

    async def serve(self) -> None:
        sock = self.state.sock or self.bind_socket()
        config = uvicorn.Config(
            self.app,
            lifespan="on",
            log_config=None,
            access_log=False,
            timeout_graceful_shutdown=self.settings.shutdown_grace_seconds,
        )
        server = ScoutServer(config, self)
        self.server = server

        watcher = asyncio.create_task(self._after_startup(server))
        try:
            await server.serve(sockets=[sock])
        finally:
            if not watcher.done():
                watcher.cancel()
            await asyncio.gather(watcher, return_exceptions=True)
            sock.close()
            self.state.phase = ServerPhase.TERMINATED
            logger.info("Server terminated")

    def run(self) -> None:
        """Blocking entry point. Returns normally after a graceful shutdown."""
        asyncio.run(self.serve())


def main() -> None:
    """Console entry point (`scout-server`, `python -m scout`)."""
    setup_logging(default_settings)
    LifecycleManager(default_settings).run()
