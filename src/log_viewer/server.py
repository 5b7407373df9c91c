"""Claude Code log viewer server."""

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from typing import Any

from fastapi import FastAPI, HTTPException, WebSocket
from fastapi.middleware.cors import CORSMiddleware
from starlette.websockets import WebSocketState

from . import __version__
from .config import ViewerConfig
from .connection import LiveConnectionHandler
from .listing import ProjectIndex, list_sessions, load_session
from .watch_manager import WatchManager

logger = logging.getLogger(__name__)


class LogViewerServer:
    """HTTP and WebSocket server over a watched projects directory."""

    def __init__(self, config: ViewerConfig, watch_manager: WatchManager | None = None):
        """Initialize the viewer server.

        Args:
            config: Configuration for the viewer
            watch_manager: Pre-built watch manager, built from config if None

        Raises:
            FileNotFoundError: If the projects directory does not exist
        """
        self.config = config
        self.watch_manager = watch_manager or WatchManager(config.projects_dir, config.watch)
        self.project_index = ProjectIndex(config.projects_dir, config.watch.extension)
        self._rescan_task: asyncio.Task | None = None

        self.app = FastAPI(
            title="Claude Code Log Viewer",
            version=__version__,
            lifespan=self._lifespan,
        )
        self.app.add_middleware(
            CORSMiddleware,
            allow_origins=config.cors_origins,
            allow_credentials=False,
            allow_methods=["*"],
            allow_headers=["*"],
        )
        self._setup_routes()

    @asynccontextmanager
    async def _lifespan(self, app: FastAPI) -> AsyncIterator[None]:
        self.watch_manager.start()
        interval = self.config.watch.rescan_interval_seconds
        if interval > 0:
            self._rescan_task = asyncio.create_task(self._rescan_loop(interval))
        logger.info(f"Watching projects in {self.config.projects_dir}")
        try:
            yield
        finally:
            if self._rescan_task is not None:
                self._rescan_task.cancel()
                try:
                    await self._rescan_task
                except asyncio.CancelledError:
                    pass
                self._rescan_task = None
            self.watch_manager.stop()
            logger.info("Log viewer stopped")

    async def _rescan_loop(self, interval: float) -> None:
        """Periodically pick up entries deferred by the per-dispatch cap."""
        while True:
            await asyncio.sleep(interval)
            try:
                await asyncio.to_thread(self.watch_manager.rescan)
            except Exception as e:
                logger.error(f"Error during re-scan: {e}")

    def _setup_routes(self) -> None:
        root = self.config.projects_dir
        extension = self.config.watch.extension

        @self.app.get("/health")
        async def health_check() -> dict[str, Any]:
            """Health check endpoint."""
            return {
                "status": "healthy",
                "timestamp": datetime.now(UTC).isoformat(),
                "version": __version__,
                "watching": self.watch_manager.is_running(),
                "subscribers": self.watch_manager.broadcaster.get_subscriber_count(),
                "tracked_sessions": len(self.watch_manager.positions),
            }

        @self.app.get("/api/projects")
        async def get_projects():
            try:
                return await asyncio.to_thread(self.project_index.refresh)
            except OSError as e:
                logger.error(f"Failed to refresh project cache: {e}")
                raise HTTPException(status_code=500, detail="Failed to list projects") from e

        @self.app.get("/api/projects/{project}/sessions")
        async def get_sessions(project: str):
            try:
                return await asyncio.to_thread(list_sessions, root, project, extension)
            except LookupError as e:
                raise HTTPException(status_code=404, detail=str(e)) from e
            except OSError as e:
                logger.error(f"Failed to list sessions for {project}: {e}")
                raise HTTPException(status_code=500, detail="Failed to list sessions") from e

        @self.app.get("/api/projects/{project}/sessions/{session}")
        async def get_session_logs(project: str, session: str):
            try:
                entries = await asyncio.to_thread(
                    load_session, root, project, session, extension
                )
            except LookupError as e:
                raise HTTPException(status_code=404, detail=str(e)) from e
            except OSError as e:
                logger.error(f"Failed to read session {project}/{session}: {e}")
                raise HTTPException(status_code=500, detail="Failed to read session") from e
            return [entry.to_wire() for entry in entries]

        @self.app.websocket("/ws/watch")
        async def watch_websocket(websocket: WebSocket):
            """WebSocket endpoint streaming new log entries."""
            await websocket.accept()
            handler = LiveConnectionHandler(websocket, self.watch_manager.broadcaster)
            await handler.run()
            if websocket.client_state == WebSocketState.CONNECTED:
                try:
                    await websocket.close()
                except RuntimeError as e:
                    logger.debug(f"WebSocket already closed: {e}")

    async def start_server(self) -> None:
        """Serve the app with uvicorn until interrupted."""
        import uvicorn

        logger.info(
            f"Claude Code Log Viewer running on "
            f"http://{self.config.server_host}:{self.config.server_port}"
        )
        config = uvicorn.Config(
            self.app,
            host=self.config.server_host,
            port=self.config.server_port,
            log_level=self.config.log_level.lower(),
        )
        server = uvicorn.Server(config)
        await server.serve()
