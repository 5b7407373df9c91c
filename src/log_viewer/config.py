"""Server configuration for the log viewer."""

import os
from pathlib import Path
from typing import Any

from .monitoring import WatchConfig

DEFAULT_PORT = 2006


def default_projects_dir() -> Path:
    """Directory Claude Code writes its project logs to."""
    return Path.home() / ".claude" / "projects"


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


class ViewerConfig:
    """Configuration for the log viewer server."""

    def __init__(
        self,
        projects_dir: str | Path | None = None,
        server_host: str = "0.0.0.0",
        server_port: int = DEFAULT_PORT,
        log_dir: str | None = "/tmp/cc_log_viewer",
        log_level: str = "INFO",
        cors_origins: list[str] | None = None,
        watch: WatchConfig | None = None,
    ):
        self.projects_dir = Path(projects_dir) if projects_dir else default_projects_dir()
        self.server_host = server_host
        self.server_port = server_port
        self.log_dir = log_dir
        self.log_level = log_level
        self.cors_origins = cors_origins if cors_origins is not None else ["*"]
        self.watch = watch or WatchConfig()

    @classmethod
    def from_env(cls) -> "ViewerConfig":
        """Build a configuration from LOG_VIEWER_* environment variables."""
        watch = WatchConfig(
            max_entries_per_event=int(os.getenv("LOG_VIEWER_MAX_ENTRIES_PER_EVENT", "10")),
            broadcast_capacity=int(os.getenv("LOG_VIEWER_BROADCAST_CAPACITY", "1000")),
            rescan_interval_seconds=float(os.getenv("LOG_VIEWER_RESCAN_INTERVAL", "5.0")),
            use_polling=_env_bool("LOG_VIEWER_USE_POLLING", False),
        )
        origins = os.getenv("LOG_VIEWER_CORS_ORIGINS")
        return cls(
            projects_dir=os.getenv("LOG_VIEWER_PROJECTS_DIR") or None,
            server_host=os.getenv("LOG_VIEWER_HOST", "0.0.0.0"),
            server_port=int(os.getenv("LOG_VIEWER_PORT", str(DEFAULT_PORT))),
            log_dir=os.getenv("LOG_VIEWER_LOG_DIR", "/tmp/cc_log_viewer") or None,
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            cors_origins=[o.strip() for o in origins.split(",")] if origins else None,
            watch=watch,
        )

    def to_dict(self) -> dict[str, Any]:
        """Return a plain dict representation suitable for consumers."""
        return {
            "projects_dir": str(self.projects_dir),
            "server_host": self.server_host,
            "server_port": self.server_port,
            "log_dir": self.log_dir,
            "log_level": self.log_level,
            "cors_origins": list(self.cors_origins),
            "watch": {
                "extension": self.watch.extension,
                "max_entries_per_event": self.watch.max_entries_per_event,
                "broadcast_capacity": self.watch.broadcast_capacity,
                "rescan_interval_seconds": self.watch.rescan_interval_seconds,
                "use_polling": self.watch.use_polling,
            },
        }
