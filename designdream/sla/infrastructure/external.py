"""
SLA External Service Integrations
==================================

External services for SLA monitoring:
- Resend email notifications
- YAML config file watcher
- APScheduler for background evaluation
"""

import asyncio
import threading
import time
from html import escape
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, List, Optional

import httpx
import yaml
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from pydantic import ValidationError
from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

from designdream.config import NotificationLevel, settings
from designdream.core import InvalidConfigException
from designdream.shared.infrastructure.logging import get_logger
from designdream.sla.application import INotificationDispatcher, ISLAConfigProvider
from designdream.sla.domain import (
    SLAConfig,
    SLANotification,
    SLARecord,
    SLAStatusSnapshot,
    format_duration,
)

logger = get_logger(__name__)


class ConfigFileHandler(FileSystemEventHandler):
    """Watchdog event handler for SLA config file changes."""

    def __init__(self, config_manager: "SLAConfigManager", config_path: Path):
        self.config_manager = config_manager
        self.config_path = config_path
        super().__init__()

    def on_modified(self, event):
        """Handle file modification event."""
        if event.is_directory:
            return
        if Path(event.src_path).resolve() == self.config_path.resolve():
            logger.info("SLA config file changed", extra={"path": str(event.src_path)})
            self.config_manager.reload()

    on_created = on_modified


class SLAConfigManager(ISLAConfigProvider):
    """
    Thread-safe SLA configuration manager with hot-reload support.

    Uses watchdog to monitor file changes and reload configuration
    without restarting the service. A reload that fails validation keeps
    the previous configuration in place.
    """

    def __init__(self, config: Optional[SLAConfig] = None):
        self._config: Optional[SLAConfig] = config
        self._lock = threading.Lock()
        self._path: Optional[Path] = None
        self._observer = None

    def load(self, path: Path) -> SLAConfig:
        """
        Initial configuration load.

        Raises:
            InvalidConfigException: File exists but does not describe a valid config
        """
        self._path = Path(path)
        config = self._load_from_file(self._path)
        with self._lock:
            self._config = config
        return config

    def _load_from_file(self, path: Path) -> SLAConfig:
        """Load, parse and validate the YAML config file."""
        if not path.exists():
            logger.warning("SLA config file not found, using defaults", extra={"path": str(path)})
            return SLAConfig()

        try:
            with open(path, "r") as f:
                data = yaml.safe_load(f) or {}
            if not isinstance(data, dict):
                raise InvalidConfigException(f"SLA config root must be a mapping: {path}")
            config = SLAConfig(**data)
        except yaml.YAMLError as e:
            raise InvalidConfigException(f"SLA config is not valid YAML: {e}") from e
        except ValidationError as e:
            raise InvalidConfigException(
                "SLA config failed validation",
                details={"errors": e.errors(include_url=False)}
            ) from e

        config.validate_sections()
        return config

    def reload(self) -> bool:
        """Reload configuration from file."""
        if self._path is None:
            return False

        try:
            new_config = self._load_from_file(self._path)
        except (InvalidConfigException, OSError) as e:
            logger.error(
                "Failed to reload SLA config, keeping previous configuration",
                extra={"error": str(e), "path": str(self._path)}
            )
            return False

        with self._lock:
            self._config = new_config
        logger.info("SLA configuration reloaded successfully")
        return True

    def start_watching(self) -> None:
        """
        Start watching configuration file for changes.

        Skips watching if the file doesn't exist or the platform cannot
        deliver file system events (some container runtimes).
        """
        if self._path is None:
            raise RuntimeError("Config not loaded. Call load() first.")

        if not self._path.exists():
            logger.info(
                "Config file doesn't exist, skipping file watch",
                extra={"path": str(self._path)}
            )
            return

        try:
            self._observer = Observer()
            handler = ConfigFileHandler(self, self._path)
            self._observer.schedule(
                handler,
                str(self._path.resolve().parent),
                recursive=False
            )
            self._observer.start()
            logger.info("Started watching SLA config file", extra={"path": str(self._path)})
        except OSError as e:
            logger.warning(
                "File watching not available, using static config",
                extra={"error": str(e)}
            )
            self._observer = None

    def stop_watching(self) -> None:
        """Stop watching configuration file (safe to call even if not watching)."""
        if self._observer is not None:
            self._observer.stop()
            self._observer.join(timeout=5)
            self._observer = None

    @property
    def config(self) -> SLAConfig:
        """Get current configuration."""
        with self._lock:
            if self._config is None:
                raise RuntimeError("SLA configuration not loaded")
            return self._config

    def get_config(self) -> SLAConfig:
        return self.config


class CircuitState:
    """Circuit breaker states."""
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitBreaker:
    """
    Circuit breaker for preventing cascade failures.

    States:
    - CLOSED: Normal operation, requests pass through
    - OPEN: After N failures, reject all requests for M seconds
    - HALF_OPEN: After timeout, allow one test request
    """

    def __init__(
        self,
        failure_threshold: int = 5,
        recovery_timeout: float = 60.0,
        clock: Callable[[], float] = time.monotonic
    ):
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self._clock = clock
        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._last_failure_time: Optional[float] = None

    @property
    def state(self) -> str:
        """Get current circuit state."""
        if self._state == CircuitState.OPEN and self._last_failure_time is not None:
            if self._clock() - self._last_failure_time >= self.recovery_timeout:
                self._state = CircuitState.HALF_OPEN
        return self._state

    def allow_request(self) -> bool:
        """Check if request should be allowed."""
        return self.state in (CircuitState.CLOSED, CircuitState.HALF_OPEN)

    def record_success(self) -> None:
        """Record successful request."""
        self._failure_count = 0
        self._state = CircuitState.CLOSED

    def record_failure(self) -> None:
        """Record failed request."""
        self._failure_count += 1
        self._last_failure_time = self._clock()

        if self._failure_count >= self.failure_threshold:
            self._state = CircuitState.OPEN
            logger.warning(
                "Circuit breaker opened",
                extra={
                    "failure_count": self._failure_count,
                    "recovery_timeout": self.recovery_timeout
                }
            )


_SUBJECTS = {
    NotificationLevel.YELLOW: "SLA warning: {request_id} is approaching its deadline",
    NotificationLevel.RED: "SLA critical: {request_id} is at its deadline",
    NotificationLevel.VIOLATED: "SLA violated: {request_id}",
}

_COLORS = {
    NotificationLevel.YELLOW: "#d97706",
    NotificationLevel.RED: "#dc2626",
    NotificationLevel.VIOLATED: "#7f1d1d",
}


class ResendEmailClient(INotificationDispatcher):
    """
    Resend email client with circuit breaker and retry logic.

    Handles sending SLA escalation emails with:
    - Circuit breaker to prevent cascade failures
    - Exponential backoff retry
    - Timeout handling

    Without an API key or recipients every send is skipped and reported as
    not delivered, so the notification stays pending.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        recipients: Optional[List[str]] = None,
        from_email: Optional[str] = None,
        api_url: Optional[str] = None,
        timeout: Optional[float] = None,
        base_url: Optional[str] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        retry_base_delay: float = 1.0
    ):
        self._api_key = api_key if api_key is not None else settings.resend_api_key
        self._recipients = list(recipients if recipients is not None else settings.notification_recipients)
        self._from_email = from_email or settings.notification_from_email
        self._api_url = api_url or settings.resend_api_url
        self._timeout = timeout or settings.notification_timeout_seconds
        self._base_url = (base_url or settings.app_base_url).rstrip("/")
        self._retry_base_delay = retry_base_delay
        self._circuit_breaker = CircuitBreaker(
            failure_threshold=5,
            recovery_timeout=60
        )
        self._http_client = http_client

    @property
    def is_configured(self) -> bool:
        return bool(self._api_key and self._recipients)

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=self._timeout)
        return self._http_client

    def build_subject(self, notification: SLANotification) -> str:
        template = _SUBJECTS.get(notification.level, "SLA update: {request_id}")
        return template.format(request_id=notification.request_id)

    def build_html(
        self,
        notification: SLANotification,
        record: SLARecord,
        snapshot: SLAStatusSnapshot
    ) -> str:
        """Render the email body."""
        color = _COLORS.get(notification.level, "#374151")
        request_url = f"{self._base_url}/requests/{record.request_id}"

        if notification.level == NotificationLevel.VIOLATED:
            elapsed = record.business_hours_elapsed
            if elapsed is None:
                elapsed = snapshot.total_elapsed_hours
            headline = (
                f"The SLA was violated after {format_duration(elapsed)} of business time "
                f"against a {record.target_hours:g} hour target."
            )
        else:
            headline = f"{snapshot.time_remaining_display} on a {record.target_hours:g} hour target."

        rows = [
            ("Request", record.request_id),
            ("Status", record.status),
            ("Business hours elapsed", f"{snapshot.total_elapsed_hours:.1f}"),
            ("Hours remaining", f"{snapshot.hours_remaining:.1f}"),
            ("Progress", f"{snapshot.percentage_complete:.0f}%"),
        ]
        if record.violation_severity:
            rows.append(("Severity", record.violation_severity))

        table = "".join(
            f"<tr><td style=\"padding:4px 12px 4px 0;color:#6b7280\">{escape(label)}</td>"
            f"<td style=\"padding:4px 0\">{escape(str(value))}</td></tr>"
            for label, value in rows
        )

        return (
            "<div style=\"font-family:Arial,sans-serif;max-width:560px\">"
            f"<h2 style=\"color:{color};margin-bottom:8px\">{escape(self.build_subject(notification))}</h2>"
            f"<p>{escape(headline)}</p>"
            f"<table>{table}</table>"
            f"<p><a href=\"{escape(request_url)}\">Open request</a></p>"
            "</div>"
        )

    def build_payload(
        self,
        notification: SLANotification,
        record: SLARecord,
        snapshot: SLAStatusSnapshot
    ) -> Dict[str, Any]:
        return {
            "from": self._from_email,
            "to": self._recipients,
            "subject": self.build_subject(notification),
            "html": self.build_html(notification, record, snapshot),
        }

    async def send(
        self,
        notification: SLANotification,
        record: SLARecord,
        snapshot: SLAStatusSnapshot,
        max_retries: int = 3
    ) -> bool:
        """
        Send an escalation email through Resend.

        Returns:
            True if sent successfully, False otherwise
        """
        if not self.is_configured:
            logger.debug("Resend API key or recipients not configured, skipping notification")
            return False

        if not self._circuit_breaker.allow_request():
            logger.warning(
                "Circuit breaker open, skipping email notification",
                extra={"request_id": notification.request_id}
            )
            return False

        payload = self.build_payload(notification, record, snapshot)
        headers = {"Authorization": f"Bearer {self._api_key}"}

        for attempt in range(max_retries):
            try:
                client = await self._get_client()
                response = await client.post(self._api_url, json=payload, headers=headers)

                if response.is_success:
                    self._circuit_breaker.record_success()
                    logger.info(
                        "SLA notification email sent",
                        extra={
                            "request_id": notification.request_id,
                            "level": notification.level
                        }
                    )
                    return True

                logger.warning(
                    "Resend returned an error status",
                    extra={
                        "status_code": response.status_code,
                        "attempt": attempt + 1
                    }
                )

            except httpx.HTTPError as e:
                logger.error(
                    "SLA notification email failed",
                    extra={
                        "error": str(e),
                        "attempt": attempt + 1,
                        "request_id": notification.request_id
                    }
                )

            if attempt < max_retries - 1:
                await asyncio.sleep(self._retry_base_delay * (2 ** attempt))

        self._circuit_breaker.record_failure()
        return False

    async def close(self) -> None:
        """Close HTTP client."""
        if self._http_client:
            await self._http_client.aclose()
            self._http_client = None


class SLAScheduler:
    """
    Wrapper for APScheduler for background SLA evaluation.

    Manages the lifecycle of the scheduler and jobs. An interval of zero
    disables the job entirely.
    """

    def __init__(self, interval_seconds: int = 60):
        self.interval_seconds = interval_seconds
        self._scheduler: Optional[AsyncIOScheduler] = None
        self._running = False

    async def start(self, job_func: Callable[[], Awaitable[Any]]) -> None:
        """Start the scheduler with the given job function."""
        if self.interval_seconds <= 0:
            logger.info("SLA scheduler disabled")
            return

        if self._running:
            logger.warning("SLA scheduler already running")
            return

        self._scheduler = AsyncIOScheduler()

        self._scheduler.add_job(
            job_func,
            "interval",
            seconds=self.interval_seconds,
            id="sla_evaluation",
            name="SLA Evaluation Job",
            misfire_grace_time=60,
            max_instances=1,
            replace_existing=True
        )

        self._scheduler.start()
        self._running = True

        logger.info(
            "SLA scheduler started",
            extra={"interval_seconds": self.interval_seconds}
        )

    async def stop(self) -> None:
        """Stop the scheduler gracefully."""
        if not self._running:
            return

        if self._scheduler:
            self._scheduler.shutdown(wait=False)
            self._scheduler = None

        self._running = False
        logger.info("SLA scheduler stopped")

    @property
    def is_running(self) -> bool:
        """Check if scheduler is running."""
        return self._running
