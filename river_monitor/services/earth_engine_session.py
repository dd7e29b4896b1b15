import ee
import logging
from enum import Enum
from typing import Optional

from river_monitor.config.settings import Settings, get_settings
from river_monitor.exceptions import ServiceNotReadyError, UpstreamError

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    NOT_INITIALIZED = "not_initialized"
    READY = "ready"
    FAILED = "failed"


class EarthEngineSession:
    """
    Explicit handle on the process-wide Earth Engine session.

    Created once at startup and passed to every client that talks to Earth
    Engine. ``initialize()`` is the only call that authenticates; everything
    else checks ``ensure_ready()`` first.
    """

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self.state = SessionState.NOT_INITIALIZED
        self.last_error: Optional[str] = None

    def initialize(self) -> None:
        """Authenticate with Google Earth Engine and initialize the API."""
        try:
            if self.settings.gee_service_account_key:
                # Use service account key file
                credentials = ee.ServiceAccountCredentials(
                    email=None,  # Will be read from key file
                    key_file=self.settings.gee_service_account_key,
                )
                ee.Initialize(credentials, project=self.settings.gee_project_id or None)
            else:
                # Use default authentication (requires gcloud auth)
                ee.Initialize(project=self.settings.gee_project_id or None)

            self.state = SessionState.READY
            self.last_error = None
            logger.info("Google Earth Engine initialized successfully")

        except Exception as e:
            self.state = SessionState.FAILED
            self.last_error = str(e)
            logger.error(f"Failed to initialize Google Earth Engine: {e}")
            raise UpstreamError(f"Earth Engine initialization failed: {e}") from e

    def is_ready(self) -> bool:
        return self.state == SessionState.READY

    def ensure_ready(self) -> None:
        if self.state == SessionState.READY:
            return
        if self.state == SessionState.FAILED:
            raise ServiceNotReadyError(
                f"Google Earth Engine initialization failed: {self.last_error}"
            )
        raise ServiceNotReadyError("Google Earth Engine is not initialized yet")
