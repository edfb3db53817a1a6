"""Main StashBox application wiring."""

from typing import Any, Optional

from .config import Config
from .filesystem import FilesystemService
from .logging_config import get_logger, setup_logging
from .object_store import ObjectStoreClient
from .quota import QuotaLedger
from .share_index import ShareTokenIndex


logger = get_logger(__name__)


def build_service(config: Config, client: Any = None) -> FilesystemService:
    """Assemble a filesystem service and its collaborators from configuration.

    Args:
        config: Loaded configuration
        client: Optional pre-built boto3 S3 client shared by all components

    Returns:
        A ready-to-use FilesystemService
    """
    store = ObjectStoreClient(config.get_store_config(), client=client)
    ledger = QuotaLedger(store, config.get_quota_config())
    share_index = ShareTokenIndex(store)
    return FilesystemService(store, ledger, share_index, config.get_upload_config())


class StashBoxApp:
    """Holds the one object store client and service used by this process.

    Request handlers receive ``app.service`` explicitly instead of reaching
    for a global instance.
    """

    def __init__(self, config_path: str = "config.yaml"):
        """Initialize StashBox application.

        Args:
            config_path: Path to configuration file
        """
        self.config_path = config_path
        self.config: Optional[Config] = None
        self.service: Optional[FilesystemService] = None

    def initialize(self, client: Any = None, check_connection: bool = True,
                   colorize: bool = True) -> FilesystemService:
        """Load configuration, configure logging and build the service."""
        try:
            self.config = Config(self.config_path)
            self.config.ensure_directories()

            setup_logging(
                log_level=self.config.get('app.log_level', 'INFO'),
                log_file=self.config.get('app.log_file'),
                colorize=colorize
            )

            self.service = build_service(self.config, client=client)
            if check_connection:
                self.service.store.check_connection()

            logger.info("StashBox initialized successfully")
            return self.service

        except Exception as e:
            logger.error(f"Failed to initialize StashBox: {e}")
            raise

    @property
    def owner_id(self) -> Optional[str]:
        """Default owner for command-line use, from ``app.owner_id``."""
        if not self.config:
            return None
        return self.config.get('app.owner_id')
