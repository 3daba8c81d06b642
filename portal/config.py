"""
Portal Configuration Loader

Loads configuration from:
1. An explicit path, the PORTAL_CONFIG env var, or config/portal.yaml
2. .env file next to the config directory - deployment overrides
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml
from dotenv import load_dotenv

logger = logging.getLogger(__name__)

PROJECT_ROOT = Path(__file__).parent.parent


def resolve_path(path: str) -> Path:
    """Resolve a configured path relative to the project root."""
    p = Path(path)
    return p if p.is_absolute() else PROJECT_ROOT / p


@dataclass
class HttpConfig:
    host: str | None = None
    port: int = 8080
    https_port: int = 443
    https_cert: str | None = None
    https_key: str | None = None


@dataclass
class AccessConfig:
    access_hosts: list[str] = field(default_factory=list)
    blocked_ips: list[str] = field(default_factory=list)
    blocked_uas: list[str] = field(default_factory=list)


@dataclass
class LoggingConfig:
    file: str | None = "logs/server.log"
    console: bool = True
    log_blocked_requests: bool = True


@dataclass
class CatalogConfig:
    database_file: str = "data/catalog.sqlite"
    fpfss_url: str = "https://fpfss.unstable.life"
    image_url: str = "https://infinity.unstable.life/images"
    page_size: int = 100
    sync_interval: float = 0.0


@dataclass
class Config:
    """Main configuration container."""
    site_name: str = "Flashpoint Archive"
    default_lang: str = "en-US"
    site_dir: str = "site"
    http: HttpConfig = field(default_factory=HttpConfig)
    access: AccessConfig = field(default_factory=AccessConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    catalog: CatalogConfig = field(default_factory=CatalogConfig)

    @property
    def site_path(self) -> Path:
        """Site directory (data, locales, templates, static) as an absolute path."""
        return resolve_path(self.site_dir)

    @property
    def database_path(self) -> Path:
        return resolve_path(self.catalog.database_file)

    @classmethod
    def load(cls, config_path: Path | None = None) -> "Config":
        """Load configuration from yaml file and environment variables.

        Resolution order:
        1. Explicit config_path argument
        2. PORTAL_CONFIG env var
        3. Default: ../config/portal.yaml
        """
        if config_path is None:
            env_path = os.environ.get("PORTAL_CONFIG")
            config_path = Path(env_path) if env_path else PROJECT_ROOT / "config" / "portal.yaml"
        load_dotenv(config_path.parent.parent / ".env", override=False)

        yaml_config = {}
        if config_path.is_file():
            with open(config_path) as f:
                yaml_config = yaml.safe_load(f) or {}
            logger.info(f"Loaded config file: {config_path.resolve()}")
        else:
            logger.info("No config file found, using default config")

        http_cfg = yaml_config.get("http", {})
        access_cfg = yaml_config.get("access", {})
        logging_cfg = yaml_config.get("logging", {})
        catalog_cfg = yaml_config.get("catalog", {})

        # Env vars override yaml for deployment-specific values
        http = HttpConfig(
            host=http_cfg.get("host"),
            port=int(os.getenv("PORTAL_HTTP_PORT", http_cfg.get("port", 8080))),
            https_port=http_cfg.get("https_port", 443),
            https_cert=http_cfg.get("https_cert"),
            https_key=http_cfg.get("https_key"),
        )

        access = AccessConfig(
            access_hosts=list(access_cfg.get("access_hosts", [])),
            blocked_ips=list(access_cfg.get("blocked_ips", [])),
            blocked_uas=list(access_cfg.get("blocked_uas", [])),
        )

        log_settings = LoggingConfig(
            file=logging_cfg.get("file", "logs/server.log"),
            console=logging_cfg.get("console", True),
            log_blocked_requests=logging_cfg.get("log_blocked_requests", True),
        )

        catalog = CatalogConfig(
            database_file=catalog_cfg.get("database_file", "data/catalog.sqlite"),
            fpfss_url=os.getenv("FPFSS_URL", catalog_cfg.get("fpfss_url", "https://fpfss.unstable.life")),
            image_url=catalog_cfg.get("image_url", "https://infinity.unstable.life/images"),
            page_size=catalog_cfg.get("page_size", 100),
            sync_interval=catalog_cfg.get("sync_interval", 0.0),
        )

        return cls(
            site_name=yaml_config.get("site_name", "Flashpoint Archive"),
            default_lang=os.getenv("PORTAL_DEFAULT_LANG", yaml_config.get("default_lang", "en-US")),
            site_dir=os.getenv("PORTAL_SITE_DIR", yaml_config.get("site_dir", "site")),
            http=http,
            access=access,
            logging=log_settings,
            catalog=catalog,
        )
