"""
Configuration Management Module
Loads and validates configuration from config.yaml
"""

import yaml
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Any, Optional, List

logger = logging.getLogger(__name__)


DEFAULT_RECOGNIZED_COUNTRIES = [
    "泰国", "印尼", "欧盟", "美国", "智利", "秘鲁", "韩国", "日本",
    "南非", "以色列", "阿联酋", "马来西亚", "中国", "澳大利亚",
    "印度", "台湾", "新加坡",
]
DEFAULT_MISSING_COUNTRY = "未确定"
DEFAULT_OTHER_COUNTRY = "其它国家"

VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class DatabaseConfig:
    """Database configuration"""
    host: str = "localhost"
    port: int = 5432
    user: str = "cert_user"
    password: str = "cert_password"
    name: str = "cert_news"
    url: Optional[str] = None
    pool_size: int = 5
    max_overflow: int = 10
    echo: bool = False


@dataclass
class KeywordConfig:
    """Keyword file configuration"""
    file_path: str = "data/cert_news_keywords.txt"
    comment_marker: str = "#"


@dataclass
class AnalysisConfig:
    """Reclassification parameters"""
    batch_size: int = 100
    content_max_length: int = 1500


@dataclass
class CountryConfig:
    """Canonical country buckets for daily aggregation"""
    recognized: List[str] = field(default_factory=lambda: list(DEFAULT_RECOGNIZED_COUNTRIES))
    missing_label: str = DEFAULT_MISSING_COUNTRY
    other_label: str = DEFAULT_OTHER_COUNTRY

    @property
    def canonical_labels(self) -> List[str]:
        """Recognized labels followed by the two sentinels"""
        return list(self.recognized) + [self.missing_label, self.other_label]


@dataclass
class LoggingConfig:
    """Logging configuration"""
    level: str = "INFO"
    file: Optional[str] = "logs/analysis.log"
    console: bool = True
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


@dataclass
class MonitoringSettings:
    """Query monitoring thresholds"""
    slow_query_threshold_ms: float = 1000.0
    warning_threshold_ms: float = 500.0


class ConfigurationError(Exception):
    """Raised when configuration is invalid"""
    pass


class ConfigManager:
    """Manages system configuration"""

    _instance: Optional['ConfigManager'] = None

    def __init__(self, config_path: Optional[str] = None):
        """Initialize configuration manager

        Args:
            config_path: Path to config.yaml file
        """
        self.config_path = Path(config_path) if config_path else self._find_config()
        self._raw_config: Dict[str, Any] = {}
        self.database: DatabaseConfig = DatabaseConfig()
        self.keywords: KeywordConfig = KeywordConfig()
        self.analysis: AnalysisConfig = AnalysisConfig()
        self.countries: CountryConfig = CountryConfig()
        self.logging: LoggingConfig = LoggingConfig()
        self.monitoring: MonitoringSettings = MonitoringSettings()

        if self.config_path and self.config_path.exists():
            self.load()
        else:
            logger.warning(f"Config file not found at {self.config_path}, using defaults")

    def _find_config(self) -> Path:
        """Find config.yaml in common locations"""
        search_paths = [
            Path(__file__).parent / "config.yaml",
            Path.cwd() / "config.yaml",
            Path.cwd() / "python" / "config.yaml",
        ]

        for path in search_paths:
            if path.exists():
                return path

        return search_paths[0]

    @property
    def base_dir(self) -> Path:
        """Directory that relative paths in the config are resolved against"""
        if self.config_path and self.config_path.exists():
            return self.config_path.resolve().parent
        return Path(__file__).resolve().parent

    @property
    def keyword_file_path(self) -> Path:
        """Keyword file location, independent of the working directory"""
        path = Path(self.keywords.file_path)
        if path.is_absolute():
            return path
        return self.base_dir / path

    def load(self) -> None:
        """Load configuration from YAML file"""
        try:
            with open(self.config_path, 'r', encoding='utf-8') as f:
                self._raw_config = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in config file: {e}")
        except FileNotFoundError:
            raise ConfigurationError(f"Config file not found: {self.config_path}")

        if not isinstance(self._raw_config, dict):
            raise ConfigurationError("Config file must contain a mapping at top level")

        self._parse_database()
        self._parse_keywords()
        self._parse_analysis()
        self._parse_countries()
        self._parse_logging()
        self._parse_monitoring()
        self._validate()

    def _parse_database(self) -> None:
        """Parse database configuration"""
        cfg = self._raw_config.get('database', {})
        self.database = DatabaseConfig(
            host=cfg.get('host', self.database.host),
            port=cfg.get('port', self.database.port),
            user=cfg.get('user', self.database.user),
            password=cfg.get('password', self.database.password),
            name=cfg.get('name', self.database.name),
            url=cfg.get('url', self.database.url),
            pool_size=cfg.get('pool_size', self.database.pool_size),
            max_overflow=cfg.get('max_overflow', self.database.max_overflow),
            echo=cfg.get('echo', self.database.echo)
        )

    def _parse_keywords(self) -> None:
        """Parse keyword file configuration"""
        cfg = self._raw_config.get('keywords', {})
        self.keywords = KeywordConfig(
            file_path=cfg.get('file_path', self.keywords.file_path),
            comment_marker=cfg.get('comment_marker', self.keywords.comment_marker)
        )

    def _parse_analysis(self) -> None:
        """Parse analysis configuration"""
        cfg = self._raw_config.get('analysis', {})
        self.analysis = AnalysisConfig(
            batch_size=cfg.get('batch_size', 100),
            content_max_length=cfg.get('content_max_length', 1500)
        )

    def _parse_countries(self) -> None:
        """Parse country bucket configuration"""
        cfg = self._raw_config.get('countries', {})
        self.countries = CountryConfig(
            recognized=cfg.get('recognized', list(DEFAULT_RECOGNIZED_COUNTRIES)),
            missing_label=cfg.get('missing_label', DEFAULT_MISSING_COUNTRY),
            other_label=cfg.get('other_label', DEFAULT_OTHER_COUNTRY)
        )

    def _parse_logging(self) -> None:
        """Parse logging configuration"""
        cfg = self._raw_config.get('logging', {})
        self.logging = LoggingConfig(
            level=cfg.get('level', 'INFO'),
            file=cfg.get('file', self.logging.file),
            console=cfg.get('console', True),
            format=cfg.get('format', self.logging.format)
        )

    def _parse_monitoring(self) -> None:
        """Parse monitoring configuration"""
        cfg = self._raw_config.get('monitoring', {})
        self.monitoring = MonitoringSettings(
            slow_query_threshold_ms=cfg.get('slow_query_threshold_ms', 1000.0),
            warning_threshold_ms=cfg.get('warning_threshold_ms', 500.0)
        )

    def _validate(self) -> None:
        """Validate configuration values"""
        if not isinstance(self.analysis.batch_size, int) or self.analysis.batch_size <= 0:
            raise ConfigurationError(
                f"analysis.batch_size must be a positive integer, got {self.analysis.batch_size}"
            )
        if not isinstance(self.analysis.content_max_length, int) or self.analysis.content_max_length <= 0:
            raise ConfigurationError(
                f"analysis.content_max_length must be a positive integer, "
                f"got {self.analysis.content_max_length}"
            )
        if not self.keywords.comment_marker or not self.keywords.comment_marker.strip():
            raise ConfigurationError("keywords.comment_marker must not be blank")

        missing = (self.countries.missing_label or '').strip()
        other = (self.countries.other_label or '').strip()
        if not missing or not other:
            raise ConfigurationError("countries.missing_label and countries.other_label must not be blank")
        if missing == other:
            raise ConfigurationError("countries.missing_label and countries.other_label must differ")
        if not isinstance(self.countries.recognized, list):
            raise ConfigurationError("countries.recognized must be a list")
        for label in (missing, other):
            if label in self.countries.recognized:
                raise ConfigurationError(f"Sentinel country '{label}' must not be listed in countries.recognized")

        if str(self.logging.level).upper() not in VALID_LOG_LEVELS:
            raise ConfigurationError(f"Unknown logging.level: {self.logging.level}")

        if self.monitoring.warning_threshold_ms > self.monitoring.slow_query_threshold_ms:
            raise ConfigurationError(
                "monitoring.warning_threshold_ms must not exceed monitoring.slow_query_threshold_ms"
            )

    @classmethod
    def get_instance(cls, config_path: Optional[str] = None) -> 'ConfigManager':
        """Get singleton instance of ConfigManager"""
        if cls._instance is None:
            cls._instance = ConfigManager(config_path)
        return cls._instance

    @classmethod
    def reset_instance(cls) -> None:
        """Reset singleton instance (useful for testing)"""
        cls._instance = None

    def to_dict(self) -> Dict[str, Any]:
        """Export configuration as dictionary"""
        return {
            'database': {
                'host': self.database.host,
                'port': self.database.port,
                'user': self.database.user,
                'name': self.database.name,
                'url': self.database.url
            },
            'keywords': {
                'file_path': self.keywords.file_path,
                'comment_marker': self.keywords.comment_marker
            },
            'analysis': {
                'batch_size': self.analysis.batch_size,
                'content_max_length': self.analysis.content_max_length
            },
            'countries': {
                'recognized': list(self.countries.recognized),
                'missing_label': self.countries.missing_label,
                'other_label': self.countries.other_label
            },
            'logging': {
                'level': self.logging.level,
                'file': self.logging.file,
                'console': self.logging.console
            },
            'monitoring': {
                'slow_query_threshold_ms': self.monitoring.slow_query_threshold_ms,
                'warning_threshold_ms': self.monitoring.warning_threshold_ms
            }
        }


def get_config(config_path: Optional[str] = None) -> ConfigManager:
    """Convenience function to get configuration instance"""
    return ConfigManager.get_instance(config_path)
