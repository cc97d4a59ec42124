"""
Settings Manager for the Equipment Health Predictor
Handles configuration loading, validation, and environment variable management
"""

import os
import copy
import logging
from pathlib import Path
from typing import Any, Dict, Optional
from dataclasses import dataclass

import yaml
from dotenv import load_dotenv

# Load environment variables from .env file if it exists
load_dotenv()

logger = logging.getLogger(__name__)

# Get the root directory of the project
PROJECT_ROOT = Path(__file__).resolve().parents[3]
CONFIG_DIR = PROJECT_ROOT / "config"
DEFAULT_CONFIG_FILE = CONFIG_DIR / "config.yaml"


@dataclass(frozen=True)
class ArtifactConfig:
    """Model artifact directory and the fallback seed"""
    model_dir: Path
    random_seed: int = 42


@dataclass(frozen=True)
class SupabaseConfig:
    """Supabase REST endpoint settings"""
    url: str = ""
    key: str = ""
    timeout_seconds: float = 10.0
    sensor_table: str = "sensor_data"
    prediction_table: str = "predictions"
    embed_part_in_rul: bool = True

    @property
    def is_configured(self) -> bool:
        return bool(self.url and self.key)


@dataclass(frozen=True)
class ScheduleConfig:
    """Tick cadence and window settings"""
    interval_seconds: float = 60.0
    window_size: int = 11
    rul_fallback: float = 500.0
    device_id: Optional[str] = None


@dataclass(frozen=True)
class LoggingConfig:
    """Logging configuration"""
    level: str = "INFO"
    file_path: str = "logs/equipment_health.log"
    max_bytes: int = 10485760  # 10MB
    backup_count: int = 5
    enable_console: bool = True
    enable_file: bool = True
    enable_color: bool = True


@dataclass(frozen=True)
class ApiConfig:
    """Manual trigger API settings"""
    host: str = "127.0.0.1"
    port: int = 8080


class Settings:
    """
    Central configuration management class
    Loads YAML, applies environment overrides and validates the result
    """

    def __init__(self, config_file: Optional[Path] = None):
        """Initialize settings from configuration file"""
        env_file = os.getenv("EQUIPMENT_HEALTH_CONFIG")
        self.config_file = Path(config_file or env_file or DEFAULT_CONFIG_FILE)
        self._config: Dict[str, Any] = {}
        self._load_config()
        self._override_with_env()
        self._validate_config()

    def _load_config(self):
        """Load configuration from YAML file, merged over the defaults"""
        self._config = self._get_default_config()
        try:
            with open(self.config_file, 'r') as f:
                loaded = yaml.safe_load(f) or {}
            _deep_merge(self._config, loaded)
            logger.info(f"Configuration loaded from {self.config_file}")
        except FileNotFoundError:
            logger.warning(f"Configuration file not found: {self.config_file}, using defaults")
        except yaml.YAMLError as e:
            raise ValueError(f"Error parsing configuration file {self.config_file}: {e}") from e

    @staticmethod
    def _get_default_config() -> Dict[str, Any]:
        """Return default configuration if config file not found"""
        return {
            'environment': 'development',
            'system': {
                'project_name': 'Equipment Health Predictor',
                'random_seed': 42,
            },
            'paths': {
                'models': './model',
                'logs': './logs',
            },
            'pipeline': {
                'window_size': 11,
                'rul_fallback': 500.0,
                'device_id': None,
            },
            'schedule': {
                'interval_seconds': 60,
            },
            'supabase': {
                'url': '',
                'key': '',
                'timeout_seconds': 10,
                'sensor_table': 'sensor_data',
                'prediction_table': 'predictions',
                'embed_part_in_rul': True,
            },
            'api': {
                'host': '127.0.0.1',
                'port': 8080,
            },
            'logging': {
                'level': 'INFO',
                'enable_console': True,
                'enable_file': True,
                'enable_color': True,
                'file': {
                    'path': 'logs/equipment_health.log',
                    'max_bytes': 10485760,
                    'backup_count': 5,
                },
            },
        }

    def _override_with_env(self):
        """Override configuration with environment variables"""
        self._config['environment'] = os.getenv('ENVIRONMENT', self._config.get('environment', 'development'))

        if 'SUPABASE_URL' in os.environ:
            self.set('supabase.url', os.getenv('SUPABASE_URL'))
        if 'SUPABASE_KEY' in os.environ:
            self.set('supabase.key', os.getenv('SUPABASE_KEY'))
        if 'MODEL_DIR' in os.environ:
            self.set('paths.models', os.getenv('MODEL_DIR'))
        if 'SCHEDULE_INTERVAL_SECONDS' in os.environ:
            self.set('schedule.interval_seconds', float(os.getenv('SCHEDULE_INTERVAL_SECONDS')))
        if 'LOG_LEVEL' in os.environ:
            self.set('logging.level', os.getenv('LOG_LEVEL').upper())
        if 'DEVICE_ID' in os.environ:
            self.set('pipeline.device_id', os.getenv('DEVICE_ID'))

    def _validate_config(self):
        """Validate configuration values"""
        if float(self.get('schedule.interval_seconds', 60)) <= 0:
            raise ValueError("Schedule interval must be positive")

        if int(self.get('pipeline.window_size', 11)) < 1:
            raise ValueError("Window size must be at least 1")

        port = int(self.get('api.port', 8080))
        if port < 1 or port > 65535:
            raise ValueError("API port must be between 1 and 65535")

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get configuration value using dot notation
        Example: settings.get('supabase.url')
        """
        value = self._config
        for k in key.split('.'):
            if isinstance(value, dict):
                value = value.get(k)
                if value is None:
                    return default
            else:
                return default

        return value if value is not None else default

    def set(self, key: str, value: Any):
        """
        Set configuration value using dot notation
        Example: settings.set('schedule.interval_seconds', 30)
        """
        keys = key.split('.')
        config = self._config

        for k in keys[:-1]:
            if not isinstance(config.get(k), dict):
                config[k] = {}
            config = config[k]

        config[keys[-1]] = value

    def get_artifact_config(self) -> ArtifactConfig:
        """Get model artifact configuration object"""
        return ArtifactConfig(
            model_dir=Path(self.get('paths.models', './model')),
            random_seed=int(self.get('system.random_seed', 42)),
        )

    def get_supabase_config(self) -> SupabaseConfig:
        """Get Supabase configuration object"""
        cfg = self.get('supabase', {})
        return SupabaseConfig(
            url=(cfg.get('url') or '').rstrip('/'),
            key=cfg.get('key') or '',
            timeout_seconds=float(cfg.get('timeout_seconds', 10)),
            sensor_table=cfg.get('sensor_table', 'sensor_data'),
            prediction_table=cfg.get('prediction_table', 'predictions'),
            embed_part_in_rul=bool(cfg.get('embed_part_in_rul', True)),
        )

    def get_schedule_config(self) -> ScheduleConfig:
        """Get tick cadence configuration object"""
        return ScheduleConfig(
            interval_seconds=float(self.get('schedule.interval_seconds', 60)),
            window_size=int(self.get('pipeline.window_size', 11)),
            rul_fallback=float(self.get('pipeline.rul_fallback', 500.0)),
            device_id=self.get('pipeline.device_id'),
        )

    def get_logging_config(self) -> LoggingConfig:
        """Get logging configuration object"""
        cfg = self.get('logging', {})
        file_cfg = cfg.get('file') or {}
        return LoggingConfig(
            level=str(cfg.get('level', 'INFO')).upper(),
            file_path=file_cfg.get('path', 'logs/equipment_health.log'),
            max_bytes=int(file_cfg.get('max_bytes', 10485760)),
            backup_count=int(file_cfg.get('backup_count', 5)),
            enable_console=bool(cfg.get('enable_console', True)),
            enable_file=bool(cfg.get('enable_file', True)),
            enable_color=bool(cfg.get('enable_color', True)),
        )

    def get_api_config(self) -> ApiConfig:
        """Get trigger API configuration object"""
        return ApiConfig(
            host=self.get('api.host', '127.0.0.1'),
            port=int(self.get('api.port', 8080)),
        )

    @property
    def is_production(self) -> bool:
        """Check if running in production mode"""
        return self._config.get('environment', 'development') == 'production'

    def to_dict(self) -> Dict[str, Any]:
        """Export configuration as dictionary"""
        return copy.deepcopy(self._config)


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively merge override into base in place"""
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            _deep_merge(base[key], value)
        else:
            base[key] = value
    return base


_settings: Optional[Settings] = None


def get_settings(config_file: Optional[Path] = None) -> Settings:
    """Return the process-wide settings, loading them on first use"""
    global _settings
    if _settings is None or config_file is not None:
        _settings = Settings(config_file)
    return _settings


def get_config(key: str, default: Any = None) -> Any:
    """Quick access to configuration values"""
    return get_settings().get(key, default)
