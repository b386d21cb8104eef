"""Configuration management for the Image Triage System."""

import logging
from pathlib import Path
from typing import Dict, List, Optional
from dataclasses import dataclass, field
import configparser
import json

from .models import SUPPORTED_IMAGE_EXTENSIONS
from .exceptions import ConfigurationError


def default_data_dir() -> Path:
    return Path.home() / ".image_triage"


@dataclass
class FoldersConfig:
    """Folder locations for a triage session."""
    input_folder: Optional[Path] = None
    trash_folder: Optional[Path] = None
    categories: Dict[str, Path] = field(default_factory=dict)
    create_missing: bool = False


@dataclass
class CatalogConfig:
    """Image catalog settings."""
    extensions: List[str] = field(default_factory=lambda: sorted(SUPPORTED_IMAGE_EXTENSIONS))
    include_hidden: bool = False


@dataclass
class WebConfig:
    """Web interface configuration settings."""
    host: str = "127.0.0.1"
    port: int = 5000
    debug: bool = False


@dataclass
class LoggingConfig:
    """Logging configuration settings."""
    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    file_enabled: bool = True
    file_path: Optional[Path] = None
    file_max_size_mb: int = 10
    file_backup_count: int = 5
    console_enabled: bool = True

    def __post_init__(self):
        if self.file_path is None:
            self.file_path = default_data_dir() / "logs" / "app.log"


@dataclass
class AppConfig:
    """Main application configuration."""
    folders: FoldersConfig = field(default_factory=FoldersConfig)
    catalog: CatalogConfig = field(default_factory=CatalogConfig)
    web: WebConfig = field(default_factory=WebConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    app_name: str = "Image Triage"
    version: str = "0.1.0"
    data_dir: Path = field(default_factory=default_data_dir)


class ConfigManager:
    """Manages application configuration stored in an INI file."""

    def __init__(self, config_file: Optional[Path] = None):
        """
        Initialize configuration manager.

        Args:
            config_file: Path to configuration file. If None, uses default location.
        """
        if config_file is None:
            config_file = default_data_dir() / "config.ini"

        self.config_file = Path(config_file)
        self.config = AppConfig()
        self.logger = logging.getLogger(__name__)

        if self.config_file.exists():
            self.load_from_file()

    def load_from_file(self) -> None:
        """Load configuration from INI file."""
        try:
            parser = configparser.ConfigParser(interpolation=None)
            # Category labels are case sensitive
            parser.optionxform = str
            parser.read(self.config_file)

            if 'folders' in parser:
                folders_section = parser['folders']
                if folders_section.get('input'):
                    self.config.folders.input_folder = Path(folders_section['input'])
                if folders_section.get('trash'):
                    self.config.folders.trash_folder = Path(folders_section['trash'])
                if 'create_missing' in folders_section:
                    self.config.folders.create_missing = folders_section.getboolean('create_missing')

            if 'categories' in parser:
                self.config.folders.categories = {
                    label: Path(path) for label, path in parser['categories'].items()
                }

            if 'catalog' in parser:
                catalog_section = parser['catalog']
                if 'extensions' in catalog_section:
                    self.config.catalog.extensions = _parse_extensions(catalog_section['extensions'])
                if 'include_hidden' in catalog_section:
                    self.config.catalog.include_hidden = catalog_section.getboolean('include_hidden')

            if 'web' in parser:
                web_section = parser['web']
                if 'host' in web_section:
                    self.config.web.host = web_section.get('host')
                if 'port' in web_section:
                    self.config.web.port = web_section.getint('port')
                if 'debug' in web_section:
                    self.config.web.debug = web_section.getboolean('debug')

            if 'logging' in parser:
                log_section = parser['logging']
                if 'level' in log_section:
                    self.config.logging.level = log_section.get('level')
                if 'format' in log_section:
                    self.config.logging.format = log_section.get('format')
                if 'file_enabled' in log_section:
                    self.config.logging.file_enabled = log_section.getboolean('file_enabled')
                if 'file_path' in log_section:
                    self.config.logging.file_path = Path(log_section.get('file_path'))
                if 'file_max_size_mb' in log_section:
                    self.config.logging.file_max_size_mb = log_section.getint('file_max_size_mb')
                if 'file_backup_count' in log_section:
                    self.config.logging.file_backup_count = log_section.getint('file_backup_count')
                if 'console_enabled' in log_section:
                    self.config.logging.console_enabled = log_section.getboolean('console_enabled')

            self.logger.info(f"Configuration loaded from {self.config_file}")

        except (configparser.Error, ValueError) as e:
            self.logger.error(f"Error loading configuration from {self.config_file}: {e}")
            self.config = AppConfig()

    def save_to_file(self) -> None:
        """
        Save current configuration to INI file.

        Raises:
            ConfigurationError: If the file cannot be written
        """
        parser = configparser.ConfigParser(interpolation=None)
        parser.optionxform = str

        folders = self.config.folders
        parser['folders'] = {
            'input': str(folders.input_folder) if folders.input_folder else '',
            'trash': str(folders.trash_folder) if folders.trash_folder else '',
            'create_missing': str(folders.create_missing),
        }

        parser['categories'] = {label: str(path) for label, path in folders.categories.items()}

        parser['catalog'] = {
            'extensions': ', '.join(self.config.catalog.extensions),
            'include_hidden': str(self.config.catalog.include_hidden),
        }

        parser['web'] = {
            'host': self.config.web.host,
            'port': str(self.config.web.port),
            'debug': str(self.config.web.debug),
        }

        parser['logging'] = {
            'level': self.config.logging.level,
            'format': self.config.logging.format,
            'file_enabled': str(self.config.logging.file_enabled),
            'file_path': str(self.config.logging.file_path),
            'file_max_size_mb': str(self.config.logging.file_max_size_mb),
            'file_backup_count': str(self.config.logging.file_backup_count),
            'console_enabled': str(self.config.logging.console_enabled),
        }

        try:
            self.config_file.parent.mkdir(parents=True, exist_ok=True)
            with open(self.config_file, 'w', encoding='utf-8') as f:
                parser.write(f)
        except OSError as e:
            self.logger.error(f"Error saving configuration to {self.config_file}: {e}")
            raise ConfigurationError(f"Cannot write configuration file {self.config_file}: {e}") from e

        self.logger.info(f"Configuration saved to {self.config_file}")

    def get_config(self) -> AppConfig:
        """Get the current configuration."""
        return self.config

    def set_value(self, key: str, value: str) -> None:
        """
        Set a single value addressed as ``section.name`` and save.

        Raises:
            ConfigurationError: For unknown keys or values of the wrong type
        """
        if '.' not in key:
            raise ConfigurationError("Key must be in format 'section.name'")

        section_name, name = key.split('.', 1)
        if section_name == 'categories':
            self.add_category(name, Path(value))
            return

        section = getattr(self.config, section_name, None)
        if section is None or not hasattr(section, name) or name == 'categories':
            raise ConfigurationError(f"Unknown configuration key: {key}")

        current = getattr(section, name)
        try:
            if isinstance(current, bool):
                parsed = value.strip().lower() in ('true', '1', 'yes', 'on')
            elif isinstance(current, int):
                parsed = int(value)
            elif isinstance(current, list):
                parsed = _parse_extensions(value)
            elif name in ('input_folder', 'trash_folder', 'file_path'):
                parsed = Path(value) if value else None
            else:
                parsed = value
        except ValueError as e:
            raise ConfigurationError(f"Invalid value for {key}: {value}") from e

        setattr(section, name, parsed)
        self.save_to_file()

    def add_category(self, label: str, path: Path) -> None:
        """Add or replace a category folder and save."""
        if not label.strip():
            raise ConfigurationError("Category label cannot be empty")
        self.config.folders.categories[label] = Path(path)
        self.save_to_file()

    def remove_category(self, label: str) -> None:
        """Remove a category folder and save."""
        if label not in self.config.folders.categories:
            raise ConfigurationError(f"Unknown category: {label}")
        del self.config.folders.categories[label]
        self.save_to_file()

    def reset_to_defaults(self) -> None:
        """Reset configuration to default values."""
        self.config = AppConfig()
        self.save_to_file()
        self.logger.info("Configuration reset to defaults")

    def build_folder_set(self):
        """
        Validate the configured folders into a FolderSet.

        Raises:
            ConfigurationError: If folders are missing or invalid
        """
        from .folders import FolderSet

        folders = self.config.folders
        if folders.input_folder is None:
            raise ConfigurationError("No input folder configured (set folders.input_folder)")
        if folders.trash_folder is None:
            raise ConfigurationError("No trash folder configured (set folders.trash_folder)")
        if not folders.categories:
            raise ConfigurationError("No category folders configured")

        return FolderSet.validate(
            folders.input_folder,
            folders.trash_folder,
            folders.categories,
            create_missing=folders.create_missing,
        )

    def to_dict(self) -> dict:
        """Plain dictionary view of the configuration."""
        return {
            'folders': {
                'input_folder': str(self.config.folders.input_folder) if self.config.folders.input_folder else None,
                'trash_folder': str(self.config.folders.trash_folder) if self.config.folders.trash_folder else None,
                'categories': {label: str(path) for label, path in self.config.folders.categories.items()},
                'create_missing': self.config.folders.create_missing,
            },
            'catalog': {
                'extensions': list(self.config.catalog.extensions),
                'include_hidden': self.config.catalog.include_hidden,
            },
            'web': {
                'host': self.config.web.host,
                'port': self.config.web.port,
                'debug': self.config.web.debug,
            },
            'logging': {
                'level': self.config.logging.level,
                'format': self.config.logging.format,
                'file_enabled': self.config.logging.file_enabled,
                'file_path': str(self.config.logging.file_path),
                'file_max_size_mb': self.config.logging.file_max_size_mb,
                'file_backup_count': self.config.logging.file_backup_count,
                'console_enabled': self.config.logging.console_enabled,
            },
        }

    def export_to_json(self, file_path: Path) -> None:
        """
        Export configuration to JSON format.

        Args:
            file_path: Path to save JSON file
        """
        try:
            with open(file_path, 'w', encoding='utf-8') as f:
                json.dump(self.to_dict(), f, indent=2)
        except OSError as e:
            self.logger.error(f"Error exporting configuration to {file_path}: {e}")
            raise ConfigurationError(f"Cannot export configuration to {file_path}: {e}") from e

        self.logger.info(f"Configuration exported to {file_path}")


def _parse_extensions(value: str) -> List[str]:
    extensions = []
    for raw in value.split(','):
        ext = raw.strip().lower()
        if not ext:
            continue
        if not ext.startswith('.'):
            ext = '.' + ext
        extensions.append(ext)
    return extensions


# Global configuration instance
_config_manager = None


def get_config() -> AppConfig:
    """Get the global application configuration."""
    return get_config_manager().get_config()


def get_config_manager() -> ConfigManager:
    """Get the global configuration manager."""
    global _config_manager
    if _config_manager is None:
        _config_manager = ConfigManager()
    return _config_manager


def setup_config(config_file: Optional[Path] = None) -> ConfigManager:
    """
    Set up global configuration.

    Args:
        config_file: Optional path to configuration file

    Returns:
        ConfigManager instance
    """
    global _config_manager
    _config_manager = ConfigManager(config_file)
    return _config_manager
