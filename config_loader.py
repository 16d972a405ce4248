#!/usr/bin/env python3
"""
Configuration Loader for the Threaded Port Scanner
Handles YAML/JSON configuration files with profile support
"""

import os
import json
import logging
import platform
from pathlib import Path
from typing import Dict, Any, Optional, List, Tuple
from dataclasses import dataclass, field

import yaml

from scan_engine.models import (
    DEFAULT_BANNER_MAX_BYTES, MAX_BANNER_MAX_BYTES, MAX_PORT, MAX_THREADS,
    MIN_PORT, MIN_THREADS, MIN_TIMEOUT_MS,
)

logger = logging.getLogger(__name__)

_INVALID = object()


@dataclass
class ScanProfile:
    """Represents a scanning profile with its settings"""
    name: str
    description: str = ""
    settings: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Convert profile to dictionary of overrides"""
        return dict(self.settings)


class ConfigurationLoader:
    """Handles loading and parsing of configuration files"""

    # Hard-coded defaults
    DEFAULT_CONFIG = {
        'target': None,
        'start_port': 1,
        'end_port': 1023,
        'threads': 50,
        'mode': 'full',
        'timeout_ms': 200,
        'banner_max_bytes': DEFAULT_BANNER_MAX_BYTES,
        'output_file': 'scan_results.txt',
        'append_output': False,
        'color': None,
        'log_level': 'INFO',
        'log_file': None,
    }

    # Valid values for validation
    VALID_MODES = {'fast', 'full'}
    VALID_LOG_LEVELS = {'DEBUG', 'INFO', 'WARNING', 'ERROR'}

    def __init__(self):
        self.config_paths = self._get_config_paths()
        self.loaded_config: Dict[str, Any] = {}
        self.profiles: Dict[str, ScanProfile] = {}

    def _get_config_paths(self) -> List[Path]:
        """Get list of configuration file paths in order of precedence"""
        paths = []

        # Current working directory
        for name in ("config.yaml", "config.yml", "config.json"):
            paths.append(Path.cwd() / name)

        # Platform-specific user config directory
        system = platform.system().lower()
        if system == 'windows':
            config_dir = Path(os.environ.get('APPDATA', '')) / 'ThreadedPortScanner'
        else:
            # Linux/WSL/macOS
            config_dir = Path.home() / '.config' / 'ThreadedPortScanner'

        paths.extend([config_dir / "config.yaml", config_dir / "config.json"])
        return paths

    def find_config_file(self, custom_path: Optional[str] = None) -> Optional[Path]:
        """Find the first existing configuration file"""
        if custom_path:
            custom_file = Path(custom_path)
            if custom_file.exists():
                return custom_file
            logger.warning(f"Custom config file not found: {custom_path}")
            return None

        for path in self.config_paths:
            if path.exists():
                logger.info(f"Found configuration file: {path}")
                return path

        logger.debug("No configuration file found, using defaults")
        return None

    def _parse_file(self, file_path: Path) -> Dict[str, Any]:
        """Parse YAML or JSON configuration file"""
        try:
            with open(file_path, 'r', encoding='utf-8') as f:
                content = f.read().strip()
        except OSError as e:
            logger.error(f"Failed to read configuration file {file_path}: {e}")
            return {}

        if not content:
            logger.warning(f"Configuration file is empty: {file_path}")
            return {}

        try:
            if file_path.suffix.lower() == '.json':
                data = json.loads(content)
            else:
                data = yaml.safe_load(content)
        except (json.JSONDecodeError, yaml.YAMLError) as e:
            logger.error(f"Failed to parse configuration file {file_path}: {e}")
            return {}

        if not isinstance(data, dict):
            logger.error(f"Configuration file must contain a mapping: {file_path}")
            return {}
        return data

    def _validate_value(self, key: str, value: Any) -> Any:
        """Validate and sanitize one setting; returns _INVALID when unusable"""
        try:
            if key in ('start_port', 'end_port'):
                port = int(value)
                return port if MIN_PORT <= port <= MAX_PORT else _INVALID
            if key == 'threads':
                return max(MIN_THREADS, min(MAX_THREADS, int(value)))
            if key == 'timeout_ms':
                return max(MIN_TIMEOUT_MS, int(value))
            if key == 'banner_max_bytes':
                return max(1, min(MAX_BANNER_MAX_BYTES, int(value)))
        except (ValueError, TypeError):
            return _INVALID

        if key == 'mode':
            mode = str(value).lower()
            return mode if mode in self.VALID_MODES else _INVALID
        if key == 'log_level':
            level = str(value).upper()
            return level if level in self.VALID_LOG_LEVELS else _INVALID
        if key == 'append_output':
            return bool(value)
        if key == 'color':
            return None if value is None else bool(value)
        if key in ('target', 'output_file', 'log_file'):
            return None if value is None else str(value)
        # Unknown key, but keep it for extensibility
        return value

    def _validate_config(self, config: Dict[str, Any]) -> Dict[str, Any]:
        """Validate and sanitize the 'defaults' section"""
        validated = {}

        defaults = config.get('defaults', {})
        if not isinstance(defaults, dict):
            logger.warning("'defaults' section must be a dictionary, ignoring")
            return validated

        for key, value in defaults.items():
            checked = self._validate_value(key, value)
            if checked is _INVALID:
                logger.warning(f"Invalid {key} value: {value}, using default")
                continue
            validated[key] = checked

        return validated

    def _parse_port_range(self, ports_value: Any) -> Optional[Tuple[int, int]]:
        """Parse "start-end" or a single port into an inclusive (start, end) pair"""
        try:
            if isinstance(ports_value, int):
                start = end = ports_value
            else:
                text = str(ports_value).strip()
                if '-' in text:
                    start_s, end_s = text.split('-', 1)
                    start, end = int(start_s), int(end_s)
                else:
                    start = end = int(text)
        except ValueError:
            logger.warning(f"Invalid port range format: {ports_value}")
            return None

        if not (MIN_PORT <= start <= end <= MAX_PORT):
            logger.warning(f"Invalid port range: {ports_value}")
            return None
        return start, end

    def _load_profiles(self, config: Dict[str, Any]) -> Dict[str, ScanProfile]:
        """Load and validate scanning profiles"""
        profiles = {}
        profiles_section = config.get('profiles', {})

        if not isinstance(profiles_section, dict):
            logger.warning("'profiles' section must be a dictionary, ignoring")
            return {}

        for profile_name, profile_data in profiles_section.items():
            if not isinstance(profile_data, dict):
                logger.warning(f"Profile '{profile_name}' must be a dictionary, skipping")
                continue

            profile = ScanProfile(name=str(profile_name), description=str(profile_data.get('description', '')))
            for key, value in profile_data.items():
                if key == 'description':
                    continue
                if key == 'ports':
                    port_range = self._parse_port_range(value)
                    if port_range:
                        profile.settings['start_port'], profile.settings['end_port'] = port_range
                    continue
                checked = self._validate_value(key, value)
                if checked is _INVALID:
                    logger.warning(f"Invalid {key} in profile '{profile_name}': {value}")
                    continue
                profile.settings[key] = checked

            profiles[profile.name] = profile
            logger.debug(f"Loaded profile '{profile.name}': {profile.description}")

        return profiles

    def load_config(self, config_path: Optional[str] = None) -> Dict[str, Any]:
        """Load configuration from file with profile support"""
        # Start with hard-coded defaults
        merged_config = self.DEFAULT_CONFIG.copy()
        self.profiles = {}

        config_file = self.find_config_file(config_path)
        if config_file:
            raw_config = self._parse_file(config_file)
            if raw_config:
                merged_config.update(self._validate_config(raw_config))
                self.profiles = self._load_profiles(raw_config)
                logger.info(f"Loaded configuration from {config_file}")
                logger.debug(f"Found {len(self.profiles)} profiles: {list(self.profiles.keys())}")

        self.loaded_config = merged_config
        return merged_config

    def get_profile_config(self, profile_name: str, base_config: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Get configuration with profile settings applied"""
        if base_config is None:
            base_config = self.loaded_config.copy()
        else:
            base_config = base_config.copy()

        if profile_name not in self.profiles:
            logger.warning(f"Profile '{profile_name}' not found")
            return base_config

        profile = self.profiles[profile_name]
        base_config.update(profile.to_dict())

        logger.info(f"Applied profile '{profile_name}': {profile.description}")
        return base_config

    def list_profiles(self) -> Dict[str, str]:
        """Get list of available profiles with descriptions"""
        return {name: profile.description for name, profile in self.profiles.items()}

    def get_profile(self, name: str) -> Optional[ScanProfile]:
        """Get a specific profile by name"""
        return self.profiles.get(name)

    def create_default_config_file(self, path: Optional[str] = None) -> str:
        """Create a sample configuration file"""
        if path is None:
            path = "config.yaml"

        sample_config = {
            'defaults': {
                'threads': 200,
                'mode': 'full',
                'timeout_ms': 300,
                'banner_max_bytes': DEFAULT_BANNER_MAX_BYTES,
                'output_file': 'scan_results.txt',
                'append_output': False,
                'log_level': 'INFO',
            },
            'profiles': {
                'well-known': {
                    'description': 'Well-known ports with banner grabbing',
                    'ports': '1-1023',
                    'mode': 'full',
                },
                'quick-local': {
                    'description': 'Fast connect-only sweep of localhost',
                    'target': '127.0.0.1',
                    'ports': '1-10000',
                    'mode': 'fast',
                    'timeout_ms': 50,
                    'threads': 1000,
                },
                'full-tcp': {
                    'description': 'All TCP ports (slow on filtered hosts)',
                    'ports': '1-65535',
                    'mode': 'fast',
                    'threads': 2000,
                    'timeout_ms': 500,
                },
            }
        }

        with open(path, 'w', encoding='utf-8') as f:
            if path.endswith('.json'):
                json.dump(sample_config, f, indent=2)
            else:
                yaml.safe_dump(sample_config, f, default_flow_style=False, sort_keys=False)

        logger.info(f"Created sample configuration file: {path}")
        return path


# Global instance for easy access
config_loader = ConfigurationLoader()


def load_config(config_path: Optional[str] = None) -> Dict[str, Any]:
    """Convenience function to load configuration"""
    return config_loader.load_config(config_path)


def get_profile_config(profile_name: str, base_config: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """Convenience function to get profile configuration"""
    return config_loader.get_profile_config(profile_name, base_config)


def list_profiles() -> Dict[str, str]:
    """Convenience function to list available profiles"""
    return config_loader.list_profiles()
