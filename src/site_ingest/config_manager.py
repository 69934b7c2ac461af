"""
Unified Configuration System for Site Ingestion

This module provides centralized configuration management with clear hierarchy:
1. Built-in defaults (lowest priority)
2. Configuration files (YAML/JSON)
3. Environment variables
4. Command-line arguments (highest priority)

Constants used by the transformer and the downstream model (kfFEC, growth
temperature threshold, kphio, beta) live here and are handed to the calls
that need them as explicit parameter objects.
"""

import os
import json
from pathlib import Path
from typing import Dict, Any, List, Optional

import yaml

from .logging_utils import InvalidSettings


class IngestConfig:
    """
    Unified configuration system for site ingestion.

    Provides centralized configuration management with clear hierarchy:
    1. Built-in defaults
    2. Configuration files (YAML/JSON)
    3. Environment variables
    4. Command-line arguments (highest priority)
    """

    def __init__(self, config_file: Optional[str] = None, cli_args: Optional[Dict] = None):
        """
        Initialize configuration system with proper precedence order.

        Args:
            config_file: Path to YAML or JSON configuration file
            cli_args: Dictionary of command-line arguments (highest priority)
        """
        self.config_file = config_file
        self.cli_args = cli_args or {}
        self._config = {}
        self._load_configuration()

    def _load_configuration(self):
        """Load configuration with proper precedence order"""
        self._config = self._get_default_config()

        if self.config_file:
            file_config = self._load_config_file(self.config_file)
            file_sources = file_config.pop('sources', None)
            self._merge_config(self._config, file_config)
            if file_sources is not None:
                self._config['sources'] = self._select_sources(file_sources)

        env_config = self._load_environment_config()
        self._merge_config(self._config, env_config)

        if self.cli_args:
            self._merge_config(self._config, self.cli_args)

        self._validate_configuration()

    @staticmethod
    def _get_default_config() -> Dict[str, Any]:
        """Built-in default configuration"""
        return {
            'processing': {
                'data_directory': "./DATA",
                'output_file': "site_table.csv",
                'max_workers': 1,
                'retry_attempts': 1,
                'log_level': 'INFO'
            },
            'sources': {
                'etopo1': {
                    'directory': 'etopo1',
                    'variables': ['elv'],
                    'file_name': 'ETOPO1_Bed_g_geotiff.tif'
                },
                'worldclim': {
                    'directory': 'worldclim',
                    'variables': ['tmin', 'tmax', 'vapr', 'srad'],
                    'time_scale': 'm',
                    'file_pattern': 'wc2.1_30s_{var}_{month:02d}.tif'
                },
                'soilgrids': {
                    'directory': 'soilgrids',
                    'variables': ['soc', 'nitrogen'],
                    'layers': [1, 2, 3, 4, 5, 6],
                    'file_pattern': '{var}_{depth}_mean.tif'
                },
                'ndep': {
                    'directory': 'ndep',
                    'variables': ['noy', 'nhx'],
                    'time_scale': 'y',
                    'year_start': 1990,
                    'year_end': 2009,
                    'file_pattern': 'ndep_{var}.nc'
                },
                'co2': {
                    'directory': 'co2',
                    'variables': ['co2'],
                    'time_scale': 'y',
                    'year_start': 1990,
                    'year_end': 2009,
                    'file_name': 'co2_annmean_gl.csv'
                }
            },
            'transform': {
                'kfFEC': 2.04,
                'growth_temperature_threshold': 0.0,
                'mid_month_day': 15
            },
            'model': {
                'kphio': 0.049977,
                'beta': 146.0,
                'fapar': 1.0,
                'co2': 400.0
            },
            'sites': []
        }

    def _load_config_file(self, config_path: str) -> Dict[str, Any]:
        """Load configuration from YAML or JSON file"""
        config_path = Path(config_path)
        if not config_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        with open(config_path, 'r') as f:
            if config_path.suffix.lower() in ['.yaml', '.yml']:
                data = yaml.safe_load(f) or {}
            elif config_path.suffix.lower() == '.json':
                data = json.load(f)
            else:
                raise ValueError(f"Unsupported config file format: {config_path.suffix}")

        if not isinstance(data, dict):
            raise InvalidSettings(f"Expected a mapping at top level of {config_path}")
        return data

    def _select_sources(self, file_sources: Any) -> Dict[str, Any]:
        """Sources named in a configuration file, each filled up with its defaults"""
        if not isinstance(file_sources, dict):
            raise InvalidSettings("sources must be a mapping of source name to settings")

        defaults = self._get_default_config()['sources']
        selected = {}
        for source, section in file_sources.items():
            merged = dict(defaults.get(source, {}))
            if isinstance(section, dict):
                self._merge_config(merged, section)
            elif section is not None:
                raise InvalidSettings(f"Source section '{source}' must be a mapping")
            selected[source] = merged
        return selected

    def _load_environment_config(self) -> Dict[str, Any]:
        """Load configuration from environment variables"""
        env_config = {}

        env_mappings = {
            'SITE_INGEST_DATA_DIR': 'processing.data_directory',
            'SITE_INGEST_OUTPUT_FILE': 'processing.output_file',
            'SITE_INGEST_LOG_LEVEL': 'processing.log_level',
            'SITE_INGEST_MAX_WORKERS': 'processing.max_workers',
            'SITE_INGEST_RETRY_ATTEMPTS': 'processing.retry_attempts'
        }

        for env_var, config_path in env_mappings.items():
            value = os.getenv(env_var)
            if value is not None:
                self._set_nested_config(env_config, config_path, value)

        return env_config

    def _set_nested_config(self, config_dict: Dict, path: str, value: Any):
        """Set nested configuration value using dot notation path"""
        keys = path.split('.')
        current = config_dict

        for key in keys[:-1]:
            if key not in current:
                current[key] = {}
            current = current[key]

        # Convert string values to appropriate types
        if isinstance(value, str):
            if value.lower() in ['true', 'false']:
                value = value.lower() == 'true'
            elif value.isdigit():
                value = int(value)
            elif value.replace('.', '', 1).isdigit():
                value = float(value)

        current[keys[-1]] = value

    def _merge_config(self, base_config: Dict, override_config: Dict):
        """Deep merge configuration dictionaries"""
        for key, value in override_config.items():
            if key in base_config and isinstance(base_config[key], dict) and isinstance(value, dict):
                self._merge_config(base_config[key], value)
            else:
                base_config[key] = value

    def _validate_configuration(self):
        """Validate final configuration"""
        required_sections = ['processing', 'sources', 'transform', 'model']

        for section in required_sections:
            if section not in self._config or not isinstance(self._config[section], dict):
                raise InvalidSettings(f"Required configuration section missing: {section}")

        self._validate_processing_config()
        self._validate_sources_config()
        self._validate_transform_config()
        self._validate_model_config()
        self._validate_sites_config()

    def _validate_processing_config(self):
        """Validate processing section configuration"""
        processing = self._config['processing']

        if not isinstance(processing.get('max_workers', 1), int) or processing.get('max_workers', 1) < 1:
            raise InvalidSettings("max_workers must be an integer of at least 1")

        if processing.get('retry_attempts', 0) not in (0, 1):
            raise InvalidSettings("retry_attempts must be 0 or 1")

        valid_log_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        if str(processing.get('log_level', 'INFO')).upper() not in valid_log_levels:
            raise InvalidSettings(f"log_level must be one of: {valid_log_levels}")

    def _validate_sources_config(self):
        """Validate per-source sections"""
        for source, source_config in self._config['sources'].items():
            if not isinstance(source_config, dict):
                raise InvalidSettings(f"Source section '{source}' must be a mapping")

            variables = source_config.get('variables')
            if variables is not None and not isinstance(variables, list):
                raise InvalidSettings(f"Variables for '{source}' must be a list")

            layers = source_config.get('layers')
            if layers is not None and not isinstance(layers, list):
                raise InvalidSettings(f"Layers for '{source}' must be a list")
            if layers is not None and not all(self._is_integer(layer) for layer in layers):
                raise InvalidSettings(f"Layers for '{source}' must be integers: {layers}")

            year_start = source_config.get('year_start')
            year_end = source_config.get('year_end')
            for name, year in (('year_start', year_start), ('year_end', year_end)):
                if year is not None and not self._is_integer(year):
                    raise InvalidSettings(f"{source}: {name} must be an integer year, got {year!r}")
            if year_start is not None and year_end is not None and year_start > year_end:
                raise InvalidSettings(f"{source}: year_start ({year_start}) must be <= year_end ({year_end})")

    @staticmethod
    def _is_integer(value: Any) -> bool:
        return isinstance(value, int) and not isinstance(value, bool)

    def _validate_transform_config(self):
        """Validate transformer constants"""
        transform = self._config['transform']

        if transform.get('kfFEC', 0) <= 0:
            raise InvalidSettings("transform.kfFEC must be positive")

        mid_month_day = transform.get('mid_month_day', 15)
        if not isinstance(mid_month_day, int) or not 1 <= mid_month_day <= 28:
            raise InvalidSettings("transform.mid_month_day must be an integer between 1 and 28")

    def _validate_model_config(self):
        """Validate downstream model constants"""
        model = self._config['model']

        if model.get('kphio', 0) <= 0:
            raise InvalidSettings("model.kphio must be positive")
        if model.get('beta', 0) <= 0:
            raise InvalidSettings("model.beta must be positive")
        if not 0 <= model.get('fapar', 1.0) <= 1:
            raise InvalidSettings("model.fapar must be between 0 and 1")
        if model.get('co2', 0) <= 0:
            raise InvalidSettings("model.co2 must be positive")

    def _validate_sites_config(self):
        """Validate the optional sites list"""
        sites = self._config.get('sites') or []
        if not isinstance(sites, list):
            raise InvalidSettings("sites must be a list of {id, lon, lat, elv} mappings")

        for entry in sites:
            if not isinstance(entry, dict) or not {'id', 'lon', 'lat'} <= set(entry):
                raise InvalidSettings(f"Site entry must define id, lon and lat: {entry}")

    # Public interface methods
    def get(self, path: str, default: Any = None) -> Any:
        """
        Get configuration value using dot notation path.

        Args:
            path: Dot-separated path to configuration value (e.g., 'model.kphio')
            default: Default value if path not found

        Returns:
            Configuration value or default if not found
        """
        keys = path.split('.')
        current = self._config

        try:
            for key in keys:
                current = current[key]
            return current
        except (KeyError, TypeError):
            return default

    def get_processing_config(self) -> Dict[str, Any]:
        """Get processing-specific configuration"""
        return self._config['processing']

    def get_source_config(self, source: str) -> Dict[str, Any]:
        """
        Get configuration for a specific source.

        Args:
            source: Source name ('etopo1', 'worldclim', 'soilgrids', 'ndep', 'co2')

        Returns:
            Source-specific configuration dictionary (empty if not configured)
        """
        return self._config['sources'].get(source, {})

    def get_configured_sources(self) -> List[str]:
        """Names of all sources with a configuration section"""
        return list(self._config['sources'].keys())

    def get_transform_config(self) -> Dict[str, Any]:
        """Get transformer constants"""
        return self._config['transform']

    def get_model_config(self) -> Dict[str, Any]:
        """Get downstream model constants"""
        return self._config['model']

    def get_sites(self) -> List[Dict[str, Any]]:
        """Get the configured site list"""
        return list(self._config.get('sites') or [])

    def to_dict(self) -> Dict[str, Any]:
        """Return complete configuration as dictionary"""
        return self._config.copy()

    def save_config(self, output_path: str):
        """
        Save current configuration to file.

        Args:
            output_path: Path where to save configuration file
        """
        output_path = Path(output_path)

        if output_path.suffix.lower() in ['.yaml', '.yml']:
            with open(output_path, 'w') as f:
                yaml.dump(self._config, f, default_flow_style=False, indent=2, sort_keys=False)
        elif output_path.suffix.lower() == '.json':
            with open(output_path, 'w') as f:
                json.dump(self._config, f, indent=2)
        else:
            raise ValueError(f"Unsupported output format: {output_path.suffix}")

    @classmethod
    def create_template_config(cls, output_path: Optional[str] = None) -> str:
        """
        Create a commented configuration template.

        Args:
            output_path: Optional path to save template (default: site_ingest_config.yaml)

        Returns:
            Path of the written template
        """
        template = cls._get_default_config()
        template['sites'] = [
            {'id': 'FR-Pue', 'lon': 3.5957, 'lat': 43.7413, 'elv': 270.0},
            {'id': 'US-Ha1', 'lon': -72.1715, 'lat': 42.5378, 'elv': 340.0},
        ]

        header = """# site_ingest - Configuration Template
# All options with defaults. Source directories are relative to
# processing.data_directory unless absolute.
#
# Environment variables can override processing settings:
#   SITE_INGEST_DATA_DIR, SITE_INGEST_LOG_LEVEL, SITE_INGEST_MAX_WORKERS

"""
        yaml_content = yaml.dump(template, default_flow_style=False, indent=2, sort_keys=False)
        yaml_content = cls._add_template_comments(yaml_content)

        output_file = Path(output_path) if output_path else Path("site_ingest_config.yaml")
        with open(output_file, 'w') as f:
            f.write(header + yaml_content)

        return str(output_file)

    @classmethod
    def _add_template_comments(cls, yaml_content: str) -> str:
        """Add section comments to the template"""
        section_comments = {
            'processing:': '# Processing configuration - data location, output, logging and workers',
            'sources:': '\n# Source settings - variables, layers and year ranges per source',
            'transform:': '\n# Transformer constants - flux-to-energy factor and growing-season threshold',
            'model:': '\n# Photosynthesis model constants',
            'sites:': '\n# Sites to process'
        }

        commented_lines = []
        for line in yaml_content.split('\n'):
            comment = section_comments.get(line.strip())
            if comment and not line.startswith(' '):
                commented_lines.append(comment)
            commented_lines.append(line)

        return '\n'.join(commented_lines)
