#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
SourceTrace v0.1.0

Configuration schema for SourceTrace.

Defines all available configuration parameters with defaults and validation.

Author: SourceTrace Development Team
License: MIT
"""

import copy
from typing import Dict, Any, Optional, List
from pathlib import Path
import yaml


# Default configuration values
DEFAULT_CONFIG = {
    # ========================================================================
    # Traceback
    # ========================================================================
    'traceback': {
        'method': 7,  # 1-11, see `sourcetrace methods`
        'feasibility_fraction': 0.9,  # Fraction P of contaminated nodes a farm must reach
        'transport_dev_frac': 0.1,  # Transit-time std-dev as a fraction of its mean
        'num_workers': 1,  # Threads for per-source evaluation
    },

    # ========================================================================
    # Time Model
    # ========================================================================
    'model': {
        'transport_speed': 630.0,  # Distance units per day
        'delay_mean': 8.5,  # Days: two storage rounds plus incubation
        'delay_variance': 12.25,  # Days^2
        'pseudo_inverse_fallback': False,  # Tolerate singular covariances
    },

    # ========================================================================
    # Exact Enumeration
    # ========================================================================
    'exact': {
        'max_trajectories': 1000000,  # Advisory bound per source
        'on_overflow': 'warn',  # 'warn', 'raise'
        'progress_interval': 10000,  # Trajectories between progress reports
    },

    # ========================================================================
    # Output
    # ========================================================================
    'output': {
        'format': 'json',  # 'json', 'yaml'
        'include_failures': True,

        # Logging
        'logging': {
            'level': 'INFO',  # 'DEBUG', 'INFO', 'WARNING', 'ERROR'
            'log_file': 'sourcetrace.log',
        },
    },
}

TEMPLATES = ['default', 'exact', 'bfs', 'maxp']


def load_config(config_path: Optional[Path] = None) -> Dict[str, Any]:
    """
    Load configuration from file or return defaults.

    Args:
        config_path: Path to YAML config file (None = use defaults)

    Returns:
        Configuration dictionary
    """
    config = copy.deepcopy(DEFAULT_CONFIG)

    if config_path:
        config_path = Path(config_path)
        if not config_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")
        with open(config_path) as f:
            user_config = yaml.safe_load(f)

        # Deep merge user config into defaults
        if user_config:
            config = _deep_merge(config, user_config)

    return config


def _deep_merge(base: Dict, override: Dict) -> Dict:
    """
    Deep merge two dictionaries.

    Args:
        base: Base dictionary
        override: Override dictionary

    Returns:
        Merged dictionary
    """
    result = base.copy()

    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value

    return result


def merge_overrides(config: Dict[str, Any], overrides: Dict[str, Any]) -> Dict[str, Any]:
    """
    Apply command-line overrides in dotted notation (e.g. 'traceback.method').

    None values are ignored so unset CLI options keep the file/default value.
    """
    config = copy.deepcopy(config)
    for key, value in overrides.items():
        if value is None:
            continue
        keys = key.split('.')
        target = config
        for k in keys[:-1]:
            target = target.setdefault(k, {})
        target[keys[-1]] = value
    return config


def save_config_template(output_path: Path, template: str = 'default'):
    """
    Save a configuration template to file.

    Args:
        output_path: Output file path
        template: Template type ('default', 'exact', 'bfs', 'maxp')
    """
    if template not in TEMPLATES:
        raise ValueError(f"Unknown template '{template}', choose from {TEMPLATES}")

    config = copy.deepcopy(DEFAULT_CONFIG)

    # Customize for specific templates
    if template == 'exact':
        config['traceback']['method'] = 3
        config['exact']['on_overflow'] = 'raise'

    elif template == 'bfs':
        config['traceback']['method'] = 7

    elif template == 'maxp':
        config['traceback']['method'] = 11

    with open(output_path, 'w') as f:
        yaml.dump(config, f, default_flow_style=False, sort_keys=False)


def validate_config(config: Dict[str, Any]) -> List[str]:
    """
    Validate configuration dictionary.

    Args:
        config: Configuration to validate

    Returns:
        List of validation errors (empty if valid)
    """
    errors = []

    # Validate traceback settings
    traceback_cfg = config.get('traceback', {})
    method = traceback_cfg.get('method')
    if not isinstance(method, int) or isinstance(method, bool) or not 1 <= method <= 11:
        errors.append(f"Invalid traceback.method: {method} (must be an integer 1-11)")

    fraction = traceback_cfg.get('feasibility_fraction')
    if not isinstance(fraction, (int, float)) or fraction <= 0:
        errors.append(f"Invalid traceback.feasibility_fraction: {fraction} (must be > 0)")

    dev_frac = traceback_cfg.get('transport_dev_frac')
    if not isinstance(dev_frac, (int, float)) or dev_frac < 0:
        errors.append(f"Invalid traceback.transport_dev_frac: {dev_frac} (must be >= 0)")

    workers = traceback_cfg.get('num_workers')
    if not isinstance(workers, int) or workers < 1:
        errors.append(f"Invalid traceback.num_workers: {workers} (must be >= 1)")

    # Validate time model
    model = config.get('model', {})
    if not isinstance(model.get('transport_speed'), (int, float)) or model.get('transport_speed') <= 0:
        errors.append(f"Invalid model.transport_speed: {model.get('transport_speed')} (must be > 0)")
    if not isinstance(model.get('delay_variance'), (int, float)) or model.get('delay_variance') < 0:
        errors.append(f"Invalid model.delay_variance: {model.get('delay_variance')} (must be >= 0)")
    if not isinstance(model.get('delay_mean'), (int, float)):
        errors.append(f"Invalid model.delay_mean: {model.get('delay_mean')}")

    # Validate exact enumeration
    exact = config.get('exact', {})
    if exact.get('on_overflow') not in ('warn', 'raise'):
        errors.append(f"Invalid exact.on_overflow: {exact.get('on_overflow')} (must be 'warn' or 'raise')")
    for key in ('max_trajectories', 'progress_interval'):
        value = exact.get(key)
        if not isinstance(value, int) or value < 1:
            errors.append(f"Invalid exact.{key}: {value} (must be a positive integer)")

    # Validate output
    output = config.get('output', {})
    if output.get('format') not in ('json', 'yaml'):
        errors.append(f"Invalid output.format: {output.get('format')}")
    level = output.get('logging', {}).get('level')
    if level not in ('DEBUG', 'INFO', 'WARNING', 'ERROR'):
        errors.append(f"Invalid output.logging.level: {level}")

    return errors

# SourceTrace v0.1.0
# Any usage is subject to this software's license.
