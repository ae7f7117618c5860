"""
Configuration file support for the codahd CLI.

Supports YAML and JSON config files with CLI argument override. The file
mirrors ``TransformConfig.to_dict()`` plus the I/O paths:

    input: counts.tsv
    output: results/pbmc_iqlr
    metadata: cell_annotations.csv
    method: group-iqlr
    method_params:
      groups: cell_type
      max_iter: 50
    pseudocount: s/gm            # or 0.5, or {mode: manual, value: 0.5}
    lognorm: false               # or true, or {scale_factor: 10000}
"""

import json
from argparse import Namespace
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from codahd.coda.config import LogNormConfig, PseudocountConfig
from codahd.coda.reference import parse_method
from codahd.core.errors import InvalidConfigError

CONFIG_KEYS = {
    'input', 'output', 'metadata', 'sample_col',
    'method', 'method_params', 'pseudocount', 'lognorm',
}

# method_params keys that have their own CLI flag
_METHOD_PARAM_ARGS = {
    'max_iter': 'max_iter',
    'tol': 'tol',
    'features': 'features',
    'groups': 'group_col',
    'basis': 'ilr_basis',
}


def load_config(config_path: Path) -> Dict[str, Any]:
    """
    Load configuration from YAML or JSON file.

    Parameters:
        config_path: Path to config file (.yaml, .yml, or .json)

    Returns:
        Dictionary with configuration values

    Raises:
        FileNotFoundError: If config file doesn't exist
        InvalidConfigError: If file format is unsupported or invalid

    Examples:
        >>> config = load_config(Path("iqlr.yaml"))
        >>> print(config['method'])
        iqlr
    """
    config_path = Path(config_path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    suffix = config_path.suffix.lower()
    if suffix not in ('.yaml', '.yml', '.json'):
        raise InvalidConfigError(
            f"Unsupported config format: {suffix}. "
            f"Use .yaml, .yml, or .json"
        )

    try:
        with open(config_path, 'r') as f:
            if suffix == '.json':
                config = json.load(f)
            else:
                config = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise InvalidConfigError(f"Invalid YAML in config file: {e}") from e
    except json.JSONDecodeError as e:
        raise InvalidConfigError(f"Invalid JSON in config file: {e}") from e

    if config is None:
        return {}

    if not isinstance(config, dict):
        raise InvalidConfigError("Config file must contain a dictionary/mapping at top level")

    return config


def validate_config(config: Dict[str, Any]) -> None:
    """
    Validate configuration structure and values.

    Builds every transform component once so that a bad method name,
    parameter, pseudo-count or lognorm setting is reported before any data
    is loaded.

    Raises:
        InvalidConfigError: With a description of the first problem found
    """
    unknown = sorted(set(config) - CONFIG_KEYS)
    if unknown:
        raise InvalidConfigError(
            f"Unknown config key(s): {unknown}. Accepted: {sorted(CONFIG_KEYS)}"
        )

    method_params = config.get('method_params') or {}
    if not isinstance(method_params, dict):
        raise InvalidConfigError("method_params must be a mapping")

    if 'method' in config:
        parse_method(config['method'], **method_params)
    elif method_params:
        raise InvalidConfigError("method_params given without method")

    if 'pseudocount' in config:
        PseudocountConfig.parse(config['pseudocount'])
    if 'lognorm' in config:
        LogNormConfig.parse(config['lognorm'])


def _merge_value(cli_value: Any, config_value: Any, was_explicitly_set: bool) -> Any:
    """
    Merge a single config value with CLI argument.

    Rules:
    - CLI args ALWAYS override config if explicitly set
    - If CLI arg not set, use config value
    - If neither set, keep CLI default
    """
    if was_explicitly_set:
        return cli_value
    if config_value is not None:
        return config_value
    return cli_value


def _explicit_args(cli_args: Optional[List[str]]) -> set:
    """Names (argparse dest form) of the long options present on the command line."""
    explicit = set()
    short_to_long = {'i': 'input', 'o': 'output', 'm': 'method', 'c': 'config', 'v': 'verbose'}
    for arg in cli_args or []:
        if arg.startswith('--'):
            explicit.add(arg[2:].split('=', 1)[0].replace('-', '_'))
        elif arg.startswith('-') and len(arg) == 2 and arg[1] in short_to_long:
            explicit.add(short_to_long[arg[1]])
    return explicit


def merge_config_with_args(
    config: Dict[str, Any],
    args: Namespace,
    cli_args: Optional[List[str]] = None,
) -> Namespace:
    """
    Merge config file values with CLI arguments.

    Priority (highest to lowest):
    1. Explicitly provided CLI arguments
    2. Config file values
    3. CLI argument defaults

    method_params without a dedicated flag (quantiles, n_mads, min_features)
    are carried in ``merged.method_params``.

    Parameters:
        config: Configuration dictionary from load_config()
        args: Parsed CLI arguments (argparse.Namespace)
        cli_args: Raw CLI arguments list (for detecting explicit values)
                  If None, assumes all args are defaults

    Returns:
        Updated Namespace with merged values
    """
    explicit = _explicit_args(cli_args)
    merged = Namespace(**vars(args))

    def merge(arg_name: str, config_value: Any) -> None:
        setattr(merged, arg_name, _merge_value(
            getattr(merged, arg_name, None), config_value, arg_name in explicit
        ))

    for key in ('input', 'output', 'metadata'):
        if config.get(key) is not None:
            merge(key, Path(config[key]))
    if 'sample_col' in config:
        merge('sample_col', config['sample_col'])

    if 'method' in config:
        merge('method', config['method'])

    extra_params = dict(getattr(merged, 'method_params', None) or {})
    for key, value in (config.get('method_params') or {}).items():
        if key in _METHOD_PARAM_ARGS:
            merge(_METHOD_PARAM_ARGS[key], list(value) if key == 'features' else value)
        else:
            extra_params[key] = value
    merged.method_params = extra_params

    if config.get('pseudocount') is not None:
        pseudocount = PseudocountConfig.parse(config['pseudocount'])
        merge('pseudocount', pseudocount.mode.value)
        if 'pseudocount' not in explicit:
            merge('pseudocount_value', pseudocount.value)

    lognorm = LogNormConfig.parse(config.get('lognorm'))
    if lognorm is not None:
        merge('lognorm', True)
        merge('scale_factor', lognorm.scale_factor)
        merge('already_log_normalized', lognorm.is_log_normalized or None)

    return merged
