"""Configuration: extends flattening, rule option validation and registry resolution."""

from .extends import define_config, flatten_configs, resolve_extends_reference
from .layers import concat_option_layers, merge_option_layers, to_option_layers, url_layer
from .loader import find_config_file, load_config_file
from .options import parse_rule_options
from .resolve import ResolvedConfiguration, resolve_configuration
from .schema import ConfigObject

__all__ = [
    "ConfigObject",
    "ResolvedConfiguration",
    "concat_option_layers",
    "define_config",
    "find_config_file",
    "flatten_configs",
    "load_config_file",
    "merge_option_layers",
    "parse_rule_options",
    "resolve_configuration",
    "resolve_extends_reference",
    "to_option_layers",
    "url_layer",
]
