"""Configuration objects and helpers for ComChan.

Settings come from an optional ``comchan.yaml`` (see
:func:`runtime.find_config_file` for the search order) and are overridden by
command line flags. The resulting :class:`ComChanConfig` is passed to the
serial transport, the sessions and the explainer.
"""

from .runtime import (
    ComChanConfig,
    config_from_mapping,
    find_config_file,
    generate_default_config,
    load_config,
)

__all__ = [
    "ComChanConfig",
    "config_from_mapping",
    "find_config_file",
    "generate_default_config",
    "load_config",
]
