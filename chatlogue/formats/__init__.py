"""Format plugins and the registry that selects among them.

- formats/base.py: FormatFeature, FormatPlugin, and the StreamingParser pipeline
- formats/registry.py: FeatureRegistry (detection and dispatch)
- formats/preprocess.py: raw-input repair hooks
- formats/echotrace.py, formats/chatlab.py: built-in plugins
"""

from __future__ import annotations

from .base import FormatFeature, FormatPlugin, Signatures, StreamingParser
from .chatlab import ChatLabParser
from .echotrace import EchotraceParser
from .preprocess import ControlCharacterRepair, IdentityPreprocessor, Preprocessor
from .registry import FeatureRegistry

BUILTIN_PLUGINS: tuple[type[FormatPlugin], ...] = (
    ChatLabParser,
    EchotraceParser,
)


def default_registry() -> FeatureRegistry:
    """A registry holding every built-in plugin, in a fixed order."""
    registry = FeatureRegistry()
    for plugin_class in BUILTIN_PLUGINS:
        registry.register(plugin_class())
    return registry


__all__ = [
    "BUILTIN_PLUGINS",
    "ChatLabParser",
    "ControlCharacterRepair",
    "EchotraceParser",
    "FeatureRegistry",
    "FormatFeature",
    "FormatPlugin",
    "IdentityPreprocessor",
    "Preprocessor",
    "Signatures",
    "StreamingParser",
    "default_registry",
]
