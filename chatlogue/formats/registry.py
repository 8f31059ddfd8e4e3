"""Format registry: pick the plugin that understands a file.

Detection reads a bounded prefix of the candidate file and asks every
registered plugin whether it recognizes it. A feature either matches on
all of its signature conditions or not at all; among matches the highest
``priority`` wins, and registration order breaks ties.

Usage:
    registry = default_registry()
    plugin = registry.detect(Path("chat.json"))
    if plugin is None:
        ...  # format not recognized
    with plugin.parse(ParseOptions(file_path=path)) as events:
        for event in events:
            ...
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Optional

from chatlogue.config import get_settings
from chatlogue.errors import FormatNotRecognizedError, RegistryError
from chatlogue.lib.log import get_logger
from chatlogue.models import ParseOptions
from chatlogue.streaming import EventStream, decode_head, read_head_bytes

from .base import FormatFeature, FormatPlugin

logger = get_logger(__name__)


class FeatureRegistry:
    """Ordered lookup table of format plugins keyed by feature id."""

    def __init__(self, *, head_size: Optional[int] = None) -> None:
        self._plugins: dict[str, FormatPlugin] = {}
        self._head_size = head_size

    @property
    def head_size(self) -> int:
        return self._head_size or get_settings().detect_head_bytes

    def register(self, plugin: FormatPlugin) -> FormatPlugin:
        feature_id = plugin.feature.id
        if feature_id in self._plugins:
            raise RegistryError(f"Format feature already registered: {feature_id}")
        self._plugins[feature_id] = plugin
        logger.debug("format_registered", feature=feature_id, priority=plugin.feature.priority)
        return plugin

    def get(self, feature_id: str) -> FormatPlugin:
        try:
            return self._plugins[feature_id]
        except KeyError:
            raise RegistryError(f"Unknown format feature: {feature_id}") from None

    def plugins(self) -> list[FormatPlugin]:
        return list(self._plugins.values())

    def features(self) -> list[FormatFeature]:
        return [plugin.feature for plugin in self._plugins.values()]

    def __contains__(self, feature_id: object) -> bool:
        return feature_id in self._plugins

    def __len__(self) -> int:
        return len(self._plugins)

    def match(self, path: Path | str) -> list[FormatPlugin]:
        """All plugins recognizing ``path``, best candidate first."""
        path = Path(path)
        candidates = [p for p in self._plugins.values() if p.feature.accepts_extension(path)]
        if not candidates:
            return []
        try:
            head = decode_head(read_head_bytes(path, self.head_size))
        except OSError as exc:
            logger.warning("detect_read_failed", source=str(path), error=str(exc))
            return []
        matched = [plugin for plugin in candidates if plugin.matches(head)]
        # Stable sort keeps registration order among equal priorities.
        matched.sort(key=lambda plugin: -plugin.feature.priority)
        return matched

    def detect(self, path: Path | str) -> Optional[FormatPlugin]:
        """Return the best-matching plugin for ``path`` or ``None``."""
        matches = self.match(path)
        if not matches:
            logger.info("format_not_recognized", source=str(path))
            return None
        plugin = matches[0]
        logger.info(
            "format_detected",
            source=str(path),
            feature=plugin.feature.id,
            candidates=[p.feature.id for p in matches],
        )
        return plugin

    def parse(self, path: Path | str, **options: Any) -> EventStream:
        """Detect the format of ``path`` and start parsing it.

        Raises:
            FormatNotRecognizedError: If no registered feature matches.
        """
        plugin = self.detect(path)
        if plugin is None:
            raise FormatNotRecognizedError(path)
        return plugin.parse(ParseOptions(file_path=Path(path), **options))


__all__ = ["FeatureRegistry"]
