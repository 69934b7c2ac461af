#!/usr/bin/env python3
"""
Adapter Registry for Site Ingestion

Provides the registry that maps source names to adapter classes. The
registry is built once and consulted by the point extractor; dispatch is by
source name only.
"""

import logging
from typing import Dict, List, Optional, Any, Type

from .adapters import (
    BaseSourceAdapter,
    Co2Adapter,
    EtopoAdapter,
    NdepAdapter,
    SoilGridsAdapter,
    WorldClimAdapter,
)
from .logging_utils import InvalidSettings
from .source_variables import get_source_kind


logger = logging.getLogger(__name__)


class AdapterRegistry:
    """
    Registry of source adapters.

    Maps each source name to the adapter class implementing its extraction.
    Additional sources can be registered as long as they are part of the
    source vocabulary.
    """

    def __init__(self, adapters: Optional[Dict[str, Type[BaseSourceAdapter]]] = None):
        """
        Initialize registry.

        Args:
            adapters: Initial mapping of source name to adapter class
        """
        self._adapters: Dict[str, Type[BaseSourceAdapter]] = {}
        for source, adapter_class in (adapters or {}).items():
            self.register(source, adapter_class)

    def register(self, source: str, adapter_class: Type[BaseSourceAdapter]) -> None:
        """
        Register an adapter class for a source.

        Raises:
            InvalidSettings: If the source is not part of the vocabulary
        """
        try:
            get_source_kind(source)
        except KeyError as e:
            raise InvalidSettings(f"Cannot register adapter for unknown source: {source}") from e

        self._adapters[source] = adapter_class
        logger.debug(f"Registered {adapter_class.__name__} for {source}")

    def create_adapter(self, source: str, config: Optional[Dict[str, Any]] = None) -> BaseSourceAdapter:
        """
        Create adapter instance for a source.

        Args:
            source: Source name ('etopo1', 'worldclim', 'soilgrids', 'ndep', 'co2')
            config: Keyword arguments for the adapter (retry settings, options)

        Returns:
            BaseSourceAdapter: Configured adapter instance

        Raises:
            InvalidSettings: If no adapter is registered for the source
        """
        if source not in self._adapters:
            raise InvalidSettings(
                f"No adapter registered for source: {source}. Available: {self.available_sources()}",
                {'source': source})

        adapter_class = self._adapters[source]
        return adapter_class(**(config or {}))

    def available_sources(self) -> List[str]:
        """Sources with a registered adapter"""
        return list(self._adapters.keys())

    def get_adapter_info(self) -> Dict[str, Dict[str, str]]:
        """
        Get information about registered adapters.

        Returns:
            dict: Adapter class and source family per source
        """
        return {
            source: {
                'class': adapter_class.__name__,
                'kind': get_source_kind(source).value,
            }
            for source, adapter_class in self._adapters.items()
        }


DEFAULT_ADAPTERS: Dict[str, Type[BaseSourceAdapter]] = {
    'etopo1': EtopoAdapter,
    'worldclim': WorldClimAdapter,
    'soilgrids': SoilGridsAdapter,
    'ndep': NdepAdapter,
    'co2': Co2Adapter,
}


def default_registry() -> AdapterRegistry:
    """Registry with every built-in adapter."""
    return AdapterRegistry(DEFAULT_ADAPTERS)
