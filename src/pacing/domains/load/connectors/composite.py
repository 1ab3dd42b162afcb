"""Composite physiological sample source — merges sources with priority.

Each query asks sources in priority order and returns the first non-empty
result, so wearable readings take precedence over manual entries.
"""

from __future__ import annotations

import logging

from pacing.domains.load.connectors import PhysiologicalSampleSource
from pacing.domains.load.domain_logic.load_models import PhysiologicalSample, SignalKind

logger = logging.getLogger(__name__)


class CompositeSampleSource:
    """Merges PhysiologicalSampleSources with priority ordering.

    Usage::

        composite = CompositeSampleSource([wearable_source, stored_source])
        samples = await composite.get_samples(SignalKind.HRV, 30)
    """

    def __init__(self, sources: list[PhysiologicalSampleSource]) -> None:
        if not sources:
            raise ValueError("At least one sample source is required")
        self._sources = sources
        self._last_source = sources[0].data_source

    async def get_samples(
        self, signal: SignalKind, lookback_days: int
    ) -> list[PhysiologicalSample]:
        """Return samples from the highest-priority source that has any."""
        for source in self._sources:
            result = await source.get_samples(signal, lookback_days)
            if result:
                self._last_source = source.data_source
                logger.debug("%s samples served by %s", signal.value, source.data_source)
                return result
        return []

    @property
    def data_source(self) -> str:
        """Data source that answered the most recent query."""
        return self._last_source

    @property
    def priority(self) -> list[str]:
        return [s.data_source for s in self._sources]
