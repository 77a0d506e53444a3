from __future__ import annotations

from typing import Any

from .buckets import Bucket, Sample, Thresholds, Tick, classify
from .graph import (
    DEFAULT_GROUP,
    CountValueSelector,
    GraphConsumer,
    GroupInfo,
    KeysSelector,
    SumAggregatorFactory,
)
from .labels import LabelFormatter, LabelTemplates, resolve_templates

TICKS_KEY = "ticks"


def ticks(formatter: LabelFormatter, thresholds: Thresholds) -> list[Tick]:
    return [Tick(index=int(bucket), label=formatter.label(bucket, thresholds)) for bucket in Bucket]


class SyntheticDistributionConsumer(GraphConsumer):
    """Counts samples per response time bucket.

    Samples are split into satisfied, tolerated, untolerated and failed
    buckets from the two thresholds. Each observed bucket becomes a series
    keyed by its label, and the result always carries the four ``ticks``
    so the chart axis is complete even for empty buckets.

    Both selectors and the ticks read the current thresholds, so a key and
    its label always name the same bucket.
    """

    def __init__(
        self,
        satisfied_threshold: int = 0,
        tolerated_threshold: int = 0,
        *,
        templates: LabelTemplates | None = None,
    ) -> None:
        super().__init__()
        self._satisfied_threshold = int(satisfied_threshold)
        self._tolerated_threshold = int(tolerated_threshold)
        self._formatter = LabelFormatter(templates or resolve_templates())

    @property
    def satisfied_threshold(self) -> int:
        return self._satisfied_threshold

    @satisfied_threshold.setter
    def satisfied_threshold(self, value: int) -> None:
        self._satisfied_threshold = int(value)

    @property
    def tolerated_threshold(self) -> int:
        return self._tolerated_threshold

    @tolerated_threshold.setter
    def tolerated_threshold(self, value: int) -> None:
        self._tolerated_threshold = int(value)

    @property
    def formatter(self) -> LabelFormatter:
        return self._formatter

    def thresholds(self) -> Thresholds:
        return Thresholds(satisfied=self._satisfied_threshold, tolerated=self._tolerated_threshold)

    def create_keys_selector(self) -> KeysSelector:
        def _select(sample: Sample) -> float:
            return float(classify(sample, self.thresholds()))

        return _select

    def create_group_infos(self) -> dict[str, GroupInfo]:
        formatter = self._formatter

        def _series(sample: Sample) -> list[str]:
            thresholds = self.thresholds()
            return [formatter.label(classify(sample, thresholds), thresholds)]

        return {
            DEFAULT_GROUP: GroupInfo(
                aggregator_factory=SumAggregatorFactory(),
                series_selector=_series,
                # transaction controller samples are not counted
                value_selector=CountValueSelector(ignore_controllers=True),
                enables_aggregated_keys_series=False,
                enables_controllers_discrimination=False,
            )
        }

    def initialize_extra_results(self, result: dict[str, Any]) -> None:
        result[TICKS_KEY] = [tick.to_list() for tick in ticks(self._formatter, self.thresholds())]
