from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Protocol

from .buckets import Sample

DEFAULT_GROUP = "Generic group"
OVERALL_SERIES = "Overall"

KeysSelector = Callable[[Sample], float]
SeriesSelector = Callable[[Sample], Iterable[str]]


class Aggregator(Protocol):
    def add_value(self, value: float) -> None:
        ...

    def result(self) -> float:
        ...

    @property
    def count(self) -> int:
        ...


@dataclass(slots=True)
class SumAggregator:
    _total: float = 0.0
    _count: int = 0

    def add_value(self, value: float) -> None:
        self._total += value
        self._count += 1

    def result(self) -> float:
        return self._total

    @property
    def count(self) -> int:
        return self._count


class SumAggregatorFactory:
    def create(self) -> SumAggregator:
        return SumAggregator()


@dataclass(frozen=True, slots=True)
class CountValueSelector:
    ignore_controllers: bool

    def select(self, series: str, sample: Sample) -> float | None:
        if self.ignore_controllers and sample.controller:
            return None
        return 1.0


@dataclass(frozen=True, slots=True)
class GroupInfo:
    aggregator_factory: SumAggregatorFactory
    series_selector: SeriesSelector
    value_selector: CountValueSelector
    enables_aggregated_keys_series: bool = False
    enables_controllers_discrimination: bool = False


@dataclass(slots=True)
class _SeriesData:
    aggregators: dict[float, Aggregator] = field(default_factory=dict)
    first_key: float | None = None


class GraphConsumer:
    """Groups samples into (series, key) cells and aggregates one value per cell.

    Subclasses provide the keys selector, the group definitions and any
    static extra results. ``consume`` may be called from several threads;
    the cells are guarded by a single lock.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._keys_selector: KeysSelector | None = None
        self._groups: dict[str, GroupInfo] | None = None
        self._series: dict[str, dict[str, _SeriesData]] = {}

    def create_keys_selector(self) -> KeysSelector:
        raise NotImplementedError

    def create_group_infos(self) -> dict[str, GroupInfo]:
        raise NotImplementedError

    def initialize_extra_results(self, result: dict[str, Any]) -> None:
        return None

    def start(self) -> None:
        with self._lock:
            if self._groups is not None:
                return
            self._keys_selector = self.create_keys_selector()
            self._groups = self.create_group_infos()
            self._series = {name: {} for name in self._groups}

    def consume(self, sample: Sample) -> None:
        if self._groups is None or self._keys_selector is None:
            self.start()
        key = float(self._keys_selector(sample))
        for group_name, info in self._groups.items():
            names = list(info.series_selector(sample))
            if info.enables_aggregated_keys_series:
                names.append(OVERALL_SERIES)
            for series in names:
                value = info.value_selector.select(series, sample)
                if value is None:
                    continue
                with self._lock:
                    data = self._series[group_name].get(series)
                    if data is None:
                        data = _SeriesData(first_key=key)
                        self._series[group_name][series] = data
                    aggregator = data.aggregators.get(key)
                    if aggregator is None:
                        aggregator = info.aggregator_factory.create()
                        data.aggregators[key] = aggregator
                    aggregator.add_value(value)

    def produce(self) -> dict[str, dict[str, Any]]:
        if self._groups is None:
            self.start()
        results: dict[str, dict[str, Any]] = {}
        with self._lock:
            for group_name, info in self._groups.items():
                results[group_name] = self._group_result(info, self._series[group_name])
        for result in results.values():
            self.initialize_extra_results(result)
        return results

    def _group_result(self, info: GroupInfo, series: dict[str, _SeriesData]) -> dict[str, Any]:
        ordered = sorted(
            series.items(),
            key=lambda item: (item[0] == OVERALL_SERIES, item[1].first_key or 0.0),
        )
        series_payload: list[dict[str, Any]] = []
        keys: list[float] = []
        values: list[float] = []
        for label, data in ordered:
            points = []
            for key in sorted(data.aggregators):
                value = data.aggregators[key].result()
                points.append([_number(key), _number(value)])
                keys.append(key)
                values.append(value)
            series_payload.append({"label": label, "isController": False, "data": points})
        return {
            "supportsControllersDiscrimination": info.enables_controllers_discrimination,
            "minX": _number(min(keys)) if keys else None,
            "maxX": _number(max(keys)) if keys else None,
            "minY": _number(min(values)) if values else None,
            "maxY": _number(max(values)) if values else None,
            "series": series_payload,
        }


def _number(value: float) -> int | float:
    if float(value).is_integer():
        return int(value)
    return value
