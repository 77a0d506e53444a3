from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum


class Bucket(IntEnum):
    SATISFIED = 0
    TOLERATED = 1
    UNTOLERATED = 2
    FAILED = 3


@dataclass(frozen=True, slots=True)
class Sample:
    elapsed_time: int
    success: bool
    # Transaction controller (parent) record wrapping child samples.
    controller: bool = False


@dataclass(frozen=True, slots=True)
class Thresholds:
    """Response time boundaries in milliseconds.

    No ordering is enforced between the two values. With
    ``satisfied > tolerated`` the tolerated bucket can never be reached,
    which is the accepted behaviour.
    """

    satisfied: int
    tolerated: int


def classify(sample: Sample, thresholds: Thresholds) -> Bucket:
    if not sample.success:
        return Bucket.FAILED
    elapsed = sample.elapsed_time
    if elapsed <= thresholds.satisfied:
        return Bucket.SATISFIED
    if elapsed <= thresholds.tolerated:
        return Bucket.TOLERATED
    return Bucket.UNTOLERATED


@dataclass(frozen=True, slots=True)
class BucketClassifier:
    thresholds: Thresholds

    def __call__(self, sample: Sample) -> Bucket:
        return classify(sample, self.thresholds)


@dataclass(frozen=True, slots=True)
class Tick:
    index: int
    label: str

    def to_list(self) -> list[object]:
        return [int(self.index), self.label]
