"""Pull interface turning store snapshots into metric samples."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Iterator, List, Tuple

from prometheus_client.core import GaugeMetricFamily
from prometheus_client.registry import Collector

from .models import ObservationRecord, TargetKind
from .store import StateStore

logger = logging.getLogger(__name__)

PATH_LABEL = "path"


@dataclass(frozen=True)
class MetricDescriptor:
    """Static description of one metric this exporter can emit."""

    name: str
    help: str
    kind: TargetKind
    labels: Tuple[str, ...] = (PATH_LABEL,)


@dataclass(frozen=True)
class MetricSample:
    name: str
    path: str
    value: float


FILE_EXISTS = MetricDescriptor("file_exists", "Indicates whether a file exists (1) or not (0)", TargetKind.FILE)
FILE_CHANGE_COUNT = MetricDescriptor(
    "file_change_count", "Number of times the file content has changed since last reset", TargetKind.FILE
)
FILE_PERMISSION_BITS = MetricDescriptor(
    "file_permission_bits", "Current file permissions in numeric format (e.g. 644)", TargetKind.FILE
)
FILE_SIZE_BYTES = MetricDescriptor("file_size_bytes", "Current file size in bytes", TargetKind.FILE)
DIR_EXISTS = MetricDescriptor(
    "dir_exists", "Indicates whether a directory exists (1) or not (0)", TargetKind.DIRECTORY
)
DIR_SIZE_BYTES = MetricDescriptor("dir_size_bytes", "Total size of directory in bytes", TargetKind.DIRECTORY)
DIR_ENTRY_COUNT = MetricDescriptor(
    "dir_entry_count", "Total number of files in directory", TargetKind.DIRECTORY
)

DESCRIPTORS: Tuple[MetricDescriptor, ...] = (
    FILE_EXISTS,
    FILE_CHANGE_COUNT,
    FILE_PERMISSION_BITS,
    FILE_SIZE_BYTES,
    DIR_EXISTS,
    DIR_SIZE_BYTES,
    DIR_ENTRY_COUNT,
)


class SnapshotCollector:
    """Answers describe/collect requests from one consistent store snapshot."""

    def __init__(self, store: StateStore):
        self._store = store

    def describe(self) -> List[MetricDescriptor]:
        return list(DESCRIPTORS)

    def collect(self) -> List[MetricSample]:
        snapshot = self._store.snapshot()
        samples: List[MetricSample] = []
        for target in sorted(snapshot, key=lambda item: (item.kind.value, item.path)):
            samples.extend(_samples_for(snapshot[target]))
        return samples


def _samples_for(record: ObservationRecord) -> List[MetricSample]:
    path = record.target.path
    exists = 1.0 if record.exists else 0.0
    if record.target.kind is TargetKind.DIRECTORY:
        samples = [MetricSample(DIR_EXISTS.name, path, exists)]
        if record.exists:
            samples.append(MetricSample(DIR_SIZE_BYTES.name, path, float(record.size)))
            samples.append(MetricSample(DIR_ENTRY_COUNT.name, path, float(record.entry_count)))
        return samples

    samples = [
        MetricSample(FILE_EXISTS.name, path, exists),
        MetricSample(FILE_CHANGE_COUNT.name, path, float(record.change_count)),
    ]
    if record.exists:
        samples.append(MetricSample(FILE_PERMISSION_BITS.name, path, float(record.permission_bits)))
        samples.append(MetricSample(FILE_SIZE_BYTES.name, path, float(record.size)))
    return samples


class PrometheusCollector(Collector):
    """Adapter registering a SnapshotCollector with a prometheus_client registry."""

    def __init__(self, source: SnapshotCollector):
        self._source = source

    def describe(self) -> Iterator[GaugeMetricFamily]:
        for descriptor in self._source.describe():
            yield _family(descriptor)

    def collect(self) -> Iterator[GaugeMetricFamily]:
        families: Dict[str, GaugeMetricFamily] = {
            descriptor.name: _family(descriptor) for descriptor in self._source.describe()
        }
        for sample in self._source.collect():
            family = families.get(sample.name)
            if family is None:
                logger.warning("Dropping sample for undeclared metric %s", sample.name)
                continue
            family.add_metric([sample.path], sample.value)
        yield from families.values()


def _family(descriptor: MetricDescriptor) -> GaugeMetricFamily:
    return GaugeMetricFamily(descriptor.name, descriptor.help, labels=list(descriptor.labels))
