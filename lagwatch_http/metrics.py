"""Gauge metrics of consumer lag and topic offsets in the text exposition format."""

from __future__ import annotations

import math
import threading
from collections.abc import Iterable, Mapping
from decimal import Decimal

from lagwatch_http.messages import (
    ApplicationContext,
    ConsumerGroupStatus,
    StatusConstant,
    StorageRequestType,
)
from lagwatch_http.web import Response

CONTENT_TYPE = "text/plain; version=0.0.4; charset=utf-8"

_GAUGES = {
    "total_lag": (
        "burrow_kafka_consumer_lag_total",
        "The sum of all partition current lag values for the group",
        ("cluster", "consumer_group"),
    ),
    "status": (
        "burrow_kafka_consumer_status",
        "The status of the consumer group. It is calculated from the highest status for the "
        "individual partitions. Statuses are an index list from NOTFOUND, OK, WARN, ERR, STOP, "
        "STALL, REWIND",
        ("cluster", "consumer_group"),
    ),
    "current_offset": (
        "burrow_kafka_consumer_current_offset",
        "Latest offset that Burrow is storing for this partition",
        ("cluster", "consumer_group", "topic", "partition"),
    ),
    "partition_lag": (
        "burrow_kafka_consumer_partition_lag",
        "Number of messages the consumer group is behind by for a partition as reported by Burrow",
        ("cluster", "consumer_group", "topic", "partition"),
    ),
    "topic_offset": (
        "burrow_kafka_topic_partition_offset",
        "Latest offset the topic that Burrow is storing for this partition",
        ("cluster", "topic", "partition"),
    ),
}


def _format_value(value: float) -> str:
    value = float(value)
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "+Inf" if value > 0 else "-Inf"
    if value == 0:
        return "0"
    sign = "-" if value < 0 else ""
    parsed = Decimal(repr(abs(value))).normalize().as_tuple()
    digits = "".join(str(d) for d in parsed.digits)
    count = len(digits)
    point = count + parsed.exponent
    exponent = point - 1
    if exponent < -4 or exponent >= 6:
        mantissa = digits[0] + ("." + digits[1:] if count > 1 else "")
        exp_sign = "-" if exponent < 0 else "+"
        return f"{sign}{mantissa}e{exp_sign}{abs(exponent):02d}"
    if point <= 0:
        return f"{sign}0.{'0' * -point}{digits}"
    if point >= count:
        return f"{sign}{digits}{'0' * (point - count)}"
    return f"{sign}{digits[:point]}.{digits[point:]}"


def _escape_label(value: str) -> str:
    return value.replace("\\", "\\\\").replace('"', '\\"').replace("\n", "\\n")


def _escape_help(text: str) -> str:
    return text.replace("\\", "\\\\").replace("\n", "\\n")


class GaugeVec:
    """A gauge family whose series are told apart by a fixed set of labels."""

    def __init__(self, name: str, help_text: str, label_names: Iterable[str]) -> None:
        self.name = name
        self.help_text = help_text
        self.label_names = tuple(label_names)
        self._values: dict[tuple[str, ...], float] = {}
        self._lock = threading.Lock()

    def set(self, labels: Mapping[str, str], value: float) -> None:
        """Set the series named by ``labels``; the labels must match exactly."""
        if set(labels) != set(self.label_names):
            raise ValueError(
                f"labels {sorted(labels)} do not match {sorted(self.label_names)} for {self.name}"
            )
        key = tuple(str(labels[name]) for name in self.label_names)
        with self._lock:
            self._values[key] = float(value)

    def render(self) -> str:
        """Render the family, or an empty string if it has no series."""
        with self._lock:
            values = dict(self._values)
        if not values:
            return ""
        order = sorted(range(len(self.label_names)), key=lambda i: self.label_names[i])
        rows = sorted(
            (tuple(key[i] for i in order), value) for key, value in values.items()
        )
        lines = [
            f"# HELP {self.name} {_escape_help(self.help_text)}",
            f"# TYPE {self.name} gauge",
        ]
        for key, value in rows:
            pairs = ",".join(
                f'{self.label_names[i]}="{_escape_label(v)}"' for i, v in zip(order, key)
            )
            lines.append(f"{self.name}{{{pairs}}} {_format_value(value)}")
        return "\n".join(lines) + "\n"


class MetricsRegistry:
    """A set of gauge families rendered together, sorted by name."""

    def __init__(self) -> None:
        self._gauges: dict[str, GaugeVec] = {}
        self._lock = threading.Lock()

    def gauge(self, name: str, help_text: str, label_names: Iterable[str]) -> GaugeVec:
        """Return the named gauge, registering it on first use."""
        labels = tuple(label_names)
        with self._lock:
            existing = self._gauges.get(name)
            if existing is None:
                existing = GaugeVec(name, help_text, labels)
                self._gauges[name] = existing
            elif existing.label_names != labels:
                raise ValueError(f"gauge {name} already registered with other labels")
            return existing

    def render(self) -> str:
        with self._lock:
            gauges = sorted(self._gauges.values(), key=lambda gauge: gauge.name)
        return "".join(gauge.render() for gauge in gauges)


def list_clusters(app: ApplicationContext) -> list[str]:
    clusters = app.request_storage(StorageRequestType.FETCH_CLUSTERS)
    return list(clusters) if clusters is not None else []


def list_consumers(app: ApplicationContext, cluster: str) -> list[str]:
    consumers = app.request_storage(StorageRequestType.FETCH_CONSUMERS, cluster=cluster)
    return list(consumers) if consumers is not None else []


def get_full_consumer_status(
    app: ApplicationContext, cluster: str, consumer: str
) -> ConsumerGroupStatus | None:
    return app.request_evaluation(cluster, consumer, show_all=True)


def list_topics(app: ApplicationContext, cluster: str) -> list[str]:
    topics = app.request_storage(StorageRequestType.FETCH_TOPICS, cluster=cluster)
    return list(topics) if topics is not None else []


def get_topic_detail(app: ApplicationContext, cluster: str, topic: str) -> list[int]:
    offsets = app.request_storage(StorageRequestType.FETCH_TOPIC, cluster=cluster, topic=topic)
    return list(offsets) if offsets is not None else []


def collect_metrics(app: ApplicationContext, registry: MetricsRegistry) -> None:
    """Update every gauge from the current storage and evaluator state."""
    gauges = {key: registry.gauge(*spec) for key, spec in _GAUGES.items()}
    for cluster in list_clusters(app):
        for consumer in list_consumers(app, cluster):
            status = get_full_consumer_status(app, cluster, consumer)
            if status is None or status.status == StatusConstant.NOTFOUND:
                continue
            group_labels = {"cluster": cluster, "consumer_group": consumer}
            gauges["total_lag"].set(group_labels, status.total_lag)
            gauges["status"].set(group_labels, int(status.status))
            for partition in status.partitions:
                labels = {
                    **group_labels,
                    "topic": partition.topic,
                    "partition": str(partition.partition),
                }
                gauges["partition_lag"].set(labels, partition.current_lag)
                if partition.complete == 1.0 and partition.end is not None:
                    gauges["current_offset"].set(labels, partition.end.offset)
        for topic in list_topics(app, cluster):
            for number, offset in enumerate(get_topic_detail(app, cluster, topic)):
                gauges["topic_offset"].set(
                    {"cluster": cluster, "topic": topic, "partition": str(number)}, offset
                )


def metrics_response(app: ApplicationContext, registry: MetricsRegistry) -> Response:
    """Collect the metrics and answer with their text exposition."""
    collect_metrics(app, registry)
    return Response(
        status=200,
        headers={"Content-Type": CONTENT_TYPE},
        body=registry.render().encode(),
    )