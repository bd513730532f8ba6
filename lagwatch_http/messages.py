"""Messages exchanged with the storage and evaluator subsystems, and shared app state."""

from __future__ import annotations

import enum
import logging
import queue
import threading
from dataclasses import dataclass, field
from typing import Any


class StorageRequestType(enum.Enum):
    """Kinds of request that can be sent to the storage subsystem."""

    FETCH_CLUSTERS = "StorageFetchClusters"
    FETCH_TOPICS = "StorageFetchTopics"
    FETCH_TOPIC = "StorageFetchTopic"
    FETCH_CONSUMERS_FOR_TOPIC = "StorageFetchConsumersForTopic"
    FETCH_CONSUMERS = "StorageFetchConsumers"
    FETCH_CONSUMER = "StorageFetchConsumer"
    SET_DELETE_GROUP = "StorageSetDeleteGroup"


class StatusConstant(enum.IntEnum):
    """Status of a consumer group or partition, ordered by severity."""

    NOTFOUND = 0
    OK = 1
    WARN = 2
    ERR = 3
    STOP = 4
    STALL = 5
    REWIND = 6


@dataclass
class Lag:
    """Lag of a consumer at a given offset."""

    value: int = 0


@dataclass
class ConsumerOffset:
    """A committed offset with its timestamp and lag."""

    offset: int = 0
    timestamp: int = 0
    lag: Lag | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "offset": self.offset,
            "timestamp": self.timestamp,
            "lag": self.lag.value if self.lag is not None else None,
        }


def _offset_dict(offset: ConsumerOffset | None) -> dict[str, Any] | None:
    return offset.to_dict() if offset is not None else None


@dataclass
class ConsumerPartition:
    """Stored offsets and ownership of one partition for a consumer group."""

    offsets: list[ConsumerOffset | None] = field(default_factory=list)
    owner: str = ""
    client_id: str = ""
    current_lag: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "offsets": [_offset_dict(offset) for offset in self.offsets],
            "owner": self.owner,
            "client_id": self.client_id,
            "current-lag": self.current_lag,
        }


@dataclass
class PartitionStatus:
    """Evaluated status of one partition for a consumer group."""

    topic: str = ""
    partition: int = 0
    owner: str = ""
    client_id: str = ""
    status: StatusConstant = StatusConstant.NOTFOUND
    start: ConsumerOffset | None = None
    end: ConsumerOffset | None = None
    current_lag: int = 0
    complete: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "topic": self.topic,
            "partition": self.partition,
            "owner": self.owner,
            "client_id": self.client_id,
            "status": self.status.name,
            "start": _offset_dict(self.start),
            "end": _offset_dict(self.end),
            "current_lag": self.current_lag,
            "complete": self.complete,
        }


@dataclass
class ConsumerGroupStatus:
    """Evaluated status of a whole consumer group."""

    cluster: str = ""
    group: str = ""
    status: StatusConstant = StatusConstant.NOTFOUND
    complete: float = 0.0
    partitions: list[PartitionStatus] = field(default_factory=list)
    total_partitions: int = 0
    maxlag: PartitionStatus | None = None
    total_lag: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "cluster": self.cluster,
            "group": self.group,
            "status": self.status.name,
            "complete": self.complete,
            "partitions": [partition.to_dict() for partition in self.partitions],
            "partition_count": self.total_partitions,
            "maxlag": self.maxlag.to_dict() if self.maxlag is not None else None,
            "totallag": self.total_lag,
        }


@dataclass
class StorageRequest:
    """A request for the storage subsystem; the answer goes on ``reply``."""

    request_type: StorageRequestType
    cluster: str = ""
    topic: str = ""
    group: str = ""
    reply: queue.Queue | None = None


@dataclass
class EvaluatorRequest:
    """A request for the evaluator subsystem; the answer goes on ``reply``."""

    cluster: str
    group: str
    show_all: bool = False
    reply: queue.Queue | None = None


_LEVEL_ALIASES = {
    "debug": "debug",
    "trace": "debug",
    "info": "info",
    "warning": "warn",
    "warn": "warn",
    "error": "error",
    "fatal": "fatal",
}

_PYTHON_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "error": logging.ERROR,
    "fatal": logging.CRITICAL,
}


class LogLevel:
    """A thread-safe, changeable log level, optionally applied to a logger."""

    def __init__(self, level: str = "info", logger: logging.Logger | None = None) -> None:
        self._lock = threading.Lock()
        self._logger = logger
        self._level = "info"
        self.set_level(level)

    @property
    def level(self) -> str:
        with self._lock:
            return self._level

    def set_level(self, name: str) -> str:
        """Set the level by name; raises ValueError for an unknown name."""
        try:
            canonical = _LEVEL_ALIASES[name.lower()]
        except KeyError:
            raise ValueError(f"unknown log level: {name!r}") from None
        with self._lock:
            self._level = canonical
        if self._logger is not None:
            self._logger.setLevel(_PYTHON_LEVELS[canonical])
        return canonical


@dataclass
class ApplicationContext:
    """Channels to the storage and evaluator subsystems plus shared state."""

    storage_channel: queue.Queue = field(default_factory=queue.Queue)
    evaluator_channel: queue.Queue = field(default_factory=queue.Queue)
    log_level: LogLevel = field(default_factory=LogLevel)
    app_ready: bool = False

    def request_storage(
        self,
        request_type: StorageRequestType,
        cluster: str = "",
        topic: str = "",
        group: str = "",
    ) -> Any:
        """Send a storage request and block until its reply arrives."""
        reply: queue.Queue = queue.Queue()
        self.storage_channel.put(
            StorageRequest(request_type, cluster=cluster, topic=topic, group=group, reply=reply)
        )
        return reply.get()

    def send_storage(
        self,
        request_type: StorageRequestType,
        cluster: str = "",
        topic: str = "",
        group: str = "",
    ) -> None:
        """Send a storage request that expects no reply."""
        self.storage_channel.put(
            StorageRequest(request_type, cluster=cluster, topic=topic, group=group)
        )

    def request_evaluation(
        self, cluster: str, group: str, show_all: bool = False
    ) -> ConsumerGroupStatus | None:
        """Send an evaluator request and block until its reply arrives."""
        reply: queue.Queue = queue.Queue()
        self.evaluator_channel.put(
            EvaluatorRequest(cluster=cluster, group=group, show_all=show_all, reply=reply)
        )
        return reply.get()