"""JSON response bodies returned by the HTTP interface."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field, fields, is_dataclass
from typing import Any

from lagwatch_http.messages import ConsumerGroupStatus, ConsumerPartition


def _j(key: str, **kwargs: Any) -> Any:
    return field(metadata={"json": key}, **kwargs)


def to_json_dict(obj: Any) -> Any:
    """Convert a response object into plain JSON-ready data."""
    to_dict = getattr(obj, "to_dict", None)
    if callable(to_dict):
        return to_dict()
    if is_dataclass(obj) and not isinstance(obj, type):
        return {
            f.metadata.get("json", f.name): to_json_dict(getattr(obj, f.name))
            for f in fields(obj)
        }
    if isinstance(obj, dict):
        return {str(key): to_json_dict(value) for key, value in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [to_json_dict(item) for item in obj]
    if isinstance(obj, enum.Enum):
        return obj.value
    return obj


@dataclass(kw_only=True)
class RequestInfo:
    uri: str = _j("url", default="")
    host: str = _j("host", default="")


@dataclass(kw_only=True)
class ErrorResponse:
    error: bool = _j("error", default=False)
    message: str = _j("message", default="")
    request: RequestInfo = _j("request", default_factory=RequestInfo)


@dataclass(kw_only=True)
class LogLevelResponse:
    error: bool = _j("error", default=False)
    message: str = _j("message", default="")
    level: str = _j("level", default="")
    request: RequestInfo = _j("request", default_factory=RequestInfo)


@dataclass(kw_only=True)
class TLSProfile:
    name: str = _j("name", default="")
    noverify: bool = _j("noverify", default=False)
    certfile: str = _j("certfile", default="")
    keyfile: str = _j("keyfile", default="")
    cafile: str = _j("cafile", default="")


@dataclass(kw_only=True)
class SASLProfile:
    name: str = _j("name", default="")
    handshake_first: bool = _j("handshake-first", default=False)
    username: str = _j("username", default="")


@dataclass(kw_only=True)
class ClientProfile:
    name: str = _j("name", default="")
    client_id: str = _j("client-id", default="")
    kafka_version: str = _j("kafka-version", default="")
    tls: TLSProfile | None = _j("tls", default=None)
    sasl: SASLProfile | None = _j("sasl", default=None)


@dataclass(kw_only=True)
class ClusterListResponse:
    error: bool = _j("error", default=False)
    message: str = _j("message", default="")
    clusters: list[str] = _j("clusters", default_factory=list)
    request: RequestInfo = _j("request", default_factory=RequestInfo)


@dataclass(kw_only=True)
class TopicListResponse:
    error: bool = _j("error", default=False)
    message: str = _j("message", default="")
    topics: list[str] = _j("topics", default_factory=list)
    request: RequestInfo = _j("request", default_factory=RequestInfo)


@dataclass(kw_only=True)
class TopicDetailResponse:
    error: bool = _j("error", default=False)
    message: str = _j("message", default="")
    offsets: list[int] = _j("offsets", default_factory=list)
    request: RequestInfo = _j("request", default_factory=RequestInfo)


@dataclass(kw_only=True)
class TopicConsumerResponse:
    error: bool = _j("error", default=False)
    message: str = _j("message", default="")
    consumers: list[str] = _j("consumers", default_factory=list)
    request: RequestInfo = _j("request", default_factory=RequestInfo)


@dataclass(kw_only=True)
class ConsumerListResponse:
    error: bool = _j("error", default=False)
    message: str = _j("message", default="")
    consumers: list[str] = _j("consumers", default_factory=list)
    request: RequestInfo = _j("request", default_factory=RequestInfo)


@dataclass(kw_only=True)
class ConsumerDetailResponse:
    error: bool = _j("error", default=False)
    message: str = _j("message", default="")
    topics: dict[str, list[ConsumerPartition]] = _j("topics", default_factory=dict)
    request: RequestInfo = _j("request", default_factory=RequestInfo)


@dataclass(kw_only=True)
class ConsumerStatusResponse:
    error: bool = _j("error", default=False)
    message: str = _j("message", default="")
    status: ConsumerGroupStatus = _j("status", default_factory=ConsumerGroupStatus)
    request: RequestInfo = _j("request", default_factory=RequestInfo)


@dataclass(kw_only=True)
class ConfigGeneral:
    pidfile: str = _j("pidfile", default="")
    stdout_logfile: str = _j("stdout-logfile", default="")
    access_control_allow_origin: str = _j("access-control-allow-origin", default="")


@dataclass(kw_only=True)
class ConfigLogging:
    filename: str = _j("filename", default="")
    max_size: int = _j("max-size", default=0)
    max_backups: int = _j("max-backups", default=0)
    max_age: int = _j("max-age", default=0)
    use_local_time: bool = _j("use-local-time", default=False)
    use_compression: bool = _j("use-compression", default=False)
    level: str = _j("level", default="")


@dataclass(kw_only=True)
class ConfigZookeeper:
    servers: list[str] = _j("servers", default_factory=list)
    timeout: int = _j("timeout", default=0)
    root_path: str = _j("root-path", default="")


@dataclass(kw_only=True)
class ConfigHTTPServer:
    address: str = _j("address", default="")
    tls: str = _j("tls", default="")
    timeout: int = _j("timeout", default=0)


@dataclass(kw_only=True)
class ConfigMainResponse:
    error: bool = _j("error", default=False)
    message: str = _j("message", default="")
    request: RequestInfo = _j("request", default_factory=RequestInfo)
    general: ConfigGeneral = _j("general", default_factory=ConfigGeneral)
    logging: ConfigLogging = _j("logging", default_factory=ConfigLogging)
    zookeeper: ConfigZookeeper = _j("zookeeper", default_factory=ConfigZookeeper)
    httpserver: dict[str, ConfigHTTPServer] = _j("httpserver", default_factory=dict)


@dataclass(kw_only=True)
class ModuleListResponse:
    error: bool = _j("error", default=False)
    message: str = _j("message", default="")
    request: RequestInfo = _j("request", default_factory=RequestInfo)
    coordinator: str = _j("coordinator", default="")
    modules: list[str] = _j("modules", default_factory=list)


@dataclass(kw_only=True)
class ModuleDetailResponse:
    error: bool = _j("error", default=False)
    message: str = _j("message", default="")
    module: Any = _j("module", default=None)
    request: RequestInfo = _j("request", default_factory=RequestInfo)


@dataclass(kw_only=True)
class StorageModule:
    class_name: str = _j("class-name", default="")
    intervals: int = _j("intervals", default=0)
    min_distance: int = _j("min-distance", default=0)
    group_allowlist: str = _j("group-allowlist", default="")
    expire_group: int = _j("expire-group", default=0)


@dataclass(kw_only=True)
class ClusterModule:
    class_name: str = _j("class-name", default="")
    servers: list[str] = _j("servers", default_factory=list)
    client_profile: ClientProfile = _j("client-profile", default_factory=ClientProfile)
    topic_refresh: int = _j("topic-refresh", default=0)
    offset_refresh: int = _j("offset-refresh", default=0)


@dataclass(kw_only=True)
class ConsumerModule:
    class_name: str = _j("class-name", default="")
    cluster: str = _j("cluster", default="")
    servers: list[str] = _j("servers", default_factory=list)
    group_allowlist: str = _j("group-allowlist", default="")
    zookeeper_path: str = _j("zookeeper-path", default="")
    zookeeper_timeout: int = _j("zookeeper-timeout", default=0)
    client_profile: ClientProfile = _j("client-profile", default_factory=ClientProfile)
    offsets_topic: str = _j("offsets-topic", default="")
    start_latest: bool = _j("start-latest", default=False)


@dataclass(kw_only=True)
class EvaluatorModule:
    class_name: str = _j("class-name", default="")
    expire_cache: int = _j("expire-cache", default=0)


@dataclass(kw_only=True)
class HTTPNotifierModule:
    class_name: str = _j("class-name", default="")
    group_allowlist: str = _j("group-allowlist", default="")
    interval: int = _j("interval", default=0)
    threshold: int = _j("threshold", default=0)
    timeout: int = _j("timeout", default=0)
    keepalive: int = _j("keepalive", default=0)
    url_open: str = _j("url-open", default="")
    url_close: str = _j("url-close", default="")
    method_open: str = _j("method-open", default="")
    method_close: str = _j("method-close", default="")
    template_open: str = _j("template-open", default="")
    template_close: str = _j("template-close", default="")
    extras: dict[str, str] = _j("extra", default_factory=dict)
    send_close: bool = _j("send-close", default=False)
    extra_ca: str = _j("extra-ca", default="")
    noverify: str = _j("noverify", default="")


@dataclass(kw_only=True)
class SlackNotifierModule:
    class_name: str = _j("class-name", default="")
    group_allowlist: str = _j("group-allowlist", default="")
    interval: int = _j("interval", default=0)
    threshold: int = _j("threshold", default=0)
    timeout: int = _j("timeout", default=0)
    keepalive: int = _j("keepalive", default=0)
    template_open: str = _j("template-open", default="")
    template_close: str = _j("template-close", default="")
    extras: dict[str, str] = _j("extra", default_factory=dict)
    send_close: bool = _j("send-close", default=False)
    channel: str = _j("channel", default="")
    username: str = _j("username", default="")
    icon_url: str = _j("icon-url", default="")
    icon_emoji: str = _j("icon-emoji", default="")


@dataclass(kw_only=True)
class EmailNotifierModule:
    class_name: str = _j("class-name", default="")
    group_allowlist: str = _j("group-allowlist", default="")
    interval: int = _j("interval", default=0)
    threshold: int = _j("threshold", default=0)
    template_open: str = _j("template-open", default="")
    template_close: str = _j("template-close", default="")
    extras: dict[str, str] = _j("extra", default_factory=dict)
    send_close: bool = _j("send-close", default=False)
    server: str = _j("server", default="")
    port: int = _j("port", default=0)
    auth_type: str = _j("auth-type", default="")
    username: str = _j("username", default="")
    from_address: str = _j("from", default="")
    to_address: str = _j("to", default="")
    extra_ca: str = _j("extra-ca", default="")
    noverify: str = _j("noverify", default="")


@dataclass(kw_only=True)
class NullNotifierModule:
    class_name: str = _j("class-name", default="")
    group_allowlist: str = _j("group-allowlist", default="")
    interval: int = _j("interval", default=0)
    threshold: int = _j("threshold", default=0)
    template_open: str = _j("template-open", default="")
    template_close: str = _j("template-close", default="")
    extras: dict[str, str] = _j("extra", default_factory=dict)
    send_close: bool = _j("send-close", default=False)