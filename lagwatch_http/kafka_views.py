"""Handlers that report clusters, topics and consumer groups over HTTP."""

from __future__ import annotations

from collections.abc import Mapping

from lagwatch_http.messages import (
    ApplicationContext,
    ConsumerGroupStatus,
    StatusConstant,
    StorageRequestType,
)
from lagwatch_http.responses import (
    ClientProfile,
    ClusterListResponse,
    ClusterModule,
    ConsumerDetailResponse,
    ConsumerListResponse,
    ConsumerStatusResponse,
    ErrorResponse,
    ModuleDetailResponse,
    SASLProfile,
    TLSProfile,
    TopicConsumerResponse,
    TopicDetailResponse,
    TopicListResponse,
)
from lagwatch_http.settings import Settings
from lagwatch_http.web import Request, Response, make_request_info, write_error_response, write_response


def get_tls_profile(settings: Settings, name: str) -> TLSProfile | None:
    """Describe the named TLS profile, or return None if it is not configured."""
    root = "tls." + name
    if not settings.is_set(root):
        return None
    return TLSProfile(
        name=name,
        certfile=settings.get_string(root + ".certfile"),
        keyfile=settings.get_string(root + ".keyfile"),
        cafile=settings.get_string(root + ".cafile"),
        noverify=settings.get_bool(root + ".noverify"),
    )


def get_sasl_profile(settings: Settings, name: str) -> SASLProfile | None:
    """Describe the named SASL profile, or return None if it is not configured."""
    root = "sasl." + name
    if not settings.is_set(root):
        return None
    return SASLProfile(
        name=name,
        handshake_first=settings.get_bool(root + ".handshake-first"),
        username=settings.get_string(root + ".username"),
    )


def get_client_profile(settings: Settings, name: str) -> ClientProfile:
    """Describe the named client profile with its TLS and SASL profiles."""
    root = "client-profile." + name
    return ClientProfile(
        name=name,
        client_id=settings.get_string(root + ".client-id"),
        kafka_version=settings.get_string(root + ".kafka-version"),
        tls=get_tls_profile(settings, settings.get_string(root + ".tls")),
        sasl=get_sasl_profile(settings, settings.get_string(root + ".sasl")),
    )


def cluster_list(
    app: ApplicationContext, settings: Settings, request: Request, params: Mapping[str, str]
) -> Response:
    """List the clusters known to storage."""
    clusters = app.request_storage(StorageRequestType.FETCH_CLUSTERS)
    return write_response(
        settings,
        request,
        200,
        ClusterListResponse(
            error=False,
            message="cluster list returned",
            clusters=list(clusters),
            request=make_request_info(request),
        ),
    )


def cluster_detail(
    app: ApplicationContext, settings: Settings, request: Request, params: Mapping[str, str]
) -> Response:
    """Return the configuration of one cluster module."""
    root = "cluster." + params.get("cluster", "")
    if not settings.is_set(root):
        return write_error_response(settings, request, 404, "cluster module not found")
    module = ClusterModule(
        class_name=settings.get_string(root + ".class-name"),
        servers=settings.get_string_list(root + ".servers"),
        topic_refresh=settings.get_int(root + ".topic-refresh"),
        offset_refresh=settings.get_int(root + ".offset-refresh"),
        client_profile=get_client_profile(settings, settings.get_string(root + ".client-profile")),
    )
    return write_response(
        settings,
        request,
        200,
        ModuleDetailResponse(
            error=False,
            message="cluster module detail returned",
            module=module,
            request=make_request_info(request),
        ),
    )


def topic_list(
    app: ApplicationContext, settings: Settings, request: Request, params: Mapping[str, str]
) -> Response:
    """List the topics of a cluster."""
    topics = app.request_storage(StorageRequestType.FETCH_TOPICS, cluster=params.get("cluster", ""))
    if topics is None:
        return write_error_response(settings, request, 404, "cluster not found")
    return write_response(
        settings,
        request,
        200,
        TopicListResponse(
            error=False,
            message="topic list returned",
            topics=list(topics),
            request=make_request_info(request),
        ),
    )


def topic_detail(
    app: ApplicationContext, settings: Settings, request: Request, params: Mapping[str, str]
) -> Response:
    """Return the latest offsets of each partition of a topic."""
    offsets = app.request_storage(
        StorageRequestType.FETCH_TOPIC,
        cluster=params.get("cluster", ""),
        topic=params.get("topic", ""),
    )
    if offsets is None:
        return write_error_response(settings, request, 404, "cluster or topic not found")
    return write_response(
        settings,
        request,
        200,
        TopicDetailResponse(
            error=False,
            message="topic offsets returned",
            offsets=list(offsets),
            request=make_request_info(request),
        ),
    )


def topic_consumer_list(
    app: ApplicationContext, settings: Settings, request: Request, params: Mapping[str, str]
) -> Response:
    """List the consumer groups that consume a topic."""
    consumers = app.request_storage(
        StorageRequestType.FETCH_CONSUMERS_FOR_TOPIC,
        cluster=params.get("cluster", ""),
        topic=params.get("topic", ""),
    )
    if consumers is None:
        return write_error_response(settings, request, 404, "cluster not found")
    return write_response(
        settings,
        request,
        200,
        TopicConsumerResponse(
            error=False,
            message="consumers of topic returned",
            consumers=list(consumers),
            request=make_request_info(request),
        ),
    )


def consumer_list(
    app: ApplicationContext, settings: Settings, request: Request, params: Mapping[str, str]
) -> Response:
    """List the consumer groups of a cluster."""
    consumers = app.request_storage(
        StorageRequestType.FETCH_CONSUMERS, cluster=params.get("cluster", "")
    )
    if consumers is None:
        return write_error_response(settings, request, 404, "cluster not found")
    return write_response(
        settings,
        request,
        200,
        ConsumerListResponse(
            error=False,
            message="consumer list returned",
            consumers=list(consumers),
            request=make_request_info(request),
        ),
    )


def consumer_detail(
    app: ApplicationContext, settings: Settings, request: Request, params: Mapping[str, str]
) -> Response:
    """Return the stored offsets of a consumer group, by topic."""
    topics = app.request_storage(
        StorageRequestType.FETCH_CONSUMER,
        cluster=params.get("cluster", ""),
        group=params.get("consumer", ""),
    )
    if topics is None:
        return write_error_response(settings, request, 404, "cluster or consumer not found")
    return write_response(
        settings,
        request,
        200,
        ConsumerDetailResponse(
            error=False,
            message="consumer detail returned",
            topics=dict(topics),
            request=make_request_info(request),
        ),
    )


def _status_response(
    app: ApplicationContext,
    settings: Settings,
    request: Request,
    params: Mapping[str, str],
    show_all: bool,
) -> Response:
    status: ConsumerGroupStatus | None = app.request_evaluation(
        params.get("cluster", ""), params.get("consumer", ""), show_all=show_all
    )
    if status is None:
        raise RuntimeError("evaluator returned no status")
    code = 404 if status.status == StatusConstant.NOTFOUND else 200
    return write_response(
        settings,
        request,
        code,
        ConsumerStatusResponse(
            error=False,
            message="consumer status returned",
            status=status,
            request=make_request_info(request),
        ),
    )


def consumer_status(
    app: ApplicationContext, settings: Settings, request: Request, params: Mapping[str, str]
) -> Response:
    """Return a consumer group's status with only the partitions of interest."""
    return _status_response(app, settings, request, params, show_all=False)


def consumer_status_complete(
    app: ApplicationContext, settings: Settings, request: Request, params: Mapping[str, str]
) -> Response:
    """Return a consumer group's status with every partition."""
    return _status_response(app, settings, request, params, show_all=True)


def consumer_delete(
    app: ApplicationContext, settings: Settings, request: Request, params: Mapping[str, str]
) -> Response:
    """Ask storage to forget a consumer group."""
    app.send_storage(
        StorageRequestType.SET_DELETE_GROUP,
        cluster=params.get("cluster", ""),
        group=params.get("consumer", ""),
    )
    return write_response(
        settings,
        request,
        200,
        ErrorResponse(
            error=False,
            message="consumer group removed",
            request=make_request_info(request),
        ),
    )