"""Handlers that report the loaded configuration over HTTP."""

from __future__ import annotations

from collections.abc import Mapping

from lagwatch_http.responses import (
    ClientProfile,
    ConfigGeneral,
    ConfigHTTPServer,
    ConfigLogging,
    ConfigMainResponse,
    ConfigZookeeper,
    ConsumerModule,
    EmailNotifierModule,
    EvaluatorModule,
    HTTPNotifierModule,
    ModuleDetailResponse,
    ModuleListResponse,
    NullNotifierModule,
    SASLProfile,
    SlackNotifierModule,
    StorageModule,
    TLSProfile,
)
from lagwatch_http.settings import Settings
from lagwatch_http.web import Request, Response, make_request_info, write_error_response, write_response


def _int32(value: int) -> int:
    return ((value + 2**31) % 2**32) - 2**31


def _tls_profile(settings: Settings, name: str) -> TLSProfile | None:
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


def _sasl_profile(settings: Settings, name: str) -> SASLProfile | None:
    root = "sasl." + name
    if not settings.is_set(root):
        return None
    return SASLProfile(
        name=name,
        handshake_first=settings.get_bool(root + ".handshake-first"),
        username=settings.get_string(root + ".username"),
    )


def _client_profile(settings: Settings, name: str) -> ClientProfile:
    root = "client-profile." + name
    return ClientProfile(
        name=name,
        client_id=settings.get_string(root + ".client-id"),
        kafka_version=settings.get_string(root + ".kafka-version"),
        tls=_tls_profile(settings, settings.get_string(root + ".tls")),
        sasl=_sasl_profile(settings, settings.get_string(root + ".sasl")),
    )


def config_main(settings: Settings, request: Request, params: Mapping[str, str]) -> Response:
    """Return the general, logging, zookeeper and HTTP server sections."""
    general = ConfigGeneral(
        pidfile=settings.get_string("general.pidfile"),
        stdout_logfile=settings.get_string("general.stdout-logfile"),
        access_control_allow_origin=settings.get_string("general.access-control-allow-origin"),
    )
    logging_section = ConfigLogging(
        filename=settings.get_string("logging.filename"),
        max_size=settings.get_int("logging.maxsize"),
        max_backups=settings.get_int("logging.maxbackups"),
        max_age=settings.get_int("logging.maxage"),
        use_local_time=settings.get_bool("logging.use-localtime"),
        use_compression=settings.get_bool("logging.use-compression"),
        level=settings.get_string("logging.level"),
    )
    zookeeper = ConfigZookeeper(
        servers=settings.get_string_list("zookeeper.servers"),
        timeout=settings.get_int("zookeeper.timeout"),
        root_path=settings.get_string("zookeeper.root-path"),
    )
    servers = {
        name: ConfigHTTPServer(
            address=settings.get_string(f"httpserver.{name}.address"),
            timeout=settings.get_int(f"httpserver.{name}.timeout"),
            tls=settings.get_string(f"httpserver.{name}.tls"),
        )
        for name in sorted(settings.get_string_map("httpserver"))
    }
    return write_response(
        settings,
        request,
        200,
        ConfigMainResponse(
            error=False,
            message="main config returned",
            request=make_request_info(request),
            general=general,
            logging=logging_section,
            zookeeper=zookeeper,
            httpserver=servers,
        ),
    )


def config_module_list(settings: Settings, request: Request, coordinator: str) -> Response:
    """Return the names of the modules configured for one coordinator."""
    return write_response(
        settings,
        request,
        200,
        ModuleListResponse(
            error=False,
            message="module list returned",
            request=make_request_info(request),
            coordinator=coordinator,
            modules=sorted(settings.get_string_map(coordinator)),
        ),
    )


def config_storage_list(settings: Settings, request: Request, params: Mapping[str, str]) -> Response:
    return config_module_list(settings, request, "storage")


def config_consumer_list(settings: Settings, request: Request, params: Mapping[str, str]) -> Response:
    return config_module_list(settings, request, "consumer")


def config_cluster_list(settings: Settings, request: Request, params: Mapping[str, str]) -> Response:
    return config_module_list(settings, request, "cluster")


def config_evaluator_list(settings: Settings, request: Request, params: Mapping[str, str]) -> Response:
    return config_module_list(settings, request, "evaluator")


def config_notifier_list(settings: Settings, request: Request, params: Mapping[str, str]) -> Response:
    return config_module_list(settings, request, "notifier")


def _detail(settings: Settings, request: Request, message: str, module: object) -> Response:
    return write_response(
        settings,
        request,
        200,
        ModuleDetailResponse(
            error=False,
            message=message,
            module=module,
            request=make_request_info(request),
        ),
    )


def config_storage_detail(settings: Settings, request: Request, params: Mapping[str, str]) -> Response:
    root = "storage." + params.get("name", "")
    if not settings.is_set(root):
        return write_error_response(settings, request, 404, "storage module not found")
    module = StorageModule(
        class_name=settings.get_string(root + ".class-name"),
        intervals=settings.get_int(root + ".intervals"),
        min_distance=settings.get_int(root + ".min-distance"),
        group_allowlist=settings.get_string(root + ".group-allowlist"),
        expire_group=settings.get_int(root + ".expire-group"),
    )
    return _detail(settings, request, "storage module detail returned", module)


def config_consumer_detail(settings: Settings, request: Request, params: Mapping[str, str]) -> Response:
    root = "consumer." + params.get("name", "")
    if not settings.is_set(root):
        return write_error_response(settings, request, 404, "consumer module not found")
    module = ConsumerModule(
        class_name=settings.get_string(root + ".class-name"),
        cluster=settings.get_string(root + ".cluster"),
        servers=settings.get_string_list(root + ".servers"),
        group_allowlist=settings.get_string(root + ".group-allowlist"),
        zookeeper_path=settings.get_string(root + ".zookeeper-path"),
        zookeeper_timeout=_int32(settings.get_int(root + ".zookeeper-timeout")),
        client_profile=_client_profile(settings, settings.get_string(root + ".client-profile")),
        offsets_topic=settings.get_string(root + ".offsets-topic"),
        start_latest=settings.get_bool(root + ".start-latest"),
    )
    return _detail(settings, request, "consumer module detail returned", module)


def config_evaluator_detail(settings: Settings, request: Request, params: Mapping[str, str]) -> Response:
    root = "evaluator." + params.get("name", "")
    if not settings.is_set(root):
        return write_error_response(settings, request, 404, "evaluator module not found")
    module = EvaluatorModule(
        class_name=settings.get_string(root + ".class-name"),
        expire_cache=settings.get_int(root + ".expire-cache"),
    )
    return _detail(settings, request, "evaluator module detail returned", module)


def _notifier_common(settings: Settings, root: str) -> dict:
    return {
        "class_name": settings.get_string(root + ".class-name"),
        "group_allowlist": settings.get_string(root + ".group-allowlist"),
        "interval": settings.get_int(root + ".interval"),
        "threshold": settings.get_int(root + ".threshold"),
        "template_open": settings.get_string(root + ".template-open"),
        "template_close": settings.get_string(root + ".template-close"),
        "extras": settings.get_string_map_string(root + ".extras"),
        "send_close": settings.get_bool(root + ".send-close"),
    }


def _http_notifier(settings: Settings, root: str) -> HTTPNotifierModule:
    return HTTPNotifierModule(
        **_notifier_common(settings, root),
        timeout=settings.get_int(root + ".timeout"),
        keepalive=settings.get_int(root + ".keepalive"),
        url_open=settings.get_string(root + ".url-open"),
        url_close=settings.get_string(root + ".url-close"),
        method_open=settings.get_string(root + ".method-open"),
        method_close=settings.get_string(root + ".method-close"),
        extra_ca=settings.get_string(root + ".extra-ca"),
        noverify=settings.get_string(root + ".noverify"),
    )


def _slack_notifier(settings: Settings, root: str) -> SlackNotifierModule:
    return SlackNotifierModule(
        **_notifier_common(settings, root),
        timeout=settings.get_int(root + ".timeout"),
        keepalive=settings.get_int(root + ".keepalive"),
        channel=settings.get_string(root + ".channel"),
        username=settings.get_string(root + ".username"),
        icon_url=settings.get_string(root + ".icon-url"),
        icon_emoji=settings.get_string(root + ".icon-emoji"),
    )


def _email_notifier(settings: Settings, root: str) -> EmailNotifierModule:
    return EmailNotifierModule(
        **_notifier_common(settings, root),
        server=settings.get_string(root + ".server"),
        port=settings.get_int(root + ".port"),
        auth_type=settings.get_string(root + ".auth-type"),
        username=settings.get_string(root + ".username"),
        from_address=settings.get_string(root + ".from"),
        to_address=settings.get_string(root + ".to"),
        extra_ca=settings.get_string(root + ".extra-ca"),
        noverify=settings.get_string(root + ".noverify"),
    )


def _null_notifier(settings: Settings, root: str) -> NullNotifierModule:
    return NullNotifierModule(**_notifier_common(settings, root))


_NOTIFIER_BUILDERS = {
    "http": _http_notifier,
    "email": _email_notifier,
    "slack": _slack_notifier,
    "null": _null_notifier,
}


def config_notifier_detail(settings: Settings, request: Request, params: Mapping[str, str]) -> Response:
    """Return a notifier's settings in the shape that fits its class.

    A notifier with an unrecognised class gives an empty 200 response.
    """
    root = "notifier." + params.get("name", "")
    if not settings.is_set(root):
        return write_error_response(settings, request, 404, "notifier module not found")
    builder = _NOTIFIER_BUILDERS.get(settings.get_string(root + ".class-name"))
    if builder is None:
        return Response(status=200)
    return _detail(settings, request, "notifier module detail returned", builder(settings, root))