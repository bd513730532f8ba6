"""HTTP front end: routes requests to the handlers and runs the configured listeners."""

from __future__ import annotations

import argparse
import ipaddress
import json
import logging
import re
import socket
import ssl
import threading
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from http import HTTPStatus
from pathlib import Path
from socketserver import ThreadingMixIn
from typing import Any
from wsgiref.simple_server import WSGIRequestHandler, WSGIServer

from lagwatch_http import config_views, kafka_views
from lagwatch_http.messages import ApplicationContext, LogLevel
from lagwatch_http.metrics import MetricsRegistry, metrics_response
from lagwatch_http.responses import ErrorResponse, LogLevelResponse
from lagwatch_http.settings import Settings
from lagwatch_http.web import (
    Request,
    Response,
    make_request_info,
    not_found_response,
    write_error_response,
    write_response,
)

Handler = Callable[[Request, Mapping[str, str]], Response]

_DEFAULT_TIMEOUT = 300
_TEXT_PLAIN = "text/plain; charset=utf-8"
_HOSTNAME = re.compile(
    r"(?=.{1,253}$)[A-Za-z0-9]([A-Za-z0-9-]{0,61}[A-Za-z0-9])?"
    r"(\.[A-Za-z0-9]([A-Za-z0-9-]{0,61}[A-Za-z0-9])?)*\.?"
)


def _split_host_port(address: str) -> tuple[str, int]:
    """Split ``host:port``; the host may be blank. Raises ValueError if invalid."""
    host, sep, port_text = address.rpartition(":")
    if not sep or not port_text.isdigit():
        raise ValueError(address)
    port = int(port_text)
    if port > 65535:
        raise ValueError(address)
    if host.startswith("[") and host.endswith("]"):
        host = host[1:-1]
        ipaddress.IPv6Address(host)
    elif ":" in host:
        raise ValueError(address)
    elif host:
        try:
            ipaddress.ip_address(host)
        except ValueError:
            if not _HOSTNAME.fullmatch(host):
                raise
    return host, port


@dataclass
class _ListenerConfig:
    host: str
    port: int
    timeout: int
    certfile: str = ""
    keyfile: str = ""
    ssl_context: ssl.SSLContext | None = None


@dataclass(frozen=True)
class _Route:
    method: str
    segments: tuple[str, ...]
    handler: Handler

    def match(self, parts: tuple[str, ...]) -> dict[str, str] | None:
        if len(parts) != len(self.segments):
            return None
        params: dict[str, str] = {}
        for pattern, part in zip(self.segments, parts):
            if pattern.startswith(":"):
                if not part:
                    return None
                params[pattern[1:]] = part
            elif pattern != part:
                return None
        return params


class _QuietHandler(WSGIRequestHandler):
    def log_message(self, format: str, *args: Any) -> None:
        logging.getLogger(__name__).debug(format, *args)


class _Server(ThreadingMixIn, WSGIServer):
    daemon_threads = True
    connection_timeout = 0

    def get_request(self) -> tuple[socket.socket, Any]:
        conn, addr = super().get_request()
        if self.connection_timeout > 0:
            conn.setsockopt(socket.SOL_SOCKET, socket.SO_KEEPALIVE, 1)
            if hasattr(socket, "TCP_KEEPIDLE"):
                conn.setsockopt(socket.IPPROTO_TCP, socket.TCP_KEEPIDLE, self.connection_timeout)
            conn.settimeout(self.connection_timeout)
        return conn, addr


class _Server6(_Server):
    address_family = socket.AF_INET6


@dataclass
class Coordinator:
    """Runs the HTTP interface, managing every configured listener."""

    app: ApplicationContext
    settings: Settings = field(default_factory=Settings)
    log: logging.Logger = field(default_factory=lambda: logging.getLogger("lagwatch_http"))
    registry: MetricsRegistry = field(default_factory=MetricsRegistry)
    _listeners: dict[str, _ListenerConfig] = field(default_factory=dict, init=False, repr=False)
    _routes: list[_Route] = field(default_factory=list, init=False, repr=False)
    _running: dict[str, _Server] = field(default_factory=dict, init=False, repr=False)

    def configure(self) -> None:
        """Validate every listener and set up the routes.

        With no listener configured, a default one on a random port is added.
        Raises ValueError or RuntimeError on an invalid configuration.
        """
        self.log.info("configuring")
        settings = self.settings
        servers = settings.get_string_map("httpserver")
        if not servers:
            settings.set("httpserver.default.address", ":0")
            servers = settings.get_string_map("httpserver")

        self._listeners = {}
        for name in servers:
            root = f"httpserver.{name}"
            try:
                host, port = _split_host_port(settings.get_string(root + ".address"))
            except ValueError:
                raise ValueError("invalid HTTP server listener address") from None
            settings.set_default(root + ".timeout", _DEFAULT_TIMEOUT)
            listener = _ListenerConfig(host=host, port=port, timeout=settings.get_int(root + ".timeout"))
            if settings.is_set(root + ".tls"):
                self._configure_tls(listener, settings.get_string(root + ".tls"))
            self._listeners[name] = listener

        self._routes = []
        self._add_routes()

    def _configure_tls(self, listener: _ListenerConfig, tls_name: str) -> None:
        root = f"tls.{tls_name}"
        certfile = self.settings.get_string(root + ".certfile")
        keyfile = self.settings.get_string(root + ".keyfile")
        cafile = self.settings.get_string(root + ".cafile")
        context = ssl.SSLContext(ssl.PROTOCOL_TLS_SERVER)
        if cafile:
            try:
                ca_data = Path(cafile).read_bytes()
            except OSError as exc:
                raise RuntimeError(f"cannot read TLS CA file: {exc}") from exc
            try:
                context.load_verify_locations(cadata=ca_data.decode("ascii", errors="ignore"))
            except ssl.SSLError:
                pass
        if not certfile or not keyfile:
            raise ValueError("TLS HTTP server specified with missing certificate or key")
        try:
            context.load_cert_chain(certfile, keyfile)
        except OSError as exc:
            raise RuntimeError(f"cannot read TLS certificate or key file: {exc}") from exc
        listener.certfile = certfile
        listener.keyfile = keyfile
        listener.ssl_context = context

    def _route(self, method: str, pattern: str, handler: Handler) -> None:
        self._routes.append(_Route(method, tuple(pattern.split("/")), handler))

    def _add_routes(self) -> None:
        app, settings = self.app, self.settings

        def kafka(view: Callable[..., Response]) -> Handler:
            return lambda request, params: view(app, settings, request, params)

        def config(view: Callable[..., Response]) -> Handler:
            return lambda request, params: view(settings, request, params)

        get = "GET"
        self._route(get, "/burrow/admin", self._handle_admin)
        self._route(get, "/burrow/admin/ready", self._handle_ready)
        self._route(get, "/metrics", lambda request, params: metrics_response(app, self.registry))

        self._route(get, "/v3/kafka", kafka(kafka_views.cluster_list))
        self._route(get, "/v3/kafka/:cluster", kafka(kafka_views.cluster_detail))
        self._route(get, "/v3/kafka/:cluster/topic", kafka(kafka_views.topic_list))
        self._route(get, "/v3/kafka/:cluster/topic/:topic", kafka(kafka_views.topic_detail))
        self._route(
            get, "/v3/kafka/:cluster/topic/:topic/consumers", kafka(kafka_views.topic_consumer_list)
        )
        self._route(get, "/v3/kafka/:cluster/consumer", kafka(kafka_views.consumer_list))
        self._route(get, "/v3/kafka/:cluster/consumer/:consumer", kafka(kafka_views.consumer_detail))
        self._route(
            get, "/v3/kafka/:cluster/consumer/:consumer/status", kafka(kafka_views.consumer_status)
        )
        self._route(
            get,
            "/v3/kafka/:cluster/consumer/:consumer/lag",
            kafka(kafka_views.consumer_status_complete),
        )

        self._route(get, "/v3/config", config(config_views.config_main))
        self._route(get, "/v3/config/storage", config(config_views.config_storage_list))
        self._route(get, "/v3/config/storage/:name", config(config_views.config_storage_detail))
        self._route(get, "/v3/config/evaluator", config(config_views.config_evaluator_list))
        self._route(get, "/v3/config/evaluator/:name", config(config_views.config_evaluator_detail))
        self._route(get, "/v3/config/cluster", config(config_views.config_cluster_list))
        self._route(get, "/v3/config/cluster/:cluster", kafka(kafka_views.cluster_detail))
        self._route(get, "/v3/config/consumer", config(config_views.config_consumer_list))
        self._route(get, "/v3/config/consumer/:name", config(config_views.config_consumer_detail))
        self._route(get, "/v3/config/notifier", config(config_views.config_notifier_list))
        self._route(get, "/v3/config/notifier/:name", config(config_views.config_notifier_detail))

        self._route("DELETE", "/v3/kafka/:cluster/consumer/:consumer", kafka(kafka_views.consumer_delete))
        self._route(get, "/v3/admin/loglevel", self._get_log_level)
        self._route("POST", "/v3/admin/loglevel", self._set_log_level)

    def start(self) -> dict[str, tuple[str, int]]:
        """Bind every listener, then serve each in a background thread.

        If any listener cannot be bound, those already bound are closed and
        the error is raised. Returns the bound address of each listener.
        """
        self.log.info("starting")
        bound: dict[str, _Server] = {}
        for name, listener in self._listeners.items():
            try:
                bound[name] = self._bind(listener)
            except OSError as exc:
                self.log.error("failed to listen on %s:%s: %s", listener.host, listener.port, exc)
                for server in bound.values():
                    try:
                        server.server_close()
                    except OSError as close_exc:
                        self.log.error("could not close listener: %s", close_exc)
                raise
            self.log.info("started listener %s", bound[name].server_address)

        for name, server in bound.items():
            threading.Thread(
                target=server.serve_forever, name=f"httpserver-{name}", daemon=True
            ).start()
        self._running.update(bound)
        return {name: tuple(server.server_address[:2]) for name, server in bound.items()}

    def _bind(self, listener: _ListenerConfig) -> _Server:
        server_class = _Server6 if ":" in listener.host else _Server
        server = server_class((listener.host, listener.port), _QuietHandler)
        server.connection_timeout = listener.timeout
        server.set_app(self.wsgi_app)
        if listener.ssl_context is not None:
            server.socket = listener.ssl_context.wrap_socket(server.socket, server_side=True)
        return server

    def stop(self) -> None:
        """Close every running listener; raises RuntimeError if any failed to close."""
        self.log.info("shutdown")
        errors: list[Exception] = []
        for server in self._running.values():
            try:
                server.shutdown()
                server.server_close()
            except Exception as exc:  # noqa: BLE001 - collected and reported together
                errors.append(exc)
        self._running.clear()
        if errors:
            self.log.error("errors shutting down: %s", errors)
            raise RuntimeError("error shutting down HTTP servers")

    def _matching(self, parts: tuple[str, ...]) -> Iterable[tuple[_Route, dict[str, str]]]:
        for route in self._routes:
            params = route.match(parts)
            if params is not None:
                yield route, params

    def _allowed(self, parts: tuple[str, ...], exclude: str) -> str:
        methods = sorted(
            {route.method for route, _ in self._matching(parts)} - {exclude, "OPTIONS"}
        )
        return ", ".join([*methods, "OPTIONS"]) if methods else ""

    def dispatch(self, method: str, path: str, body: bytes | str = b"") -> Response:
        """Route one request to its handler and return the response."""
        method = method.upper()
        path = path.split("?", 1)[0] or "/"
        if isinstance(body, str):
            body = body.encode()
        request = Request(method=method, path=path, body=body)
        parts = tuple(path.split("/"))

        for route, params in self._matching(parts):
            if route.method == method:
                return route.handler(request, params)

        if method == "OPTIONS":
            allow = self._allowed(parts, method)
            if allow:
                return Response(status=200, headers={"Allow": allow})

        if path != "/":
            alternative = path[:-1] if path.endswith("/") else path + "/"
            alt_parts = tuple(alternative.split("/"))
            if any(route.method == method for route, _ in self._matching(alt_parts)):
                return Response(
                    status=301 if method == "GET" else 308, headers={"Location": alternative}
                )

        allow = self._allowed(parts, method)
        if allow:
            return Response(
                status=405,
                headers={
                    "Allow": allow,
                    "Content-Type": _TEXT_PLAIN,
                    "X-Content-Type-Options": "nosniff",
                },
                body=b"Method Not Allowed\n",
            )
        return not_found_response()

    def wsgi_app(self, environ: dict[str, Any], start_response: Callable[..., Any]) -> list[bytes]:
        """WSGI entry point that hands each request to :meth:`dispatch`."""
        method = environ.get("REQUEST_METHOD", "GET")
        raw_path = environ.get("PATH_INFO", "") or "/"
        path = raw_path.encode("latin-1").decode("utf-8", errors="replace")
        try:
            length = int(environ.get("CONTENT_LENGTH") or 0)
        except ValueError:
            length = 0
        body = environ["wsgi.input"].read(length) if length > 0 else b""
        response = self.dispatch(method, path, body)
        try:
            phrase = HTTPStatus(response.status).phrase
        except ValueError:
            phrase = ""
        headers = [(key, value) for key, value in response.headers.items()]
        headers.append(("Content-Length", str(len(response.body))))
        start_response(f"{response.status} {phrase}".rstrip(), headers)
        return [response.body]

    def _cors_headers(self) -> dict[str, str]:
        origin = self.settings.get_string("general.access-control-allow-origin")
        return {"Access-Control-Allow-Origin": origin} if origin else {}

    def _plain(self, status: int, text: str) -> Response:
        headers = self._cors_headers()
        headers["Content-Type"] = _TEXT_PLAIN
        return Response(status=status, headers=headers, body=text.encode())

    def _handle_admin(self, request: Request, params: Mapping[str, str]) -> Response:
        return self._plain(200, "GOOD")

    def _handle_ready(self, request: Request, params: Mapping[str, str]) -> Response:
        if self.app.app_ready:
            return self._plain(200, "READY")
        return self._plain(503, "STARTING")

    def _get_log_level(self, request: Request, params: Mapping[str, str]) -> Response:
        return write_response(
            self.settings,
            request,
            200,
            LogLevelResponse(
                error=False,
                message="log level returned",
                level=self.app.log_level.level,
                request=make_request_info(request),
            ),
        )

    def _set_log_level(self, request: Request, params: Mapping[str, str]) -> Response:
        try:
            level = _decode_level(request.body)
        except ValueError:
            return write_error_response(self.settings, request, 400, "could not decode message body")
        try:
            self.app.log_level.set_level(level)
        except ValueError:
            return write_error_response(self.settings, request, 404, "unknown log level")
        return write_response(
            self.settings,
            request,
            200,
            ErrorResponse(error=False, message="set log level", request=make_request_info(request)),
        )


def _decode_level(body: bytes) -> str:
    """Read the ``level`` field of a JSON body; raises ValueError if it cannot."""
    text = body.decode("utf-8")
    payload, _ = json.JSONDecoder().raw_decode(text.lstrip())
    if payload is None:
        return ""
    if not isinstance(payload, dict):
        raise ValueError("body is not an object")
    level = ""
    for key, value in payload.items():
        if key.lower() != "level" or value is None:
            continue
        if not isinstance(value, str):
            raise ValueError("level is not a string")
        level = value
    return level


def main(argv: list[str] | None = None) -> int:
    """Run the HTTP interface until interrupted."""
    parser = argparse.ArgumentParser(
        prog="lagwatch-http", description="Serve consumer lag information over HTTP."
    )
    parser.add_argument("--config", help="path of a TOML configuration file")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO)
    settings = Settings.load_toml(args.config) if args.config else Settings()
    logger = logging.getLogger("lagwatch_http")
    level = settings.get_string("logging.level") or "info"
    app = ApplicationContext(log_level=LogLevel(level, logger=logging.getLogger()))

    coordinator = Coordinator(app=app, settings=settings, log=logger)
    coordinator.configure()
    for name, (host, port) in coordinator.start().items():
        logger.info("listener %s on %s:%s", name, host, port)
    try:
        threading.Event().wait()
    except KeyboardInterrupt:
        pass
    finally:
        coordinator.stop()
    return 0