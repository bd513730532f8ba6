import io
import threading
import urllib.request

import pytest

from lagwatch_http.coordinator import Coordinator, main
from lagwatch_http.messages import ApplicationContext, StorageRequestType
from lagwatch_http.settings import Settings


@pytest.fixture
def coordinator():
    coord = Coordinator(app=ApplicationContext(), settings=Settings())
    coord.configure()
    return coord


def _respond_storage(app, replies):
    seen = []

    def run():
        for reply in replies:
            request = app.storage_channel.get(timeout=5)
            seen.append(request)
            if request.reply is not None:
                request.reply.put(reply)

    thread = threading.Thread(target=run, daemon=True)
    thread.start()
    return thread, seen


def test_handle_admin(coordinator):
    response = coordinator.dispatch("GET", "/burrow/admin")
    assert response.status == 200
    assert response.body == b"GOOD"


def test_handle_ready(coordinator):
    response = coordinator.dispatch("GET", "/burrow/admin/ready")
    assert response.status == 503
    assert response.body == b"STARTING"

    coordinator.app.app_ready = True
    response = coordinator.dispatch("GET", "/burrow/admin/ready")
    assert response.status == 200
    assert response.body == b"READY"


def test_get_log_level(coordinator):
    response = coordinator.dispatch("GET", "/v3/admin/loglevel")
    assert response.status == 200
    body = response.json()
    assert body["error"] is False
    assert body["level"] == "info"


def test_set_log_level(coordinator):
    response = coordinator.dispatch("POST", "/v3/admin/loglevel", b'{"level": "debug"}')
    assert response.status == 200
    assert response.json()["error"] is False
    assert coordinator.app.log_level.level == "debug"


@pytest.mark.parametrize(
    "name, expected", [("trace", "debug"), ("WARNING", "warn"), ("error", "error"), ("fatal", "fatal")]
)
def test_set_log_level_aliases(coordinator, name, expected):
    response = coordinator.dispatch("POST", "/v3/admin/loglevel", f'{{"level": "{name}"}}'.encode())
    assert response.status == 200
    assert coordinator.app.log_level.level == expected


def test_set_log_level_unknown(coordinator):
    response = coordinator.dispatch("POST", "/v3/admin/loglevel", b'{"level": "loud"}')
    assert response.status == 404
    assert response.json()["message"] == "unknown log level"
    assert coordinator.app.log_level.level == "info"


@pytest.mark.parametrize("body", [b"", b"not json", b'{"level": 5}', b"[1]"])
def test_set_log_level_bad_body(coordinator, body):
    response = coordinator.dispatch("POST", "/v3/admin/loglevel", body)
    assert response.status == 400
    assert response.json()["message"] == "could not decode message body"


def test_default_handler(coordinator):
    response = coordinator.dispatch("GET", "/v3/no/such/uri")
    assert response.status == 404
    assert response.json()["error"] is True


def test_method_not_allowed(coordinator):
    response = coordinator.dispatch("POST", "/v3/kafka")
    assert response.status == 405
    assert response.headers["Allow"] == "GET, OPTIONS"


def test_trailing_slash_redirect(coordinator):
    response = coordinator.dispatch("GET", "/v3/kafka/")
    assert response.status == 301
    assert response.headers["Location"] == "/v3/kafka"


def test_options_lists_methods(coordinator):
    response = coordinator.dispatch("OPTIONS", "/v3/kafka/c/consumer/g")
    assert response.status == 200
    assert response.headers["Allow"] == "DELETE, GET, OPTIONS"


def test_cors_header(coordinator):
    coordinator.settings.set("general.access-control-allow-origin", "*")
    response = coordinator.dispatch("GET", "/burrow/admin")
    assert response.headers["Access-Control-Allow-Origin"] == "*"


def test_configure_adds_default_server(coordinator):
    assert coordinator.settings.get_string("httpserver.default.address") == ":0"
    assert coordinator.settings.get_int("httpserver.default.timeout") == 300


def test_configure_rejects_bad_address():
    settings = Settings()
    settings.set("httpserver.bad.address", "no-port-here")
    coord = Coordinator(app=ApplicationContext(), settings=settings)
    with pytest.raises(ValueError, match="invalid HTTP server listener address"):
        coord.configure()


def test_configure_tls_without_cert():
    settings = Settings()
    settings.set("httpserver.secure.address", ":0")
    settings.set("httpserver.secure.tls", "profile")
    settings.set("tls.profile.keyfile", "/tmp/key.pem")
    coord = Coordinator(app=ApplicationContext(), settings=settings)
    with pytest.raises(ValueError, match="missing certificate or key"):
        coord.configure()


def test_configure_tls_unreadable_ca(tmp_path):
    settings = Settings()
    settings.set("httpserver.secure.address", ":0")
    settings.set("httpserver.secure.tls", "profile")
    settings.set("tls.profile.cafile", str(tmp_path / "missing.pem"))
    coord = Coordinator(app=ApplicationContext(), settings=settings)
    with pytest.raises(RuntimeError, match="cannot read TLS CA file"):
        coord.configure()


def test_cluster_list_routed_to_storage(coordinator):
    thread, seen = _respond_storage(coordinator.app, [["testcluster"]])
    response = coordinator.dispatch("GET", "/v3/kafka")
    thread.join(5)
    assert response.status == 200
    assert response.json()["clusters"] == ["testcluster"]
    assert seen[0].request_type is StorageRequestType.FETCH_CLUSTERS


def test_consumer_delete_routed_to_storage(coordinator):
    thread, seen = _respond_storage(coordinator.app, [None])
    response = coordinator.dispatch("DELETE", "/v3/kafka/testcluster/consumer/testgroup")
    thread.join(5)
    assert response.status == 200
    assert response.json()["message"] == "consumer group removed"
    assert seen[0].request_type is StorageRequestType.SET_DELETE_GROUP
    assert (seen[0].cluster, seen[0].group) == ("testcluster", "testgroup")


def test_config_route(coordinator):
    coordinator.settings.set("storage.teststorage.class-name", "inmemory")
    response = coordinator.dispatch("GET", "/v3/config/storage")
    assert response.status == 200
    assert response.json()["modules"] == ["teststorage"]


def test_wsgi_app(coordinator):
    captured = {}

    def start_response(status, headers):
        captured["status"] = status
        captured["headers"] = dict(headers)

    body = b'{"level": "error"}'
    environ = {
        "REQUEST_METHOD": "POST",
        "PATH_INFO": "/v3/admin/loglevel",
        "CONTENT_LENGTH": str(len(body)),
        "wsgi.input": io.BytesIO(body),
    }
    chunks = coordinator.wsgi_app(environ, start_response)
    assert captured["status"] == "200 OK"
    assert captured["headers"]["Content-Type"] == "application/json"
    assert b'"message":"set log level"' in b"".join(chunks)
    assert coordinator.app.log_level.level == "error"


def test_start_and_stop_serves_requests():
    settings = Settings()
    settings.set("httpserver.local.address", "127.0.0.1:0")
    coord = Coordinator(app=ApplicationContext(), settings=settings)
    coord.configure()
    addresses = coord.start()
    try:
        host, port = addresses["local"]
        assert port > 0
        with urllib.request.urlopen(f"http://{host}:{port}/burrow/admin", timeout=5) as reply:
            assert reply.status == 200
            assert reply.read() == b"GOOD"
    finally:
        coord.stop()


def test_main_help_exits_cleanly():
    with pytest.raises(SystemExit) as excinfo:
        main(["--help"])
    assert excinfo.value.code == 0