import json

from lagwatch_http.messages import (
    ConsumerGroupStatus,
    ConsumerOffset,
    ConsumerPartition,
    Lag,
    StatusConstant,
)
from lagwatch_http.responses import (
    ClientProfile,
    ConfigHTTPServer,
    ConfigMainResponse,
    ConsumerDetailResponse,
    ConsumerStatusResponse,
    EmailNotifierModule,
    ErrorResponse,
    ModuleDetailResponse,
    ModuleListResponse,
    NullNotifierModule,
    RequestInfo,
    StorageModule,
    TLSProfile,
    to_json_dict,
)


def test_request_info_uses_url_key():
    data = to_json_dict(RequestInfo(uri="/v3/kafka", host="somehost"))
    assert data == {"url": "/v3/kafka", "host": "somehost"}


def test_error_response_key_order():
    data = to_json_dict(ErrorResponse(error=True, message="cluster not found"))
    assert list(data) == ["error", "message", "request"]
    assert data["error"] is True
    assert data["message"] == "cluster not found"


def test_client_profile_optional_profiles():
    bare = to_json_dict(ClientProfile(name="test", client_id="testid"))
    assert bare["tls"] is None and bare["sasl"] is None
    assert bare["client-id"] == "testid"
    full = to_json_dict(ClientProfile(name="test", tls=TLSProfile(name="tlsprof", noverify=True)))
    assert full["tls"]["noverify"] is True
    assert full["tls"]["name"] == "tlsprof"


def test_consumer_detail_nests_partitions():
    response = ConsumerDetailResponse(
        message="consumer detail returned",
        topics={
            "testtopic": [
                ConsumerPartition(
                    offsets=[ConsumerOffset(offset=9837458, timestamp=12837487, lag=Lag(2355))],
                    owner="somehost",
                    current_lag=2345,
                )
            ]
        },
    )
    data = to_json_dict(response)
    partition = data["topics"]["testtopic"][0]
    assert partition["owner"] == "somehost"
    assert partition["offsets"][0]["lag"] == 2355


def test_consumer_status_serialises_status_name():
    response = ConsumerStatusResponse(
        status=ConsumerGroupStatus(cluster="testcluster", status=StatusConstant.OK, total_partitions=2134)
    )
    data = to_json_dict(response)
    assert data["status"]["status"] == "OK"
    assert data["status"]["partition_count"] == 2134


def test_module_detail_with_null_notifier():
    response = ModuleDetailResponse(
        message="notifier module detail returned",
        module=NullNotifierModule(class_name="null", extras={"k": "v"}),
    )
    data = to_json_dict(response)
    assert data["module"]["class-name"] == "null"
    assert data["module"]["extra"] == {"k": "v"}


def test_email_notifier_from_and_to_keys():
    data = to_json_dict(EmailNotifierModule(from_address="a@example.com", to_address="b@example.com"))
    assert data["from"] == "a@example.com"
    assert data["to"] == "b@example.com"


def test_storage_module_keys():
    assert list(to_json_dict(StorageModule())) == [
        "class-name", "intervals", "min-distance", "group-allowlist", "expire-group",
    ]


def test_config_main_httpserver_map():
    response = ConfigMainResponse(
        message="main config returned",
        httpserver={"default": ConfigHTTPServer(address=":0", timeout=300)},
    )
    data = to_json_dict(response)
    assert data["httpserver"]["default"]["address"] == ":0"
    assert data["httpserver"]["default"]["timeout"] == 300


def test_json_round_trip():
    response = ModuleListResponse(coordinator="storage", modules=["teststorage"])
    decoded = json.loads(json.dumps(to_json_dict(response)))
    assert decoded["coordinator"] == "storage"
    assert decoded["modules"] == ["teststorage"]
    assert decoded["error"] is False