import threading

import pytest

from lagwatch_http import metrics
from lagwatch_http.messages import (
    ApplicationContext,
    ConsumerGroupStatus,
    ConsumerOffset,
    PartitionStatus,
    StatusConstant,
    StorageRequestType,
)


def _serve(channel, replies):
    seen = []

    def run():
        for reply in replies:
            req = channel.get(timeout=5)
            seen.append(req)
            if req.reply is not None:
                req.reply.put(reply)

    thread = threading.Thread(target=run, daemon=True)
    thread.start()
    return seen, thread


def _partition(topic, number, lag, complete, offset):
    return PartitionStatus(
        topic=topic,
        partition=number,
        status=StatusConstant.OK,
        current_lag=lag,
        complete=complete,
        end=ConsumerOffset(offset=offset),
    )


def test_prometheus_metrics_endpoint():
    app = ApplicationContext()
    registry = metrics.MetricsRegistry()
    storage_seen, storage_thread = _serve(
        app.storage_channel,
        [["testcluster"], ["testgroup", "testgroup2"], ["testtopic", "testtopic1"], [6556, 5566], [54]],
    )
    good = ConsumerGroupStatus(
        cluster="testcluster",
        group="testgroup",
        status=StatusConstant.OK,
        complete=1.0,
        partitions=[
            _partition("testtopic", 0, 100, 1.0, 22663),
            _partition("testtopic", 1, 10, 1.0, 2488),
            _partition("testtopic1", 0, 50, 1.0, 99888),
            _partition("incomplete", 0, 0, 0.2, 5335),
            _partition("incomplete", 1, 10, 1.0, 99888),
        ],
        total_partitions=2134,
        maxlag=PartitionStatus(),
        total_lag=2345,
    )
    missing = ConsumerGroupStatus(
        cluster="testcluster", group="testgroup2", status=StatusConstant.NOTFOUND
    )
    eval_seen, eval_thread = _serve(app.evaluator_channel, [good, missing])

    resp = metrics.metrics_response(app, registry)
    storage_thread.join(5)
    eval_thread.join(5)

    assert resp.status == 200
    assert resp.headers["Content-Type"] == metrics.CONTENT_TYPE
    text = resp.body.decode()
    expected = [
        'burrow_kafka_consumer_status{cluster="testcluster",consumer_group="testgroup"} 1',
        'burrow_kafka_consumer_lag_total{cluster="testcluster",consumer_group="testgroup"} 2345',
        'burrow_kafka_consumer_partition_lag{cluster="testcluster",consumer_group="testgroup",partition="0",topic="testtopic"} 100',
        'burrow_kafka_consumer_partition_lag{cluster="testcluster",consumer_group="testgroup",partition="1",topic="testtopic"} 10',
        'burrow_kafka_consumer_partition_lag{cluster="testcluster",consumer_group="testgroup",partition="0",topic="testtopic1"} 50',
        'burrow_kafka_consumer_partition_lag{cluster="testcluster",consumer_group="testgroup",partition="0",topic="incomplete"} 0',
        'burrow_kafka_consumer_partition_lag{cluster="testcluster",consumer_group="testgroup",partition="1",topic="incomplete"} 10',
        'burrow_kafka_consumer_current_offset{cluster="testcluster",consumer_group="testgroup",partition="0",topic="testtopic"} 22663',
        'burrow_kafka_consumer_current_offset{cluster="testcluster",consumer_group="testgroup",partition="1",topic="testtopic"} 2488',
        'burrow_kafka_consumer_current_offset{cluster="testcluster",consumer_group="testgroup",partition="0",topic="testtopic1"} 99888',
        'burrow_kafka_consumer_current_offset{cluster="testcluster",consumer_group="testgroup",partition="1",topic="incomplete"} 99888',
        'burrow_kafka_topic_partition_offset{cluster="testcluster",partition="0",topic="testtopic"} 6556',
        'burrow_kafka_topic_partition_offset{cluster="testcluster",partition="1",topic="testtopic"} 5566',
        'burrow_kafka_topic_partition_offset{cluster="testcluster",partition="0",topic="testtopic1"} 54',
    ]
    for line in expected:
        assert line in text
    assert (
        'burrow_kafka_consumer_current_offset{cluster="testcluster",consumer_group="testgroup",partition="0",topic="incomplete"} 5335'
        not in text
    )
    assert 'burrow_kafka_topic_partition_offset{cluster="testcluster",consumer_group="testgroup"' not in text
    assert "testgroup2" not in text

    assert [r.request_type for r in storage_seen] == [
        StorageRequestType.FETCH_CLUSTERS,
        StorageRequestType.FETCH_CONSUMERS,
        StorageRequestType.FETCH_TOPICS,
        StorageRequestType.FETCH_TOPIC,
        StorageRequestType.FETCH_TOPIC,
    ]
    assert [r.topic for r in storage_seen[3:]] == ["testtopic", "testtopic1"]
    assert [(r.group, r.show_all) for r in eval_seen] == [("testgroup", True), ("testgroup2", True)]


def test_list_helpers_turn_missing_into_empty():
    app = ApplicationContext()
    _, thread = _serve(app.storage_channel, [None, None, None, None])
    assert metrics.list_clusters(app) == []
    assert metrics.list_consumers(app, "c") == []
    assert metrics.list_topics(app, "c") == []
    assert metrics.get_topic_detail(app, "c", "t") == []
    thread.join(5)


def test_gauge_render_format():
    gauge = metrics.GaugeVec("demo_gauge", "A demo\ngauge", ["b", "a"])
    gauge.set({"a": "x", "b": 'q"z'}, 1000000)
    gauge.set({"a": "w", "b": "y"}, 0.5)
    assert gauge.render() == (
        "# HELP demo_gauge A demo\\ngauge\n"
        "# TYPE demo_gauge gauge\n"
        'demo_gauge{a="w",b="y"} 0.5\n'
        'demo_gauge{a="x",b="q\\"z"} 1e+06\n'
    )


@pytest.mark.parametrize(
    "value, text",
    [(2345, "2345"), (0, "0"), (-3, "-3"), (0.2, "0.2"), (123456, "123456"), (1e-05, "1e-05")],
)
def test_gauge_value_formatting(value, text):
    gauge = metrics.GaugeVec("g", "h", ["l"])
    gauge.set({"l": "v"}, value)
    assert gauge.render().splitlines()[-1] == f'g{{l="v"}} {text}'


def test_gauge_rejects_wrong_labels():
    gauge = metrics.GaugeVec("g", "h", ["cluster"])
    with pytest.raises(ValueError):
        gauge.set({"topic": "t"}, 1)


def test_empty_gauge_renders_nothing():
    registry = metrics.MetricsRegistry()
    registry.gauge("unused", "never set", ["a"])
    assert registry.render() == ""


def test_registry_returns_same_gauge_and_sorts():
    registry = metrics.MetricsRegistry()
    first = registry.gauge("zeta", "z", ["a"])
    assert registry.gauge("zeta", "z", ["a"]) is first
    with pytest.raises(ValueError):
        registry.gauge("zeta", "z", ["b"])
    first.set({"a": "1"}, 2)
    registry.gauge("alpha", "a", ["a"]).set({"a": "1"}, 3)
    text = registry.render()
    assert text.index("alpha") < text.index("zeta")
    assert 'zeta{a="1"} 2' in text