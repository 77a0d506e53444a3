import threading

from rtdist.buckets import Bucket, BucketClassifier, Sample, Thresholds
from rtdist.distribution import TICKS_KEY, SyntheticDistributionConsumer, ticks
from rtdist.graph import DEFAULT_GROUP
from rtdist.labels import LabelFormatter, LabelTemplates, resolve_templates

TEMPLATES = LabelTemplates(
    satisfied="S<={0}",
    tolerated="T({0},{1}]",
    untolerated="U>{0}",
    failed="F",
)


def _consumer(satisfied=100, tolerated=500, templates=TEMPLATES):
    consumer = SyntheticDistributionConsumer(satisfied, tolerated, templates=templates)
    consumer.start()
    return consumer


def _result(consumer):
    return consumer.produce()[DEFAULT_GROUP]


def test_ticks_always_four_in_bucket_order():
    formatter = LabelFormatter(TEMPLATES)
    out = ticks(formatter, Thresholds(satisfied=100, tolerated=500))
    assert [tick.to_list() for tick in out] == [
        [0, "S<=100"],
        [1, "T(100,500]"],
        [2, "U>500"],
        [3, "F"],
    ]


def test_reference_rows_counted_per_bucket():
    consumer = _consumer()
    for sample in (Sample(50, True), Sample(300, True), Sample(900, True), Sample(10, False)):
        consumer.consume(sample)
    result = _result(consumer)
    assert result["series"] == [
        {"label": "S<=100", "isController": False, "data": [[0, 1]]},
        {"label": "T(100,500]", "isController": False, "data": [[1, 1]]},
        {"label": "U>500", "isController": False, "data": [[2, 1]]},
        {"label": "F", "isController": False, "data": [[3, 1]]},
    ]
    assert result["minX"] == 0
    assert result["maxX"] == 3
    assert result["supportsControllersDiscrimination"] is False


def test_counts_accumulate():
    consumer = _consumer()
    for elapsed in (1, 2, 3, 400, 401):
        consumer.consume(Sample(elapsed, True))
    result = _result(consumer)
    counts = {series["label"]: series["data"] for series in result["series"]}
    assert counts == {"S<=100": [[0, 3]], "T(100,500]": [[1, 2]]}
    assert result["maxY"] == 3


def test_unobserved_buckets_have_no_series_but_keep_ticks():
    consumer = _consumer()
    consumer.consume(Sample(50, True))
    result = _result(consumer)
    assert [series["label"] for series in result["series"]] == ["S<=100"]
    assert len(result[TICKS_KEY]) == 4
    assert [tick[0] for tick in result[TICKS_KEY]] == [0, 1, 2, 3]


def test_ticks_present_without_samples():
    result = _result(_consumer())
    assert result["series"] == []
    assert result["minX"] is None
    assert result[TICKS_KEY] == [[0, "S<=100"], [1, "T(100,500]"], [2, "U>500"], [3, "F"]]


def test_controller_samples_are_not_counted():
    consumer = _consumer()
    consumer.consume(Sample(50, True, controller=True))
    consumer.consume(Sample(900, False, controller=True))
    consumer.consume(Sample(60, True))
    result = _result(consumer)
    assert result["series"] == [{"label": "S<=100", "isController": False, "data": [[0, 1]]}]


def test_series_key_and_label_denote_same_bucket():
    consumer = _consumer(templates=resolve_templates("en"))
    formatter = consumer.formatter
    thresholds = consumer.thresholds()
    tick_labels = [formatter.label(bucket, thresholds) for bucket in Bucket]
    for elapsed in range(0, 1000, 37):
        consumer.consume(Sample(elapsed, elapsed % 5 != 0))
    for series in _result(consumer)["series"]:
        for key, _count in series["data"]:
            assert tick_labels[key] == series["label"]


def test_inverted_thresholds_produce_no_tolerated_series():
    consumer = _consumer(satisfied=500, tolerated=100)
    for elapsed in range(0, 1000, 10):
        consumer.consume(Sample(elapsed, True))
    result = _result(consumer)
    assert [series["label"] for series in result["series"]] == ["S<=500", "U>100"]
    assert result[TICKS_KEY][1] == [1, "T(500,100]"]


def test_threshold_properties_and_default_templates():
    consumer = SyntheticDistributionConsumer()
    consumer.satisfied_threshold = 250
    consumer.tolerated_threshold = 750
    assert consumer.satisfied_threshold == 250
    assert consumer.tolerated_threshold == 750
    assert consumer.thresholds() == Thresholds(satisfied=250, tolerated=750)
    consumer.consume(Sample(700, True))
    result = _result(consumer)
    assert result["series"][0]["label"] == "Requests having response time > 250ms and <= 750ms"


def test_concurrent_consume_counts_every_sample():
    consumer = _consumer()
    classifier = BucketClassifier(consumer.thresholds())
    samples = [Sample(elapsed, elapsed % 7 != 0) for elapsed in range(0, 1000)]
    expected = {}
    for sample in samples:
        bucket = int(classifier(sample))
        expected[bucket] = expected.get(bucket, 0) + 4

    def _worker():
        for sample in samples:
            consumer.consume(sample)

    threads = [threading.Thread(target=_worker) for _ in range(4)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    got = {}
    for series in _result(consumer)["series"]:
        for key, count in series["data"]:
            got[key] = count
    assert got == expected


def test_thresholds_set_after_start_drive_keys_labels_and_ticks():
    consumer = SyntheticDistributionConsumer()
    consumer.start()
    consumer.satisfied_threshold = 100
    consumer.tolerated_threshold = 500
    consumer.consume(Sample(300, True))
    consumer.consume(Sample(900, True))
    result = _result(consumer)
    tick_labels = dict(result[TICKS_KEY])
    assert [series["data"] for series in result["series"]] == [[[1, 1]], [[2, 1]]]
    for series in result["series"]:
        key = series["data"][0][0]
        assert series["label"] == tick_labels[key]
    assert tick_labels[1] == "Requests having response time > 100ms and <= 500ms"
