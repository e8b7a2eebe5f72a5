import threading

from httplog.exchange import HttpRequest, HttpResponse
from httplog.ids import MAX_REQUEST_ID, RequestIdGenerator


def test_preset_id_is_returned_unchanged():
    gen = RequestIdGenerator(lambda req, res: "generated")
    req = HttpRequest(id={"trace": "abc"})
    assert gen(req, HttpResponse()) == {"trace": "abc"}


def test_counter_starts_at_one_and_increments():
    gen = RequestIdGenerator()
    assert [gen(HttpRequest(), HttpResponse()) for _ in range(3)] == [1, 2, 3]


def test_counter_wraps_to_one():
    gen = RequestIdGenerator()
    gen._last_id = MAX_REQUEST_ID - 1
    assert gen(HttpRequest(), HttpResponse()) == MAX_REQUEST_ID
    assert gen(HttpRequest(), HttpResponse()) == 1


def test_counters_are_per_instance():
    a, b = RequestIdGenerator(), RequestIdGenerator()
    a(HttpRequest(), HttpResponse())
    assert b(HttpRequest(), HttpResponse()) == 1


def test_custom_generator_result_is_used_verbatim():
    gen = RequestIdGenerator(lambda req, res: req.headers["x-request-id"])
    req = HttpRequest(headers={"X-Request-Id": "abc-123"})
    assert gen(req, HttpResponse()) == "abc-123"


def test_unusable_generator_results_fall_back_to_counter():
    def boom(req, res):
        raise RuntimeError("no id")

    assert RequestIdGenerator(lambda req, res: None)(HttpRequest(), HttpResponse()) == 1
    assert RequestIdGenerator(lambda req, res: len)(HttpRequest(), HttpResponse()) == 1
    assert RequestIdGenerator(boom)(HttpRequest(), HttpResponse()) == 1


def test_callable_preset_id_is_replaced():
    req = HttpRequest()
    req.id = lambda: "x"
    assert RequestIdGenerator()(req, HttpResponse()) == 1


def test_concurrent_ids_are_distinct():
    gen = RequestIdGenerator()
    ids = []
    lock = threading.Lock()

    def worker():
        local = [gen(HttpRequest(), HttpResponse()) for _ in range(200)]
        with lock:
            ids.extend(local)

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(ids) == 1600
    assert len(set(ids)) == 1600
