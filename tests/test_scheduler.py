"""Tests for the forwarding scheduler: cycle orchestration and failure isolation."""
import logging
import threading
from unittest.mock import MagicMock

import pytest
import requests

from promforward.config import Credentials
from promforward.converter import TextFormatConverter
from promforward.encoder import Encoder
from promforward.errors import ConversionError, EncodeError, SendTransportError
from promforward.fetcher import Fetcher
from promforward.scheduler import ForwarderScheduler
from promforward.series import Label, Sample, TimeSeries, WriteRequest

LABELS = {"node_name": "testNode"}


@pytest.fixture
def credentials():
    return Credentials(url="prom.example.net/api/prom/push", user="123456", key="topsecret")


def make_request():
    return WriteRequest(timeseries=[
        TimeSeries(
            labels=[Label("__name__", "up"), Label("node_name", "testNode")],
            samples=[Sample(1.0, 1000)],
        )
    ])


def make_scheduler(credentials, **overrides):
    fetcher = MagicMock()
    fetcher.fetch.return_value = b"up 1\n"
    converter = MagicMock()
    converter.convert.return_value = make_request()
    encoder = MagicMock()
    encoder.encode.return_value = b"payload"
    sender = MagicMock()
    sender.send.return_value = 200

    components = {
        "fetcher": fetcher,
        "converter": converter,
        "encoder": encoder,
        "sender": sender,
    }
    components.update(overrides)
    return ForwarderScheduler(credentials, LABELS, tick_interval_s=0.01, **components)


def test_successful_cycle_runs_all_stages_in_order(credentials):
    scheduler = make_scheduler(credentials)
    result = scheduler.run_cycle()

    assert result.ok
    assert result.stage == "send"
    assert result.status_code == 200
    assert result.series_count == 1
    scheduler.converter.convert.assert_called_once_with(b"up 1\n", LABELS)
    scheduler.encoder.encode.assert_called_once_with(scheduler.converter.convert.return_value)
    scheduler.sender.send.assert_called_once_with(b"payload", credentials)


def test_connection_refused_stops_cycle_at_fetch(credentials, caplog):
    session = MagicMock()
    session.prepare_request.return_value = MagicMock()
    session.send.side_effect = requests.exceptions.ConnectionError("Connection refused")
    scheduler = make_scheduler(credentials, fetcher=Fetcher(session=session))

    with caplog.at_level(logging.ERROR, logger="promforward.scheduler"):
        result = scheduler.run_cycle()

    assert not result.ok
    assert result.stage == "fetch"
    assert "FetchTransportError" in result.error
    assert "failed at stage 'fetch'" in caplog.text
    scheduler.converter.convert.assert_not_called()
    scheduler.encoder.encode.assert_not_called()
    scheduler.sender.send.assert_not_called()


def test_malformed_body_stops_cycle_at_convert(credentials):
    fetcher = MagicMock()
    fetcher.fetch.return_value = b"this is not a metric line\n"
    scheduler = make_scheduler(credentials, fetcher=fetcher, converter=TextFormatConverter())

    result = scheduler.run_cycle()

    assert not result.ok
    assert result.stage == "convert"
    assert "ConversionError" in result.error
    scheduler.encoder.encode.assert_not_called()


def test_encode_failure_stops_cycle_at_encode(credentials):
    scheduler = make_scheduler(credentials)
    scheduler.encoder.encode.side_effect = EncodeError("boom")

    result = scheduler.run_cycle()

    assert result.stage == "encode"
    assert not result.ok
    scheduler.sender.send.assert_not_called()


def test_unreachable_remote_is_logged(credentials, caplog):
    scheduler = make_scheduler(credentials)
    scheduler.sender.send.side_effect = SendTransportError("unreachable")

    with caplog.at_level(logging.ERROR, logger="promforward.scheduler"):
        result = scheduler.run_cycle()

    assert result.stage == "send"
    assert not result.ok
    assert "failed at stage 'send'" in caplog.text
    assert "topsecret" not in caplog.text


def test_http_500_is_logged_at_debug_and_not_acted_on(credentials, caplog):
    scheduler = make_scheduler(credentials)
    scheduler.sender.send.return_value = 500

    with caplog.at_level(logging.DEBUG, logger="promforward.scheduler"):
        first = scheduler.run_cycle()
        second = scheduler.run_cycle()

    assert first.ok and first.status_code == 500
    assert second.ok and second.cycle == 2
    assert scheduler.sender.send.call_count == 2
    debug_lines = [r for r in caplog.records if r.levelno == logging.DEBUG]
    assert any("500" in r.getMessage() for r in debug_lines)
    assert not [r for r in caplog.records if r.levelno >= logging.ERROR]


def test_failure_does_not_affect_next_cycle(credentials):
    scheduler = make_scheduler(credentials)
    scheduler.converter.convert.side_effect = [ConversionError("bad"), make_request()]

    failed = scheduler.run_cycle()
    recovered = scheduler.run_cycle()

    assert not failed.ok
    assert recovered.ok
    assert scheduler.sender.send.call_count == 1
    assert scheduler.last_result is recovered


def test_unexpected_exception_is_contained(credentials, caplog):
    scheduler = make_scheduler(credentials)
    scheduler.fetcher.fetch.side_effect = RuntimeError("surprise")

    with caplog.at_level(logging.ERROR, logger="promforward.scheduler"):
        result = scheduler.run_cycle()

    assert not result.ok
    assert result.stage == "fetch"
    assert "unexpected error" in caplog.text


def test_empty_scrape_is_still_sent(credentials):
    fetcher = MagicMock()
    fetcher.fetch.return_value = b""
    scheduler = make_scheduler(
        credentials,
        fetcher=fetcher,
        converter=TextFormatConverter(),
        encoder=Encoder(),
    )

    result = scheduler.run_cycle()

    assert result.ok
    assert result.series_count == 0
    payload = scheduler.sender.send.call_args.args[0]
    assert Encoder().decode(payload).timeseries == []


def test_labels_must_include_node_name(credentials):
    with pytest.raises(ValueError):
        ForwarderScheduler(credentials, {"job": "x"})


def test_self_metrics_track_outcomes(credentials):
    scheduler = make_scheduler(credentials)
    scheduler.run_cycle()
    scheduler.encoder.encode.side_effect = EncodeError("boom")
    scheduler.run_cycle()

    text = scheduler.self_metrics.render().decode()
    assert 'promforward_cycles_total{outcome="success"} 1.0' in text
    assert 'promforward_cycles_total{outcome="failure"} 1.0' in text
    assert 'promforward_stage_errors_total{stage="encode"} 1.0' in text
    assert "promforward_remote_write_last_status 200.0" in text


def test_run_loop_survives_failures_until_stopped(credentials):
    scheduler = make_scheduler(credentials)
    calls = []

    def fetch():
        calls.append(1)
        if len(calls) == 1:
            raise requests.exceptions.ConnectionError("refused")
        if len(calls) == 3:
            scheduler.stop()
        return b"up 1\n"

    scheduler.fetcher.fetch.side_effect = fetch

    thread = threading.Thread(target=scheduler.run, daemon=True)
    thread.start()
    thread.join(timeout=5)

    assert not thread.is_alive()
    assert scheduler.cycle_count == 3
    assert not scheduler.running
    assert scheduler.last_result.ok


def test_stop_before_run_schedules_nothing(credentials):
    scheduler = make_scheduler(credentials)
    scheduler.stop()
    scheduler.run()

    assert scheduler.cycle_count == 0
    assert scheduler.stopped


def test_status_redacts_credentials(credentials):
    scheduler = make_scheduler(credentials)
    scheduler.run_cycle()
    status = scheduler.status()

    assert status["cycle_count"] == 1
    assert status["last_cycle"]["ok"] is True
    assert "topsecret" not in status["remote_write_target"]
    assert "123456" not in status["remote_write_target"]
