"""
Tests for frame_host.py - host calls, ready acknowledgement and sharing.
"""

import concurrent.futures
import logging
from unittest.mock import Mock

import pytest
import requests

from frame_host import (
    SHARE_FAILED_MESSAGE,
    SHARE_OK_MESSAGE,
    SHARE_TARGET,
    FrameHostError,
    HttpFrameHost,
    LocalFrameHost,
    ScoreSharer,
    acknowledge_ready,
    create_frame_host,
    share_payload,
)


class ImmediateExecutor:
    """Runs submitted calls right away and returns a finished future."""

    def __init__(self):
        self.submitted = 0
        self.shut_down = False

    def submit(self, fn, *args, **kwargs):
        self.submitted += 1
        future = concurrent.futures.Future()
        try:
            future.set_result(fn(*args, **kwargs))
        except Exception as e:
            future.set_exception(e)
        return future

    def shutdown(self, wait=True):
        self.shut_down = True


class PendingExecutor(ImmediateExecutor):
    """Hands back futures that never finish."""

    def submit(self, fn, *args, **kwargs):
        self.submitted += 1
        return concurrent.futures.Future()


class TestSharePayload:

    def test_payload_contains_score_and_target(self):
        payload = share_payload(40)
        assert payload["action"] == "post"
        assert payload["content"].startswith("I scored 40 in Farcaster Snake Run!")
        assert payload["target"] == SHARE_TARGET


class TestHttpFrameHost:

    def test_share_posts_json(self):
        session = Mock()
        host = HttpFrameHost("http://host.test/", session=session)
        host.send_frame_interaction("post", "hello", SHARE_TARGET)

        session.post.assert_called_once()
        args, kwargs = session.post.call_args
        assert args[0] == "http://host.test/interactions"
        assert kwargs["json"] == {"action": "post", "content": "hello", "target": SHARE_TARGET}
        session.post.return_value.raise_for_status.assert_called_once()

    def test_ready_marks_host_ready(self):
        session = Mock()
        host = HttpFrameHost("http://host.test", session=session)
        assert host.is_frame_ready is False
        host.set_frame_ready()
        assert host.is_frame_ready is True
        assert session.post.call_args[0][0] == "http://host.test/ready"

    def test_http_error_is_wrapped(self):
        session = Mock()
        session.post.return_value.raise_for_status.side_effect = requests.exceptions.HTTPError("500")
        host = HttpFrameHost("http://host.test", session=session)
        with pytest.raises(FrameHostError) as excinfo:
            host.send_frame_interaction("post", "hello", SHARE_TARGET)
        assert isinstance(excinfo.value.__cause__, requests.exceptions.HTTPError)

    def test_connection_error_is_wrapped(self):
        session = Mock()
        session.post.side_effect = requests.exceptions.ConnectionError("down")
        host = HttpFrameHost("http://host.test", session=session)
        with pytest.raises(FrameHostError):
            host.set_frame_ready()
        assert host.is_frame_ready is False


class TestCreateFrameHost:

    def test_no_url_gives_local_host(self):
        assert isinstance(create_frame_host(None), LocalFrameHost)
        assert isinstance(create_frame_host(""), LocalFrameHost)

    def test_url_gives_http_host(self):
        host = create_frame_host("http://host.test")
        assert isinstance(host, HttpFrameHost)
        assert host.base_url == "http://host.test"


class TestAcknowledgeReady:

    def test_calls_ready_once(self):
        host = Mock(is_frame_ready=False)
        assert acknowledge_ready(host) is True
        host.set_frame_ready.assert_called_once()

    def test_skips_when_already_ready(self):
        host = Mock(is_frame_ready=True)
        assert acknowledge_ready(host) is True
        host.set_frame_ready.assert_not_called()

    def test_local_host_is_idempotent(self):
        host = LocalFrameHost()
        assert acknowledge_ready(host)
        assert acknowledge_ready(host)
        assert host.is_frame_ready

    def test_failure_is_logged_not_raised(self, caplog):
        host = Mock(is_frame_ready=False)
        host.set_frame_ready.side_effect = FrameHostError("nope")
        with caplog.at_level(logging.WARNING, logger="frame_host"):
            assert acknowledge_ready(host) is False
        assert "Frame host did not acknowledge ready: nope" in caplog.text


class TestScoreSharer:

    def test_zero_score_is_not_sent(self):
        host = Mock()
        sharer = ScoreSharer(host, executor=ImmediateExecutor())
        assert sharer.share(0) is False
        host.send_frame_interaction.assert_not_called()
        assert sharer.poll() is None

    def test_success_reports_ok(self):
        host = Mock()
        sharer = ScoreSharer(host, executor=ImmediateExecutor())
        assert sharer.share(20) is True
        assert sharer.in_flight
        host.send_frame_interaction.assert_called_once_with(**share_payload(20))

        result = sharer.poll()
        assert result.ok is True
        assert result.message == SHARE_OK_MESSAGE
        assert not sharer.in_flight
        assert sharer.poll() is None

    def test_failure_reports_message(self):
        host = Mock()
        host.send_frame_interaction.side_effect = FrameHostError("rejected")
        sharer = ScoreSharer(host, executor=ImmediateExecutor())
        sharer.share(20)

        result = sharer.poll()
        assert result.ok is False
        assert result.message == SHARE_FAILED_MESSAGE
        assert not sharer.in_flight

    def test_failure_is_logged(self, caplog):
        host = Mock()
        host.send_frame_interaction.side_effect = FrameHostError("rejected")
        sharer = ScoreSharer(host, executor=ImmediateExecutor())
        with caplog.at_level(logging.INFO, logger="frame_host"):
            sharer.share(20)
            sharer.poll()
        assert "Sharing score 20" in caplog.text
        assert "Error sharing score: rejected" in caplog.text

    def test_local_host_share_fails_cleanly(self):
        sharer = ScoreSharer(LocalFrameHost(), executor=ImmediateExecutor())
        sharer.share(10)
        assert sharer.poll().ok is False

    def test_second_share_while_in_flight_is_ignored(self):
        executor = PendingExecutor()
        sharer = ScoreSharer(Mock(), executor=executor)
        assert sharer.share(10) is True
        assert sharer.share(10) is False
        assert executor.submitted == 1
        assert sharer.poll() is None
        assert sharer.in_flight

    def test_real_executor_round_trip(self):
        host = Mock()
        sharer = ScoreSharer(host)
        try:
            sharer.share(50)
            concurrent.futures.wait([sharer._future])
            assert sharer.poll().ok is True
        finally:
            sharer.close()

    def test_close_shuts_down_executor(self):
        executor = ImmediateExecutor()
        ScoreSharer(Mock(), executor=executor).close()
        assert executor.shut_down
