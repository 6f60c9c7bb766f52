"""Polling fallback and live-channel client behaviour, without a network."""

import threading
import time

import requests
from socketio.exceptions import ConnectionError as SocketConnectionError

from chat_client.live import MessagingClient
from chat_client.poller import UnreadCountPoller


class FakeResponse:
    def __init__(self, payload, status_code=200):
        self.payload = payload
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")

    def json(self):
        return self.payload


class FakeSession:
    def __init__(self, responses):
        self.responses = list(responses)
        self.calls = []

    def get(self, url, headers=None, timeout=None):
        self.calls.append((url, headers, timeout))
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


def _count(n):
    return FakeResponse({"success": True, "data": {"unreadCount": n, "pollInterval": 30}})


class TestUnreadCountPoller:
    def test_poll_once_reports_changes_only(self):
        seen = []
        session = FakeSession([_count(2), _count(2), _count(0)])
        poller = UnreadCountPoller("http://api.test/", "tok", on_change=seen.append, session=session)

        assert poller.poll_once() == 2
        assert poller.poll_once() == 2
        assert poller.poll_once() == 0
        assert seen == [2, 0]

        url, headers, _ = session.calls[0]
        assert url == "http://api.test/api/messages/unread-count"
        assert headers == {"Authorization": "Bearer tok"}

    def test_failed_poll_keeps_last_count(self):
        session = FakeSession([_count(1), requests.ConnectionError("down"), FakeResponse({}, 500)])
        poller = UnreadCountPoller("http://api.test", "tok", session=session)
        assert poller.poll_once() == 1
        assert poller.poll_once() is None
        assert poller.poll_once() is None
        assert poller.last_count == 1

    def test_start_and_stop(self):
        session = FakeSession([_count(4)] * 1000)
        seen = []
        first_poll = threading.Event()

        def on_change(count):
            seen.append(count)
            first_poll.set()

        poller = UnreadCountPoller("http://api.test", "tok", on_change=on_change, interval=0.01, session=session)
        poller.start()
        assert poller.running
        assert first_poll.wait(2)
        poller.stop(timeout=2)
        assert not poller.running
        assert seen == [4]

    def test_default_interval_is_thirty_seconds(self):
        assert UnreadCountPoller("http://api.test", "tok").interval == 30


class FakeSocket:
    def __init__(self, fail=False):
        self.fail = fail
        self.handlers = {}
        self.connected = False
        self.calls = []

    def on(self, event, handler):
        self.handlers[event] = handler

    def connect(self, url, auth=None, wait_timeout=None):
        if self.fail:
            raise SocketConnectionError("refused")
        self.connected = True
        self.handlers["connect"]()

    def call(self, event, data, timeout=None):
        self.calls.append((event, data))
        return {"ok": True}

    def disconnect(self):
        self.connected = False
        self.handlers["disconnect"]()


class FakePoller:
    def __init__(self):
        self.started = 0
        self.stopped = 0
        self.stop_timeouts = []

    def start(self):
        self.started += 1

    def stop(self, timeout=None):
        self.stopped += 1
        self.stop_timeouts.append(timeout)


class TestMessagingClient:
    def test_falls_back_to_polling_when_connect_fails(self):
        poller = FakePoller()
        client = MessagingClient("http://api.test", "tok", sio=FakeSocket(fail=True), poller=poller)
        assert client.connect() is False
        assert poller.started == 1
        assert not client.live

    def test_polling_follows_live_channel_state(self):
        sio = FakeSocket()
        poller = FakePoller()
        client = MessagingClient("http://api.test", "tok", sio=sio, poller=poller)

        assert client.connect() is True
        assert poller.stopped == 1

        sio.handlers["disconnect"]()
        assert poller.started == 1

        sio.handlers["connect"]()
        assert poller.stopped == 2

    def test_send_uses_event_contract(self):
        sio = FakeSocket()
        client = MessagingClient("http://api.test", "tok", sio=sio, poller=FakePoller())
        client.connect()
        assert client.send(2, 5, "hello") == {"ok": True}
        assert sio.calls == [("send_message", {"receiverId": 2, "listingId": 5, "content": "hello"})]

    def test_callbacks(self):
        messages, errors = [], []
        sio = FakeSocket()
        MessagingClient(
            "http://api.test", "tok", on_message=messages.append, on_error=errors.append, sio=sio, poller=FakePoller()
        )
        sio.handlers["receive_message"]({"id": 1})
        sio.handlers["message_error"]({"error": "Listing not found"})
        assert messages == [{"id": 1}]
        assert errors == ["Listing not found"]

    def test_reconnect_does_not_wait_on_poller(self):
        sio = FakeSocket()
        poller = FakePoller()
        MessagingClient("http://api.test", "tok", sio=sio, poller=poller)
        sio.handlers["connect"]()
        assert poller.stop_timeouts == [0]

    def test_close_leaves_poller_stopped(self):
        session = FakeSession([_count(1)] * 1000)
        poller = UnreadCountPoller("http://api.test", "tok", interval=0.01, session=session)
        sio = FakeSocket()
        client = MessagingClient("http://api.test", "tok", sio=sio, poller=poller)

        assert client.connect() is True
        client.close()
        assert not sio.connected
        assert not poller.running

        calls = len(session.calls)
        time.sleep(0.05)
        assert len(session.calls) == calls

    def test_close_after_fallback_stops_polling(self):
        session = FakeSession([_count(1)] * 1000)
        poller = UnreadCountPoller("http://api.test", "tok", interval=0.01, session=session)
        client = MessagingClient("http://api.test", "tok", sio=FakeSocket(fail=True), poller=poller)

        assert client.connect() is False
        assert poller.running
        client.close()
        assert not poller.running
