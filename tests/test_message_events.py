"""Live channel: connect authentication, send_message fan-out, disconnects."""

from datetime import timedelta

from api.jwt_authorize import generate_token
from model.message import Message


def _send(test_client, receiver_id, listing_id, content):
    return test_client.emit(
        "send_message",
        {"receiverId": receiver_id, "listingId": listing_id, "content": content},
        callback=True,
    )


class TestConnect:
    def test_valid_token_registers_connection(self, users, registry, live_client, received):
        alice = live_client(users.a)
        assert alice.is_connected()
        assert received(alice, "connected") == [{"userId": users.a}]
        assert len(registry.resolve(users.a)) == 1

    def test_missing_token_is_refused(self, registry, live_client):
        anonymous = live_client()
        assert not anonymous.is_connected()
        assert registry.connection_count() == 0

    def test_invalid_token_is_refused(self, users, registry, live_client):
        assert not live_client(token="not-a-jwt").is_connected()
        assert registry.connection_count() == 0

    def test_expired_token_is_refused(self, users, registry, live_client):
        token = generate_token(users.a, "alice@example.com", expires_in=timedelta(seconds=-5))
        assert not live_client(token=token).is_connected()
        assert registry.connection_count() == 0

    def test_multiple_tabs(self, users, registry, live_client):
        live_client(users.a)
        live_client(users.a)
        assert len(registry.resolve(users.a)) == 2


class TestSendMessage:
    def test_send_fans_out_to_both_parties(self, users, live_client, received):
        alice_tab = live_client(users.a)
        alice_phone = live_client(users.a)
        bob = live_client(users.b)
        carol = live_client(users.c)
        for test_client in (alice_tab, alice_phone, bob, carol):
            test_client.get_received()

        ack = _send(alice_tab, users.b, users.l1, "Is this still available?")
        assert ack["ok"] is True
        assert ack["message"]["senderId"] == users.a

        for test_client in (alice_tab, alice_phone, bob):
            [pushed] = received(test_client, "receive_message")
            assert pushed["id"] == ack["message"]["id"]
            assert pushed["message"] == "Is this still available?"
            assert pushed["read"] is False
        assert received(carol, "receive_message") == []

    def test_self_send_emits_message_error(self, users, live_client, received):
        alice = live_client(users.a)
        alice.get_received()

        ack = _send(alice, users.a, users.l1, "hello me")
        assert ack == {"ok": False, "error": "Cannot send message to yourself"}
        items = alice.get_received()
        assert [item["name"] for item in items] == ["message_error"]
        assert items[0]["args"][0] == {"error": "Cannot send message to yourself"}
        assert Message.query.count() == 0

    def test_missing_listing_emits_message_error(self, users, live_client, received):
        alice = live_client(users.a)
        bob = live_client(users.b)
        alice.get_received()
        bob.get_received()

        _send(alice, users.b, 9999, "hello")
        assert received(alice, "message_error") == [{"error": "Listing not found"}]
        assert bob.get_received() == []

    def test_empty_content_emits_message_error(self, users, live_client, received):
        alice = live_client(users.a)
        alice.get_received()
        ack = _send(alice, users.b, users.l1, "   ")
        assert ack["ok"] is False
        assert received(alice, "message_error") == [{"error": "Message cannot be empty"}]

    def test_malformed_payload(self, users, live_client):
        alice = live_client(users.a)
        ack = alice.emit("send_message", "not an object", callback=True)
        assert ack["ok"] is False

    def test_read_state_is_not_pushed(self, client, users, auth_headers, live_client):
        alice = live_client(users.a)
        _send(alice, users.b, users.l1, "Is this still available?")
        alice.get_received()

        client.get(f"/api/messages/conversations/{users.a}", headers=auth_headers(users.b))
        assert alice.get_received() == []


class TestDisconnect:
    def test_disconnect_unregisters(self, users, registry, live_client):
        alice = live_client(users.a)
        assert len(registry.resolve(users.a)) == 1
        alice.disconnect()
        assert registry.resolve(users.a) == frozenset()
        assert registry.connection_count() == 0

    def test_message_sent_during_gap_is_durable(self, users, store, aggregator, live_client, received):
        bob = live_client(users.b)
        alice = live_client(users.a)
        alice.disconnect()

        ack = _send(bob, users.a, users.l1, "yes, still available")
        assert ack["ok"] is True

        assert [m.body for m in store.history(users.a, users.b)] == ["yes, still available"]
        [summary] = aggregator.list_for(users.a)
        assert summary["unreadCount"] == 1
        assert aggregator.unread_count_for(users.a) == 1

        alice_again = live_client(users.a)
        assert alice_again.is_connected()
        # nothing is replayed on reconnect; the thread is fetched over REST
        assert received(alice_again, "receive_message") == []
