"""
Unit tests for the built-in chat commands.
"""

from datetime import datetime, timezone

import pytest

from ircchat.chat import ClientRegistry, CommandDispatcher
from ircchat.handlers import register_default_commands

from conftest import RecordingLoop


@pytest.fixture
def room(make_client):
    """
    A registry with alice, bob and admin, plus a recording loop.

    Returns a namespace-like dict: clients and peers by name.
    """
    registry = ClientRegistry()
    clients, peers = {}, {}
    for name in ["alice", "bob", "admin"]:
        client, peer = make_client(name)
        registry.add(client)
        clients[name] = client
        peers[name] = peer

    class Room:
        pass

    room = Room()
    room.registry = registry
    room.loop = RecordingLoop(registry)
    room.clients = clients
    room.peers = peers
    room.dispatcher = register_default_commands(CommandDispatcher(
        clock=lambda: datetime(2024, 5, 1, 12, 30, 0, tzinfo=timezone.utc),
    ))

    def run(issuer, line):
        return room.dispatcher.dispatch(clients[issuer], line.split(), registry, room.loop)

    room.run = run
    return room


class TestUsers:

    def test_lists_everyone(self, room):
        assert room.run("bob", "/users")

        lines = room.peers["bob"].read_lines(3)
        assert sorted(lines) == ["\tadmin", "\talice", "\tbob"]
        room.peers["alice"].assert_silent()

    def test_reflects_departures(self, room):
        room.registry.remove(room.clients["alice"].connection)

        room.run("bob", "/users")

        lines = room.peers["bob"].read_lines(2)
        assert sorted(lines) == ["\tadmin", "\tbob"]
        room.peers["bob"].assert_silent()

    def test_extra_args_ignored(self, room):
        assert room.run("alice", "/users please")
        assert len(room.peers["alice"].read_lines(3)) == 3


class TestDirectMessage:

    def test_delivers_to_target_only(self, room):
        assert room.run("bob", "/msg alice hello there")

        assert room.peers["alice"].read_line() == 'DM from <bob>: "hello there"'
        room.peers["alice"].assert_silent()
        room.peers["bob"].assert_silent()
        room.peers["admin"].assert_silent()

    def test_whitespace_collapsed(self, room):
        room.run("bob", "/msg   alice   spaced    out")

        assert room.peers["alice"].read_line() == 'DM from <bob>: "spaced out"'

    def test_message_to_self(self, room):
        room.run("bob", "/msg bob note to self")

        assert room.peers["bob"].read_line() == 'DM from <bob>: "note to self"'

    @pytest.mark.parametrize("line", ["/msg", "/msg alice"])
    def test_usage(self, room, line):
        assert room.run("bob", line) is False

        reply = room.peers["bob"].read_line()
        assert reply == "irc-server > Please provide a user and a message: /msg <user> <message>"
        room.peers["alice"].assert_silent()

    def test_usage_follows_registration(self, room):
        room.dispatcher.add_command("/msg", room.dispatcher.get("/msg").handler, usage="/msg NICK TEXT")

        room.run("bob", "/msg")

        assert room.peers["bob"].read_line() == "irc-server > Please provide a user and a message: /msg NICK TEXT"

    def test_unknown_user(self, room):
        assert room.run("bob", "/msg carol hi") is False

        assert room.peers["bob"].read_line() == "irc-server > The user 'carol' does not exist"

    def test_duplicate_username_goes_to_earliest(self, room, make_client):
        impostor, impostor_peer = make_client("alice")
        room.registry.add(impostor)

        room.run("bob", "/msg alice hi")

        assert room.peers["alice"].read_line() == 'DM from <bob>: "hi"'
        impostor_peer.assert_silent()


class TestTime:

    def test_server_time(self, room):
        assert room.run("alice", "/time")

        assert room.peers["alice"].read_line() == "irc-server > Server time: 2024-05-01 12:30:00 UTC"

    def test_default_clock_is_now(self, make_client):
        dispatcher = register_default_commands(CommandDispatcher())
        client, peer = make_client("alice")

        dispatcher.dispatch(client, ["/time"], ClientRegistry())

        line = peer.read_line()
        assert line.startswith(f"irc-server > Server time: {datetime.now().year}-")


class TestUserInfo:

    def test_shows_name_and_address(self, room):
        alice = room.clients["alice"]

        assert room.run("bob", "/user alice")

        assert room.peers["bob"].read_line() == (
            f"irc-server > Username: alice, IP: {alice.connection.remote_address}"
        )

    def test_usage(self, room):
        assert room.run("bob", "/user") is False

        assert room.peers["bob"].read_line() == "irc-server > Please provide a <user> to view: /user <name>"

    def test_unknown_user(self, room):
        room.run("bob", "/user carol")

        assert room.peers["bob"].read_line() == "irc-server > The user 'carol' does not exist"


class TestKick:

    def test_admin_kicks(self, room):
        bob = room.clients["bob"]

        assert room.run("admin", "/kick bob")

        assert room.peers["bob"].read_line() == "irc-server > You have been kicked from the server"
        assert room.loop.disconnects == [bob.connection]
        room.peers["admin"].assert_silent()

    def test_registry_changes_only_through_loop(self, room):
        """The handler requests a Leave; it never mutates the registry."""
        room.run("admin", "/kick bob")

        assert room.clients["bob"].connection in room.registry

    def test_kick_absent_user(self, room):
        assert room.run("admin", "/kick carol") is False

        assert room.peers["admin"].read_line() == "irc-server > The user 'carol' does not exist"
        assert room.loop.disconnects == []
        assert len(room.registry) == 3

    def test_usage(self, room):
        assert room.run("admin", "/kick") is False

        assert room.peers["admin"].read_line() == "irc-server > Please provide a user to kick: /kick <name>"
        assert room.loop.disconnects == []

    def test_member_not_allowed(self, room):
        assert room.run("alice", "/kick bob") is False

        assert room.peers["alice"].read_line() == "irc-server > Not allowed command, must be admin"
        room.peers["bob"].assert_silent()
        assert room.loop.disconnects == []

    def test_member_not_allowed_without_args(self, room):
        room.run("alice", "/kick")

        assert room.peers["alice"].read_line() == "irc-server > Not allowed command, must be admin"

    def test_admin_can_kick_self(self, room):
        room.run("admin", "/kick admin")

        assert room.peers["admin"].read_line() == "irc-server > You have been kicked from the server"
        assert room.loop.disconnects == [room.clients["admin"].connection]
