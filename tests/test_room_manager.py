"""
Tests for room creation, joining, capacity and teardown.
"""

import pytest

from errors import AlreadyInRoom, RoomAlreadyExists, RoomFull, RoomIdRequired, RoomNotFound
from registry import ConnectionRegistry, Connection, Role
from room_manager import RoomManager, generate_room_id, ROOM_ID_ALPHABET
from tests.conftest import FakeTransport, drain, of_type


def assert_consistent(backend):
    """Every connection's room points back at a room that lists it, and vice versa."""
    for connection in backend.registry:
        if connection.room_id is not None:
            room = backend.rooms.get(connection.room_id)
            assert room is not None
            assert connection.id in room.members
    for summary in backend.rooms.list_rooms():
        room = backend.rooms.get(summary["id"])
        assert 0 < len(room.members) <= 2
        for member_id in room.members:
            assert backend.registry.get(member_id).room_id == room.id


class TestRoomIdGeneration:
    def test_generated_id_is_six_alphanumeric_chars(self):
        room_id = generate_room_id()
        assert len(room_id) == 6
        assert all(ch in ROOM_ID_ALPHABET for ch in room_id)

    def test_collision_is_regenerated(self):
        registry = ConnectionRegistry()
        ids = iter(["AAAAAA", "AAAAAA", "BBBBBB"])
        rooms = RoomManager(registry, id_generator=lambda: next(ids))
        first = Connection(FakeTransport())
        second = Connection(FakeTransport())
        registry.register(first)
        registry.register(second)

        assert rooms.create_room(first.id) == "AAAAAA"
        assert rooms.create_room(second.id) == "BBBBBB"
        assert rooms.get("AAAAAA").members == [first.id]


class TestCreateRoom:
    def test_creator_is_sole_member_and_caller(self, backend, connect):
        a = connect()
        room_id = backend.rooms.create_room(a.id)

        room = backend.rooms.get(room_id)
        assert room.members == [a.id]
        assert room.created_by == a.id
        assert a.role == Role.CALLER
        assert a.room_id == room_id
        assert drain(a) == [{"type": "room-created", "roomId": room_id, "clientId": a.id}]

    def test_requested_id_is_used(self, backend, connect):
        a = connect()
        assert backend.rooms.create_room(a.id, "demo") == "demo"
        assert "demo" in backend.rooms

    def test_existing_id_is_rejected_and_room_untouched(self, backend, connect):
        a, b = connect(), connect()
        backend.rooms.create_room(a.id, "demo")

        with pytest.raises(RoomAlreadyExists):
            backend.rooms.create_room(b.id, "demo")

        assert backend.rooms.get("demo").members == [a.id]
        assert b.room_id is None
        assert b.role == Role.NONE

    def test_creating_again_leaves_previous_room(self, backend, connect):
        a, b = connect(), connect()
        first = backend.rooms.create_room(a.id)
        backend.rooms.join_room(b.id, first)
        drain(b)

        second = backend.rooms.create_room(a.id)

        assert backend.rooms.get(first).members == [b.id]
        assert of_type(drain(b), "peer-disconnected") == [{"type": "peer-disconnected", "clientId": a.id, "roomId": first}]
        assert a.room_id == second
        assert_consistent(backend)


class TestJoinRoom:
    def test_join_pairs_caller_and_callee(self, backend, connect):
        a, b = connect(), connect()
        room_id = backend.rooms.create_room(a.id)
        drain(a)

        others = backend.rooms.join_room(b.id, room_id)

        assert others == [a.id]
        assert backend.rooms.get(room_id).members == [a.id, b.id]
        assert b.role == Role.CALLEE
        peer_joined = {"type": "peer-joined", "roomId": room_id, "clientId": b.id, "totalClients": 2}
        assert drain(a) == [peer_joined]
        b_messages = drain(b)
        assert b_messages[0] == {"type": "room-joined", "roomId": room_id, "clientId": b.id, "otherClients": [a.id]}
        assert b_messages[1] == peer_joined
        assert_consistent(backend)

    @pytest.mark.parametrize("room_id", [None, ""])
    def test_room_id_required(self, backend, connect, room_id):
        with pytest.raises(RoomIdRequired):
            backend.rooms.join_room(connect().id, room_id)

    def test_unknown_room(self, backend, connect):
        with pytest.raises(RoomNotFound):
            backend.rooms.join_room(connect().id, "NOPE42")

    def test_full_room_is_unchanged(self, backend, connect):
        a, b, c = connect(), connect(), connect()
        room_id = backend.rooms.create_room(a.id)
        backend.rooms.join_room(b.id, room_id)

        with pytest.raises(RoomFull):
            backend.rooms.join_room(c.id, room_id)

        assert backend.rooms.get(room_id).members == [a.id, b.id]
        assert c.room_id is None
        assert_consistent(backend)

    def test_rejoining_own_room(self, backend, connect):
        a = connect()
        room_id = backend.rooms.create_room(a.id)
        with pytest.raises(AlreadyInRoom):
            backend.rooms.join_room(a.id, room_id)
        assert backend.rooms.get(room_id).members == [a.id]


class TestLeave:
    def test_peer_is_notified_and_room_survives(self, backend, connect):
        a, b = connect(), connect()
        room_id = backend.rooms.create_room(a.id)
        backend.rooms.join_room(b.id, room_id)
        drain(a)

        backend.registry.unregister(b.id)

        assert drain(a) == [{"type": "peer-disconnected", "clientId": b.id, "roomId": room_id}]
        assert backend.rooms.get(room_id).members == [a.id]
        assert_consistent(backend)

    def test_last_member_deletes_room(self, backend, connect):
        a, b = connect(), connect()
        room_id = backend.rooms.create_room(a.id)

        backend.registry.unregister(a.id)

        assert room_id not in backend.rooms
        with pytest.raises(RoomNotFound):
            backend.rooms.join_room(b.id, room_id)

    def test_leave_without_room_is_noop(self, backend, connect):
        a = connect()
        backend.rooms.leave(a.id)
        backend.rooms.leave("missing")
        assert len(backend.rooms) == 0
        assert drain(a) == []

    def test_leave_resets_role(self, backend, connect):
        a = connect()
        backend.rooms.create_room(a.id)
        backend.rooms.leave(a.id)
        assert a.role == Role.NONE
        assert a.room_id is None


def test_list_rooms_snapshot(backend, connect):
    a, b = connect(), connect()
    room_id = backend.rooms.create_room(a.id)
    backend.rooms.join_room(b.id, room_id)

    rooms = backend.rooms.list_rooms()

    assert len(rooms) == 1
    assert rooms[0]["id"] == room_id
    assert rooms[0]["clientCount"] == 2
    assert rooms[0]["createdBy"] == a.id
    assert rooms[0]["createdAt"]
