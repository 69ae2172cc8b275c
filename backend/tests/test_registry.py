"""
Tests for connection ids and the connection registry.
"""

import re
import uuid

import pytest

from signaling_gateway.components.connection.identifiers import IdentifierGenerator
from signaling_gateway.components.connection.registry import ConnectionRegistry
from signaling_gateway.components.core.constants import ConnectionState
from signaling_gateway.components.core.exceptions import RelayError
from tests.conftest import FakeChannel, ScriptedGenerator


HEX_ID = re.compile(r"^[0-9a-f]+$")


class TestIdentifierGenerator:
    """Tests for short id generation."""

    def test_default_length_is_two_hex_digits(self):
        generator = IdentifierGenerator()
        for _ in range(50):
            value = generator.next()
            assert len(value) == 2
            assert HEX_ID.match(value)

    def test_explicit_length(self):
        generator = IdentifierGenerator(length=2)
        assert len(generator.next(5)) == 5
        assert len(generator.next()) == 2

    def test_id_is_uuid_prefix(self):
        fixed = uuid.UUID("0123456789abcdef0123456789abcdef")
        generator = IdentifierGenerator(length=4, uuid_factory=lambda: fixed)
        assert generator.next() == "0123"

    @pytest.mark.parametrize("length", [0, 33, -1])
    def test_rejects_length_out_of_range(self, length):
        with pytest.raises(ValueError):
            IdentifierGenerator(length=length)


class TestRegister:
    """Tests for admitting connections into the registry."""

    def test_register_assigns_id_and_channel(self):
        registry = ConnectionRegistry(generator=ScriptedGenerator(["a3"]))
        channel = FakeChannel()

        connection = registry.register("42", channel)

        assert connection.id == "a3"
        assert connection.channel == "42"
        assert connection.outbound is channel
        assert connection.state is ConnectionState.ADMITTED
        assert registry.lookup("a3") is connection
        assert len(registry) == 1

    def test_collision_draws_again(self):
        registry = ConnectionRegistry(generator=ScriptedGenerator(["aa", "aa", "bb"]))

        first = registry.register("1", FakeChannel())
        second = registry.register("1", FakeChannel())

        assert first.id == "aa"
        assert second.id == "bb"
        assert registry.ids() == ["aa", "bb"]

    def test_repeated_collisions_widen_ids(self):
        fixed = uuid.UUID("abcdef00000000000000000000000000")
        generator = IdentifierGenerator(length=2, uuid_factory=lambda: fixed)
        registry = ConnectionRegistry(generator=generator, attempts_per_length=3)

        ids = [registry.register("1", FakeChannel()).id for _ in range(3)]

        assert ids == ["ab", "abc", "abcd"]

    def test_exhausted_id_space_raises(self):
        fixed = uuid.UUID("abcdef00000000000000000000000000")
        generator = IdentifierGenerator(length=32, uuid_factory=lambda: fixed)
        registry = ConnectionRegistry(generator=generator, attempts_per_length=2)
        registry.register("1", FakeChannel())

        with pytest.raises(RelayError):
            registry.register("1", FakeChannel())
        assert len(registry) == 1

    def test_many_registrations_have_unique_ids(self):
        registry = ConnectionRegistry(generator=IdentifierGenerator(length=2))

        connections = [registry.register("7", FakeChannel()) for _ in range(300)]

        ids = [c.id for c in connections]
        assert len(set(ids)) == 300
        assert len(registry) == 300
        # 256 two-digit ids cannot hold 300 peers
        assert any(len(i) > 2 for i in ids)


class TestRemoveAndLookup:
    """Tests for removal and lookup."""

    def test_remove_returns_connection(self):
        registry = ConnectionRegistry(generator=ScriptedGenerator(["aa"]))
        connection = registry.register("1", FakeChannel())

        assert registry.remove("aa") is connection
        assert registry.lookup("aa") is None
        assert "aa" not in registry

    def test_remove_is_idempotent(self):
        registry = ConnectionRegistry(generator=ScriptedGenerator(["aa"]))
        registry.register("1", FakeChannel())

        registry.remove("aa")
        assert registry.remove("aa") is None
        assert registry.remove("zz") is None
        assert len(registry) == 0

    @pytest.mark.parametrize("bad_id", [None, 42, ["aa"], {"id": "aa"}, 4.2])
    def test_lookup_non_string_returns_none(self, bad_id):
        registry = ConnectionRegistry(generator=ScriptedGenerator(["aa", "42"]))
        registry.register("1", FakeChannel())
        registry.register("1", FakeChannel())

        assert registry.lookup(bad_id) is None
        assert bad_id not in registry

    def test_lookup_is_exact(self):
        registry = ConnectionRegistry(generator=ScriptedGenerator(["ab"]))
        registry.register("1", FakeChannel())

        assert registry.lookup("AB") is None
        assert registry.lookup("ab ") is None
        assert registry.lookup("a") is None


class TestQueries:
    """Tests for enumeration and statistics."""

    def test_enumerate_is_snapshot(self):
        registry = ConnectionRegistry(generator=ScriptedGenerator(["aa", "bb", "cc"]))
        registry.register("1", FakeChannel())
        registry.register("1", FakeChannel())

        snapshot = registry.enumerate()
        registry.register("2", FakeChannel())
        registry.remove("aa")

        assert [c.id for c in snapshot] == ["aa", "bb"]
        assert registry.ids() == ["bb", "cc"]

    def test_describe(self):
        registry = ConnectionRegistry(generator=ScriptedGenerator(["a3", "0f"]))
        assert registry.describe() == ""

        registry.register("1", FakeChannel())
        registry.register("1", FakeChannel())

        assert registry.describe() == "#a3, #0f"

    def test_stats_count_channels(self):
        registry = ConnectionRegistry(generator=ScriptedGenerator(["aa", "bb", "cc"]))
        registry.register("1", FakeChannel())
        registry.register("2", FakeChannel())
        registry.register("1", FakeChannel())

        assert registry.get_stats() == {
            "total_connections": 3,
            "channels": {"1": 2, "2": 1},
        }
