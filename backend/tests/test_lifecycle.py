"""
Tests for admission, presence announcements and departure.
"""

import asyncio

import pytest

from signaling_gateway.components.core.constants import ConnectionState, WSCloseCode
from signaling_gateway.components.core.exceptions import AdmissionError
from signaling_gateway.components.events.router import RouteOutcome
from signaling_gateway.core.connection.lifecycle import parse_channel
from tests.conftest import FakeChannel, presence


class GatedChannel(FakeChannel):
    """Channel whose `hold_at`-th send waits until `release` is set."""

    def __init__(self, hold_at: int):
        super().__init__()
        self.hold_at = hold_at
        self.calls = 0
        self.held = asyncio.Event()
        self.release = asyncio.Event()

    async def send_text(self, data: str) -> None:
        self.calls += 1
        if self.calls == self.hold_at:
            self.held.set()
            await self.release.wait()
        await super().send_text(data)


class BrokenCloseChannel(FakeChannel):
    """Channel whose close always fails."""

    async def close(self, code: int = 1000, reason: str | None = None) -> None:
        raise ConnectionError("socket is gone")


class TestParseChannel:
    """Tests for channel validation."""

    @pytest.mark.parametrize("path, channel", [("/42", "42"), ("/0", "0"), ("/007", "007"), ("42", "42")])
    def test_valid_channels(self, path, channel):
        assert parse_channel(path) == channel

    @pytest.mark.parametrize(
        "path",
        ["/abc", "/", "", "/4a", "/42/", "/-1", "/4 2", "/42\n", "/\u0664\u0662", "//42", "/4.2"],
    )
    def test_invalid_channels(self, path):
        with pytest.raises(AdmissionError):
            parse_channel(path)


class TestAdmissionError:
    """Tests for the close reason sent on rejection."""

    def test_reason_names_path(self):
        assert str(AdmissionError("abc")) == "invalid path `abc`"
        assert AdmissionError("abc").close_reason == "invalid path `abc`"

    def test_long_reason_fits_close_frame(self):
        reason = AdmissionError("x" * 500).close_reason
        assert len(reason.encode("utf-8")) <= 123
        assert reason.startswith("invalid path `xxx")
        assert reason.endswith("...`")

    def test_multibyte_reason_fits_close_frame(self):
        reason = AdmissionError("é" * 100).close_reason
        assert len(reason.encode("utf-8")) <= 123


class TestAdmit:
    """Tests for joining a channel."""

    @pytest.mark.asyncio
    async def test_first_peer(self, relay, make_channel):
        channel = make_channel()

        connection = await relay.on_connect("/42", channel)

        assert connection.id == "aa"
        assert connection.channel == "42"
        assert channel.messages() == [presence("you", "aa"), presence("peer-connected", "aa")]
        assert channel.closed is None

    @pytest.mark.asyncio
    async def test_join_sequence(self, relay, make_channel):
        x, y, c = make_channel(), make_channel(), make_channel()
        await relay.on_connect("/42", x)
        await relay.on_connect("/42", y)
        x.sent.clear()
        y.sent.clear()

        await relay.on_connect("/42", c)

        assert c.messages() == [
            presence("you", "cc"),
            presence("peer-connected", "aa"),
            presence("peer-connected", "bb"),
            presence("peer-connected", "cc"),
        ]
        assert x.messages() == [presence("peer-connected", "cc")]
        assert y.messages() == [presence("peer-connected", "cc")]

    @pytest.mark.asyncio
    async def test_presence_crosses_channels(self, relay, make_channel):
        first, second = make_channel(), make_channel()
        await relay.on_connect("/1", first)
        first.sent.clear()

        await relay.on_connect("/2", second)

        assert first.messages() == [presence("peer-connected", "bb")]
        assert presence("peer-connected", "aa") in second.messages()

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "path, reason",
        [
            ("/abc", "invalid path `abc`"),
            ("/", "invalid path ``"),
            ("/4a", "invalid path `4a`"),
            ("/42/", "invalid path `42/`"),
            ("/-1", "invalid path `-1`"),
        ],
    )
    async def test_invalid_path_rejected(self, relay, make_channel, path, reason):
        peer = make_channel()
        await relay.on_connect("/1", peer)
        peer.sent.clear()
        rejected = make_channel()

        assert await relay.on_connect(path, rejected) is None

        assert rejected.closed == (WSCloseCode.NORMAL, reason)
        assert rejected.sent == []
        assert peer.sent == []
        assert relay.total_connections == 1

    @pytest.mark.asyncio
    async def test_failing_newcomer_still_admitted(self, relay, make_channel):
        peer = make_channel()
        await relay.on_connect("/1", peer)
        peer.sent.clear()

        connection = await relay.on_connect("/1", make_channel(fail=True))

        assert connection is not None
        assert relay.registry.lookup(connection.id) is connection
        assert peer.messages() == [presence("peer-connected", connection.id)]

    @pytest.mark.asyncio
    async def test_peer_leaving_during_join_is_not_announced(self, relay, make_channel):
        a, b = make_channel(), make_channel()
        await relay.on_connect("/1", a)
        conn_b = await relay.on_connect("/1", b)
        # Second send is the peer-connected for aa
        newcomer = GatedChannel(hold_at=2)

        join = asyncio.create_task(relay.on_connect("/1", newcomer))
        await newcomer.held.wait()
        await relay.on_close(conn_b)
        newcomer.release.set()
        connection = await join

        messages = newcomer.messages()
        assert connection.id == "cc"
        assert presence("peer-connected", "bb") not in messages
        assert presence("peer-disconnected", "bb") in messages
        assert presence("peer-connected", "aa") in messages
        assert messages[0] == presence("you", "cc")
        assert messages[-1] == presence("peer-connected", "cc")


class TestClose:
    """Tests for leaving a channel."""

    @pytest.mark.asyncio
    async def test_departure_announced_once_to_each_remaining(self, relay, make_channel):
        a, b, c = make_channel(), make_channel(), make_channel()
        conn_a = await relay.on_connect("/5", a)
        await relay.on_connect("/5", b)
        await relay.on_connect("/6", c)
        for channel in (a, b, c):
            channel.sent.clear()

        await relay.on_close(conn_a)

        assert a.sent == []
        assert b.messages() == [presence("peer-disconnected", "aa")]
        assert c.messages() == [presence("peer-disconnected", "aa")]
        assert relay.registry.lookup("aa") is None
        assert conn_a.state is ConnectionState.CLOSED

    @pytest.mark.asyncio
    async def test_close_is_idempotent(self, relay, make_channel):
        a, b = make_channel(), make_channel()
        conn_a = await relay.on_connect("/5", a)
        await relay.on_connect("/5", b)
        b.sent.clear()

        await relay.on_close(conn_a)
        await relay.on_close(conn_a)

        assert b.messages() == [presence("peer-disconnected", "aa")]

    @pytest.mark.asyncio
    async def test_frames_after_close_ignored(self, relay, make_channel):
        a, b = make_channel(), make_channel()
        conn_a = await relay.on_connect("/5", a)
        await relay.on_connect("/5", b)
        await relay.on_close(conn_a)
        b.sent.clear()

        result = await relay.on_message(conn_a, '{"type":"data-offer","target":"bb"}')

        assert result.outcome is RouteOutcome.IGNORED
        assert b.sent == []

    @pytest.mark.asyncio
    async def test_last_peer_leaving(self, relay, make_channel):
        a = make_channel()
        conn_a = await relay.on_connect("/5", a)
        a.sent.clear()

        await relay.on_close(conn_a)

        assert a.sent == []
        assert relay.total_connections == 0


class TestSignalingExchange:
    """End to end exchange between two peers on the relay."""

    @pytest.mark.asyncio
    async def test_offer_answer_and_candidates(self, relay, make_channel):
        a, b = make_channel(), make_channel()
        conn_a = await relay.on_connect("/42", a)
        conn_b = await relay.on_connect("/42", b)
        a.sent.clear()
        b.sent.clear()

        offer = '{"type":"data-offer","target":"bb","offer":{"sdp":"v=0"}}'
        answer = '{"type":"data-answer","target":"aa","answer":{"sdp":"v=0"}}'
        candidate = '{"type":"new-ice-candidate","target":"bb","candidate":"c1"}'

        await relay.on_message(conn_a, offer)
        await relay.on_message(conn_b, answer)
        await relay.on_message(conn_a, candidate)

        assert b.sent == [offer, candidate]
        assert a.sent == [answer]


class TestShutdown:
    """Tests for graceful shutdown."""

    @pytest.mark.asyncio
    async def test_shutdown_closes_everyone(self, relay, make_channel):
        a, b = make_channel(), make_channel(fail=True)
        await relay.on_connect("/1", a)
        await relay.on_connect("/2", b)

        closed = await relay.shutdown()

        assert closed == 2
        assert a.closed == (WSCloseCode.GOING_AWAY, "Server shutdown")
        assert b.closed == (WSCloseCode.GOING_AWAY, "Server shutdown")

    @pytest.mark.asyncio
    async def test_no_admission_after_shutdown(self, relay, make_channel):
        await relay.shutdown()
        late = make_channel()

        assert await relay.on_connect("/1", late) is None
        assert late.closed == (WSCloseCode.GOING_AWAY, "Server shutdown")
        assert relay.is_shutting_down
        assert relay.total_connections == 0

    @pytest.mark.asyncio
    async def test_failed_close_after_shutdown_is_contained(self, relay):
        await relay.shutdown()

        assert await relay.on_connect("/1", BrokenCloseChannel()) is None
        assert relay.total_connections == 0
