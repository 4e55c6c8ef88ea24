"""Tests for the built-in command handlers."""

import pytest

from chatline.commands import BUILTIN_COMMANDS, CommandEvent
from chatline.models import MessageType


# -------------------------------------------------------------------
# handled flag
# -------------------------------------------------------------------

_SAMPLE_PARAMS = {
    "lines": "/echo a | /echo b",
    "msg": "#chan hi",
    "action": "waves",
    "notice": "#chan heads up",
    "join": "#new",
    "part": "",
    "close": "#nope",
    "query": "bob",
    "nick": "newnick",
    "quote": "PING :x",
    "clear": "",
    "echo": "hello",
    "server": "irc.example.org +6697",
}


def test_every_builtin_has_sample_params():
    assert set(_SAMPLE_PARAMS) == BUILTIN_COMMANDS


@pytest.mark.parametrize("command", sorted(BUILTIN_COMMANDS))
def test_builtin_marks_event_handled(handler, channel, command):
    """A built-in that forgets handled=True would double-send its line."""
    event = CommandEvent(raw="/" + command, command=command, params=_SAMPLE_PARAMS[command])
    handler.registry.get(command)(event, command, event.params)
    assert event.handled is True


@pytest.mark.parametrize("command", sorted(BUILTIN_COMMANDS - {"quote"}))
def test_builtin_never_sends_its_line_raw(handler, channel, calls, command):
    handler.process_line(f"/{command} {_SAMPLE_PARAMS[command]}")
    assert not [c for c in calls if c[0] == "raw"]


# -------------------------------------------------------------------
# msg / action / notice
# -------------------------------------------------------------------

def test_msg_to_named_channel(state, handler, channel, network, calls):
    other = state.add_buffer(network.id, "#other")
    handler.process_line("/msg #other hello there")

    assert calls == [("say", "#other", "hello there")]
    assert other.messages[-1].message == "hello there"
    assert channel.messages == []


def test_msg_without_channel_goes_to_active_buffer(handler, channel, calls):
    handler.process_line("/msg hello there")
    assert calls == [("say", "#chan", "hello there")]
    assert channel.messages[-1].message == "hello there"


def test_msg_to_unknown_channel_still_sends(handler, channel, calls):
    handler.process_line("/msg #elsewhere hi")
    assert calls == [("say", "#elsewhere", "hi")]
    assert channel.messages == []


def test_msg_to_open_query_targets_the_nick(state, handler, channel, network, calls):
    state.add_buffer(network.id, "bob")
    handler.process_line("/msg bob hi")
    assert calls == [("say", "bob", "hi")]


def test_msg_to_nick_without_query_goes_to_active_buffer(handler, channel, calls):
    handler.process_line("/msg bob hi")
    assert calls == [("say", "#chan", "bob hi")]


def test_action_and_notice_use_their_primitives(handler, channel, calls):
    handler.process_line("/action waves")
    handler.process_line("/notice #chan heads up")

    assert calls == [
        ("action", "#chan", "waves"),
        ("notice", "#chan", "heads up"),
    ]
    assert [m.type for m in channel.messages] == [MessageType.ACTION, MessageType.NOTICE]
    assert all(m.nick == "me" for m in channel.messages)
    assert all(m.time > 0 for m in channel.messages)


def test_me_alias_sends_action(state, handler, channel, calls):
    from chatline.aliases import DEFAULT_ALIASES

    state.set_setting("aliases", DEFAULT_ALIASES)
    handler.process_line("/me waves")
    assert calls == [("action", "#chan", "waves")]


# -------------------------------------------------------------------
# join
# -------------------------------------------------------------------

def test_join_prefixes_and_focuses_first_new_channel(state, handler, network, calls):
    handler.process_line("/join chan1,chan2")

    assert network.buffer_by_name("#chan1") is not None
    assert network.buffer_by_name("#chan2") is not None
    assert state.get_active_buffer().name == "#chan1"
    assert calls == [("join", "#chan1", None), ("join", "#chan2", None)]


def test_join_pairs_keys_by_position(handler, network, calls):
    handler.process_line("/join #a,#b,#c k1,k2")
    assert calls == [("join", "#a", "k1"), ("join", "#b", "k2"), ("join", "#c", None)]


def test_join_existing_channel_does_not_steal_focus(state, handler, channel, calls):
    handler.process_line("/join #chan,#fresh")
    assert state.get_active_buffer().name == "#fresh"
    assert calls == [("join", "#chan", None), ("join", "#fresh", None)]


def test_join_keeps_other_channel_prefixes(handler, network, calls):
    handler.process_line("/join &local")
    assert calls == [("join", "&local", None)]


# -------------------------------------------------------------------
# part / close
# -------------------------------------------------------------------

def test_part_without_params_parts_active_buffer(state, handler, network, calls):
    state.add_buffer(network.id, "#foo")
    state.set_active_buffer(network.id, "#foo")

    handler.process_line("/part")

    assert calls == [("part", "#foo", "")]


def test_part_named_channels_with_message(handler, channel, calls):
    handler.process_line("/part #a,#b see you later")
    assert calls == [("part", "#a", "see you later"), ("part", "#b", "see you later")]


def test_part_with_only_a_message(handler, channel, calls):
    handler.process_line("/part off to bed")
    assert calls == [("part", "#chan", "off to bed")]


def test_part_keeps_local_buffer(handler, channel, network):
    handler.process_line("/part")
    assert network.buffer_by_name("#chan") is channel


def test_close_defaults_to_active_buffer(state, handler, channel, network, calls):
    handler.process_line("/close")

    assert calls == [("part", "#chan", None)]
    assert network.buffer_by_name("#chan") is None
    assert state.get_active_buffer().is_server()


def test_close_skips_unknown_names(state, handler, channel, network, calls):
    state.add_buffer(network.id, "#two")
    handler.process_line("/close #nope #chan,#two")

    assert calls == [("part", "#chan", None), ("part", "#two", None)]
    assert network.buffer_by_name("#two") is None


def test_close_server_buffer_is_refused(state, handler, network, calls):
    handler.process_line("/close")

    assert calls == []
    assert network.buffer_by_name("*") is not None
    assert "server buffer cannot be closed" in network.server_buffer.messages[-1].message


def test_close_list_with_server_buffer_closes_nothing(state, handler, channel, network, calls):
    handler.process_line("/close #chan *")

    assert calls == []
    assert network.buffer_by_name("#chan") is channel
    assert channel.messages[-1].nick == "*"


# -------------------------------------------------------------------
# query / nick / quote
# -------------------------------------------------------------------

def test_query_opens_buffers_and_focuses_first(state, handler, network, calls):
    handler.process_line("/query alice bob")

    assert network.buffer_by_name("alice").is_query()
    assert network.buffer_by_name("bob") is not None
    assert state.get_active_buffer().name == "alice"
    assert calls == []


def test_query_existing_buffer_keeps_focus(state, handler, channel, network):
    state.add_buffer(network.id, "alice")
    handler.process_line("/query alice")
    assert state.get_active_buffer().name == "#chan"


def test_nick_uses_first_word_only(handler, network, calls):
    handler.process_line("/nick newnick and more")
    assert calls == [("change_nick", "newnick")]


def test_quote_sends_verbatim(handler, channel, calls):
    handler.process_line("/quote MODE #chan +o  someone")
    assert calls == [("raw", "MODE #chan +o  someone")]


# -------------------------------------------------------------------
# clear / echo
# -------------------------------------------------------------------

def test_clear_empties_scrollback_in_place(state, handler, channel):
    handler.process_line("one")
    handler.process_line("two")
    messages = channel.get_messages()

    handler.process_line("/clear")

    assert channel.get_messages() is messages
    assert len(messages) == 1
    assert messages[0].nick == "*"
    assert messages[0].message == "Scrollback cleared"


def test_echo_is_local_only(handler, channel, calls):
    handler.process_line("/echo just for me")
    assert channel.messages[-1].message == "just for me"
    assert channel.messages[-1].type == MessageType.SYSTEM
    assert calls == []


# -------------------------------------------------------------------
# server
# -------------------------------------------------------------------

def test_server_with_tls_port_password_and_nick(state, handler):
    handler.process_line("/server irc.example.org +6697 secret nick1")

    network = state.get_active_network()
    assert network.name == "irc.example.org"
    assert network.nick == "nick1"
    assert network.connection.server == "irc.example.org"
    assert network.connection.port == 6697
    assert network.connection.tls is True
    assert network.connection.password == "secret"


def test_server_defaults(state, handler):
    handler.process_line("/server irc.example.org")

    network = state.get_active_network()
    assert network.connection.port == 6667
    assert network.connection.tls is False
    assert network.connection.password is None
    assert network.nick == "ircuser"


def test_server_switches_to_new_network(state, handler, channel, network):
    handler.process_line("/server other.example.org 6667")
    assert state.get_active_network().name == "other.example.org"
    assert state.get_active_buffer().is_server()
    assert len(state.networks) == 2


def test_server_with_bad_port_adds_nothing(state, handler, channel, calls):
    handler.process_line("/server irc.example.org sixsixsixseven")

    assert len(state.networks) == 1
    notice = channel.messages[-1]
    assert "Invalid port" in notice.message
    assert "Usage: /server" in notice.message
    assert calls == []


def test_server_uses_configured_defaults(state):
    from chatline.input_handler import InputHandler

    handler = InputHandler(state, default_nick="guest", default_port=7000)
    handler.process_line("/server irc.example.org")

    network = state.get_active_network()
    assert network.nick == "guest"
    assert network.connection.port == 7000


# -------------------------------------------------------------------
# default aliases
# -------------------------------------------------------------------

_DEFAULT_ALIAS_CALLS = {
    "/p": ("/p off to bed", [("part", "#chan", "off to bed")]),
    "/me": ("/me waves", [("action", "#chan", "waves")]),
    "/j": ("/j #a,#b key", [("join", "#a", "key"), ("join", "#b", None)]),
    "/q": ("/q alice", []),
    "/m": ("/m alice hi there", [("raw", "PRIVMSG alice :hi there")]),
    "/n": ("/n newnick", [("change_nick", "newnick")]),
    "/w": ("/w alice", [("raw", "whois alice")]),
    "/raw": ("/raw PING :x", [("raw", "PING :x")]),
    "/cycle": ("/cycle", [("part", "#chan", ""), ("join", "#chan", None)]),
    "/k": ("/k alice go away", [("raw", "kick #chan alice go away")]),
    "/op": ("/op alice", [("raw", "mode #chan +o alice")]),
    "/deop": ("/deop alice", [("raw", "mode #chan -o alice")]),
    "/voice": ("/voice alice", [("raw", "mode #chan +v alice")]),
    "/devoice": ("/devoice alice", [("raw", "mode #chan -v alice")]),
    "/topic": ("/topic new topic", [("raw", "topic #chan :new topic")]),
    "/ns": ("/ns identify hunter2", [("raw", "PRIVMSG nickserv :identify hunter2")]),
    "/cs": ("/cs op #chan", [("raw", "PRIVMSG chanserv :op #chan")]),
}


@pytest.fixture
def default_aliases(state):
    from chatline.aliases import DEFAULT_ALIASES

    state.set_setting("aliases", DEFAULT_ALIASES)


def test_every_default_alias_has_an_expected_call(handler):
    from chatline.aliases import DEFAULT_ALIASES, AliasRewriter

    rewriter = AliasRewriter()
    rewriter.import_from_string(DEFAULT_ALIASES)
    assert set(rewriter.aliases) == set(_DEFAULT_ALIAS_CALLS)


@pytest.mark.parametrize("alias", sorted(_DEFAULT_ALIAS_CALLS))
def test_default_alias_transport_calls(handler, channel, calls, default_aliases, alias):
    line, expected = _DEFAULT_ALIAS_CALLS[alias]
    handler.process_line(line)
    assert calls == expected


def test_services_aliases_never_talk_in_the_channel(handler, channel, calls, default_aliases):
    handler.process_line("/ns identify hunter2")
    handler.process_line("/cs identify #chan hunter2")

    assert not [c for c in calls if c[0] == "say"]
    assert channel.messages == []
