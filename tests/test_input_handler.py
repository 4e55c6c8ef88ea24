"""Tests for the input handler coordinator and the command registry."""

from unittest.mock import MagicMock

import pytest

from chatline.commands import BUILTIN_COMMANDS, BaseCommandHandler, HandlerRegistry
from chatline.exceptions import RegistryFrozenError
from chatline.input_handler import RAW_INPUT_EVENT, InputHandler


# -------------------------------------------------------------------
# Coordinator
# -------------------------------------------------------------------

def test_subscribes_to_raw_input_once(state, handler):
    assert state.events.listener_count(RAW_INPUT_EVENT) == 1


def test_raw_input_lines_processed_in_order(state, handler, channel):
    state.emit(RAW_INPUT_EVENT, "/echo one\n/echo two\r\n/echo three")
    assert [m.message for m in channel.messages] == ["one", "two", "three"]


def test_aliases_primed_from_setting(state):
    state.settings["aliases"] = "/hi /echo hello"
    handler = InputHandler(state)
    assert handler.alias_rewriter.aliases == {"/hi": "/echo hello"}


def test_aliases_default_when_setting_missing():
    from chatline.state import ChatState

    handler = InputHandler(ChatState())
    assert "/j" in handler.alias_rewriter.aliases


def test_alias_setting_change_reprimes(state, handler, channel):
    handler.process_line("/hi")
    state.set_setting("aliases", "/hi /echo hello")
    handler.process_line("/hi")

    assert channel.messages[-1].message == "hello"
    assert network_raw(state) == ["hi"]


def network_raw(state):
    return [c[1] for c in state.get_active_network().transport.calls if c[0] == "raw"]


def test_registry_has_all_builtins_and_is_frozen(handler):
    assert BUILTIN_COMMANDS <= handler.registry.command_names
    assert handler.registry.frozen


def test_extra_handler_group_is_registered(state, channel):
    class WaveHandler(BaseCommandHandler):
        def get_commands(self):
            return {"wave": self.handle_wave}

        def handle_wave(self, event, command, params):
            event.handled = True
            self.ctx.process_line(f"/action waves at {params}")

    handler = InputHandler(state, extra_handlers=[WaveHandler])
    handler.process_line("/wave bob")

    assert state.get_active_network().transport.calls == [("action", "#chan", "waves at bob")]


def test_extra_command_overrides_builtin(state, channel):
    replacement = MagicMock()
    handler = InputHandler(state, extra_commands={"ECHO": replacement})

    handler.process_line("/echo hi")

    replacement.assert_called_once()
    event, command, params = replacement.call_args.args
    assert (command, params) == ("echo", "hi")
    assert channel.messages == []


def test_from_config_uses_config_defaults(state):
    state.settings.pop("aliases")
    config = MagicMock()
    config.aliases = "/x /echo from config"
    config.default_nick = "cfgnick"
    config.default_port = 7001
    config.max_line_depth = 4

    handler = InputHandler.from_config(state, config)

    assert handler.alias_rewriter.aliases == {"/x": "/echo from config"}
    assert handler.context.default_nick == "cfgnick"
    assert handler.context.default_port == 7001
    assert handler.processor.max_depth == 4


def test_from_config_keeps_existing_alias_setting(state):
    config = MagicMock()
    config.aliases = "/x /echo from config"
    config.default_nick = "n"
    config.default_port = 6667
    config.max_line_depth = 16

    handler = InputHandler.from_config(state, config)
    assert handler.alias_rewriter.aliases == {}


# -------------------------------------------------------------------
# HandlerRegistry
# -------------------------------------------------------------------

def test_registry_lowercases_and_last_wins():
    registry = HandlerRegistry()
    first, second = MagicMock(), MagicMock()
    registry.register_external({"Foo": first})
    registry.register_external({"foo": second})

    assert registry.get("foo") is second
    assert registry.get("Foo") is None
    assert len(registry) == 1


def test_registry_freeze_returns_read_only_view():
    registry = HandlerRegistry()
    registry.register_external({"a": MagicMock()})
    table = registry.freeze()

    assert "a" in table
    with pytest.raises(TypeError):
        table["b"] = MagicMock()


def test_registry_rejects_registration_after_freeze():
    registry = HandlerRegistry()
    registry.freeze()
    with pytest.raises(RegistryFrozenError):
        registry.register_external({"late": MagicMock()})


def test_context_process_line_requires_processor():
    from chatline.commands import CommandContext

    ctx = CommandContext(state=MagicMock())
    with pytest.raises(RuntimeError, match="not started"):
        ctx.process_line("/echo hi")


def test_core_table_is_keyed_by_command_kind():
    from chatline.commands import CommandContext, CommandKind, CoreCommandHandler

    table = CoreCommandHandler(CommandContext(state=MagicMock())).get_commands()

    assert all(isinstance(key, CommandKind) for key in table)
    assert set(table) == set(CommandKind) - {CommandKind.UNKNOWN}
    assert {key.value for key in table} == BUILTIN_COMMANDS


def test_builtin_kinds_dispatch_to_registered_handlers(state, channel):
    replacement = MagicMock()
    handler = InputHandler(state, extra_commands={"join": replacement})

    handler.process_line("/join #x")

    replacement.assert_called_once()
    assert replacement.call_args.args[1:] == ("join", "#x")
