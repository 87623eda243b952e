"""
Command model for the mpv JSON IPC protocol.

Commands are a tagged union: a CommandKind plus an argument tuple checked
against that kind's signature. Unknown kinds and mistyped arguments are
rejected here, before anything reaches the wire.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Union

from ..utils.errors import InvalidCommandError


Number = (int, float)
Scalar = (str, int, float, bool)
JSONValue = (str, int, float, bool, list, dict)


class CommandKind(str, Enum):
    """Supported IPC commands."""
    # Properties
    GET_PROPERTY = "get_property"
    GET_PROPERTY_STRING = "get_property_string"
    SET_PROPERTY = "set_property"
    SET_PROPERTY_STRING = "set_property_string"
    OBSERVE_PROPERTY = "observe_property"
    OBSERVE_PROPERTY_STRING = "observe_property_string"
    UNOBSERVE_PROPERTY = "unobserve_property"
    SET = "set"
    ADD = "add"
    MULTIPLY = "multiply"
    CYCLE = "cycle"
    CYCLE_VALUES = "cycle-values"

    # Playback
    LOADFILE = "loadfile"
    LOADLIST = "loadlist"
    STOP = "stop"
    QUIT = "quit"
    SEEK = "seek"
    FRAME_STEP = "frame-step"
    FRAME_BACK_STEP = "frame-back-step"

    # Playlist
    PLAYLIST_NEXT = "playlist-next"
    PLAYLIST_PREV = "playlist-prev"
    PLAYLIST_CLEAR = "playlist-clear"
    PLAYLIST_REMOVE = "playlist-remove"
    PLAYLIST_MOVE = "playlist-move"
    PLAYLIST_SHUFFLE = "playlist-shuffle"

    # Tracks
    SUB_ADD = "sub-add"
    SUB_REMOVE = "sub-remove"
    AUDIO_ADD = "audio-add"
    AUDIO_REMOVE = "audio-remove"

    # Scripting and input
    SCRIPT_MESSAGE = "script-message"
    SCRIPT_MESSAGE_TO = "script-message-to"
    SCRIPT_BINDING = "script-binding"
    KEYPRESS = "keypress"

    # OSD and screenshots
    SHOW_TEXT = "show-text"
    SCREENSHOT = "screenshot"
    SCREENSHOT_TO_FILE = "screenshot-to-file"

    # Client and introspection
    CLIENT_NAME = "client_name"
    GET_TIME_US = "get_time_us"
    GET_VERSION = "get_version"
    REQUEST_LOG_MESSAGES = "request_log_messages"
    ENABLE_EVENT = "enable_event"
    DISABLE_EVENT = "disable_event"


@dataclass(frozen=True)
class ArgSpec:
    """One positional argument of a command signature."""
    name: str
    types: Tuple[type, ...]
    required: bool = True


@dataclass(frozen=True)
class Signature:
    """Positional arguments plus an optional variadic tail."""
    args: Tuple[ArgSpec, ...] = ()
    variadic: Optional[ArgSpec] = None
    min_variadic: int = 0


def _arg(name: str, types: Union[type, Tuple[type, ...]], required: bool = True) -> ArgSpec:
    if not isinstance(types, tuple):
        types = (types,)
    return ArgSpec(name, types, required)


def _opt(name: str, types: Union[type, Tuple[type, ...]]) -> ArgSpec:
    return _arg(name, types, required=False)


_PROPERTY = _arg("name", str)

SIGNATURES: Dict[CommandKind, Signature] = {
    CommandKind.GET_PROPERTY: Signature((_PROPERTY,)),
    CommandKind.GET_PROPERTY_STRING: Signature((_PROPERTY,)),
    CommandKind.SET_PROPERTY: Signature((_PROPERTY, _arg("value", JSONValue))),
    CommandKind.SET_PROPERTY_STRING: Signature((_PROPERTY, _arg("value", str))),
    CommandKind.OBSERVE_PROPERTY: Signature((_arg("id", int), _PROPERTY)),
    CommandKind.OBSERVE_PROPERTY_STRING: Signature((_arg("id", int), _PROPERTY)),
    CommandKind.UNOBSERVE_PROPERTY: Signature((_arg("id", int),)),
    CommandKind.SET: Signature((_PROPERTY, _arg("value", Scalar))),
    CommandKind.ADD: Signature((_PROPERTY, _opt("value", Number))),
    CommandKind.MULTIPLY: Signature((_PROPERTY, _arg("factor", Number))),
    CommandKind.CYCLE: Signature((_PROPERTY, _opt("direction", str))),
    CommandKind.CYCLE_VALUES: Signature(variadic=_arg("value", Scalar), min_variadic=2),

    CommandKind.LOADFILE: Signature((
        _arg("url", str), _opt("flags", str), _opt("index", int), _opt("options", (str, dict)),
    )),
    CommandKind.LOADLIST: Signature((_arg("url", str), _opt("flags", str))),
    CommandKind.STOP: Signature((_opt("flags", str),)),
    CommandKind.QUIT: Signature((_opt("code", int),)),
    CommandKind.SEEK: Signature((_arg("target", Number), _opt("flags", str))),
    CommandKind.FRAME_STEP: Signature(),
    CommandKind.FRAME_BACK_STEP: Signature(),

    CommandKind.PLAYLIST_NEXT: Signature((_opt("flags", str),)),
    CommandKind.PLAYLIST_PREV: Signature((_opt("flags", str),)),
    CommandKind.PLAYLIST_CLEAR: Signature(),
    CommandKind.PLAYLIST_REMOVE: Signature((_arg("index", (int, str)),)),
    CommandKind.PLAYLIST_MOVE: Signature((_arg("index1", int), _arg("index2", int))),
    CommandKind.PLAYLIST_SHUFFLE: Signature(),

    CommandKind.SUB_ADD: Signature((
        _arg("url", str), _opt("flags", str), _opt("title", str), _opt("lang", str),
    )),
    CommandKind.SUB_REMOVE: Signature((_opt("id", int),)),
    CommandKind.AUDIO_ADD: Signature((
        _arg("url", str), _opt("flags", str), _opt("title", str), _opt("lang", str),
    )),
    CommandKind.AUDIO_REMOVE: Signature((_opt("id", int),)),

    CommandKind.SCRIPT_MESSAGE: Signature(variadic=_arg("arg", Scalar), min_variadic=1),
    CommandKind.SCRIPT_MESSAGE_TO: Signature(
        (_arg("target", str),), variadic=_arg("arg", Scalar), min_variadic=1,
    ),
    CommandKind.SCRIPT_BINDING: Signature((_arg("name", str), _opt("arg", Scalar))),
    CommandKind.KEYPRESS: Signature((_arg("key", str),)),

    CommandKind.SHOW_TEXT: Signature((
        _arg("text", str), _opt("duration", int), _opt("level", int),
    )),
    CommandKind.SCREENSHOT: Signature((_opt("flags", str),)),
    CommandKind.SCREENSHOT_TO_FILE: Signature((_arg("filename", str), _opt("flags", str))),

    CommandKind.CLIENT_NAME: Signature(),
    CommandKind.GET_TIME_US: Signature(),
    CommandKind.GET_VERSION: Signature(),
    CommandKind.REQUEST_LOG_MESSAGES: Signature((_arg("level", str),)),
    CommandKind.ENABLE_EVENT: Signature((_arg("name", str),)),
    CommandKind.DISABLE_EVENT: Signature((_arg("name", str),)),
}


def _type_ok(value: Any, types: Tuple[type, ...]) -> bool:
    # bool is an int subclass; only accept it where bool is listed explicitly
    if isinstance(value, bool) and bool not in types:
        return False
    return isinstance(value, types)


@dataclass(frozen=True)
class Command:
    """A validated IPC command."""
    kind: CommandKind
    args: Tuple[Any, ...] = ()

    @classmethod
    def build(cls, name: Union[str, CommandKind], *args: Any) -> "Command":
        """
        Validate name and arguments against the signature table.

        Trailing optional arguments may be omitted or passed as None; None
        values are dropped from the wire form.

        Raises:
            InvalidCommandError: unknown command or mismatched arguments
        """
        try:
            kind = CommandKind(name)
        except ValueError:
            raise InvalidCommandError(f"Unknown command: {name!r}") from None

        signature = SIGNATURES[kind]
        fixed = signature.args
        positional = args[:len(fixed)]
        rest = args[len(fixed):]

        for spec, value in zip(fixed, positional):
            if value is None:
                if spec.required:
                    raise InvalidCommandError(f"{kind.value}: missing required argument '{spec.name}'")
                continue
            if not _type_ok(value, spec.types):
                expected = "/".join(t.__name__ for t in spec.types)
                raise InvalidCommandError(
                    f"{kind.value}: argument '{spec.name}' must be {expected}, got {type(value).__name__}"
                )

        missing = [spec.name for spec in fixed[len(positional):] if spec.required]
        if missing:
            raise InvalidCommandError(f"{kind.value}: missing required argument '{missing[0]}'")

        if rest and signature.variadic is None:
            raise InvalidCommandError(
                f"{kind.value}: takes at most {len(fixed)} arguments, got {len(args)}"
            )

        if signature.variadic is not None:
            present = [value for value in rest if value is not None]
            if len(present) < signature.min_variadic:
                raise InvalidCommandError(
                    f"{kind.value}: needs at least {signature.min_variadic} '{signature.variadic.name}' arguments"
                )
            for value in present:
                if not _type_ok(value, signature.variadic.types):
                    raise InvalidCommandError(
                        f"{kind.value}: argument '{signature.variadic.name}' has unsupported type {type(value).__name__}"
                    )

        return cls(kind, tuple(args))

    @property
    def name(self) -> str:
        return self.kind.value

    def to_wire(self) -> List[Any]:
        """Command name followed by its arguments with None entries removed."""
        return [self.kind.value] + [arg for arg in self.args if arg is not None]

    def __str__(self) -> str:
        return " ".join(str(part) for part in self.to_wire())


__all__ = [
    'CommandKind',
    'ArgSpec',
    'Signature',
    'SIGNATURES',
    'Command',
]
