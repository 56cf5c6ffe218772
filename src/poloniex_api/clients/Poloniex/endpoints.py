"""Declarative command helpers.

Each helper on the client is an `Endpoint`: a command name plus an ordered
list of `Param` descriptors. Calling the helper binds the Python arguments
against a generated signature, turns them into the string mapping the
exchange expects and hands that to `client.call`.
"""

import inspect
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Tuple

from ...exceptions import ConfigurationError

REQUIRED = inspect.Parameter.empty


@dataclass(frozen=True)
class Param:
    """One argument of a command helper."""
    name: str  # Python argument name
    key: str = ""  # Parameter name on the wire
    default: Any = REQUIRED
    default_factory: Optional[Callable[[], Any]] = None  # Used when the value is None
    upper: bool = False
    choices: Optional[Tuple[Any, ...]] = None
    flag: bool = False  # Truthy -> "1", falsy -> omitted
    modifiers: Optional[Tuple[str, ...]] = None  # Value is the key, sent as "1"

    @property
    def signature_default(self) -> Any:
        if self.default is REQUIRED and self.default_factory is not None:
            return None
        return self.default

    def encode(self, value: Any) -> Dict[str, str]:
        """Turn a bound value into wire parameters."""
        if value is None and self.default_factory is not None:
            value = self.default_factory()

        if value is None:
            if self.default is REQUIRED or self.choices is not None:
                raise ConfigurationError(f"{self.key or self.name} is required")
            return {}

        if self.modifiers is not None:
            # False means no modifier, as does None
            if not value:
                return {}
            if value not in self.modifiers:
                raise ConfigurationError(f"Invalid order type: {value}")
            return {value: "1"}

        if self.flag:
            return {self.key: "1"} if value else {}

        if self.choices is not None and str(value) not in {str(c) for c in self.choices}:
            raise ConfigurationError(f"{value} invalid {self.key}")

        text = str(value)
        if self.upper:
            text = text.upper()
        return {self.key: text}


class Endpoint:
    """Client helper that sends one command.

    Used as a class attribute; attribute access on an instance returns a
    function with a real signature, so missing or unexpected arguments raise
    TypeError exactly like a hand-written method would.
    """

    def __init__(self, command: str, *params: Param, doc: Optional[str] = None):
        self.command = command
        self.params = params
        self.name = command
        self.__doc__ = doc
        self.signature = inspect.Signature([
            inspect.Parameter(
                param.name,
                inspect.Parameter.POSITIONAL_OR_KEYWORD,
                default=param.signature_default,
            )
            for param in params
        ])

    def __set_name__(self, owner, name):
        self.name = name

    def __get__(self, instance, owner=None):
        if instance is None:
            return self

        def method(*args, **kwargs):
            return instance.call(self.command, self.build(*args, **kwargs))

        method.__name__ = self.name
        method.__doc__ = self.__doc__
        method.__signature__ = self.signature  # type: ignore[attr-defined]
        return method

    def build(self, *args, **kwargs) -> Dict[str, str]:
        """Bind arguments and return the parameter mapping for `call`."""
        bound = self.signature.bind(*args, **kwargs)
        bound.apply_defaults()

        params: Dict[str, str] = {}
        for param in self.params:
            params.update(param.encode(bound.arguments[param.name]))
        return params

    def __repr__(self) -> str:
        return f"Endpoint({self.command!r}, {self.signature})"
