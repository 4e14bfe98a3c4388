"""Exceptions raised at the boundaries of the universe core.

The reducer and generator never raise for semantically invalid input; these
cover malformed data arriving from outside (files, wire messages, names).
"""


class OrreryError(Exception):
    """Base class for every error this package raises."""


class SnapshotFormatError(OrreryError):
    """A snapshot dictionary is missing keys or has values of the wrong shape."""


class CommandFormatError(OrreryError):
    """A wire command cannot be turned into a Command value."""


class UnknownPresetError(OrreryError, KeyError):
    """No preset is registered under the requested name."""

    def __init__(self, kind: str, name: str, known: list[str]) -> None:
        self.kind = kind
        self.name = name
        self.known = known
        super().__init__(f"Unknown {kind} preset {name!r}; expected one of {', '.join(known)}")

    def __str__(self) -> str:
        return self.args[0]
