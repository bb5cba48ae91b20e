"""Exceptions raised while reading Beat Saber maps and replays.

Every error the library raises on its own derives from ``SaberkitError``.
Errors coming from the filesystem, zip archives or HTTP are propagated
unchanged, except for a missing named resource which is reported as
``MissingResourceError`` (also a ``FileNotFoundError``).
"""


class SaberkitError(Exception):
    """Base class for saberkit errors."""


class UnsupportedVersionError(SaberkitError):
    """A beatmap declares a schema version no adapter understands."""

    def __init__(self, version: str = "unknown"):
        self.version = version
        super().__init__(f"unsupported version: {version}")


class StructuralError(SaberkitError):
    """A required field is missing or has the wrong shape."""

    def __init__(self, field: str, message: str = "invalid value"):
        self.field = field
        self.message = message
        super().__init__(f"{field}: {message}")


class DirectionDecodeError(SaberkitError):
    """A cut direction is outside both the nominal and the extended range."""

    def __init__(self, value: int):
        self.value = value
        super().__init__(f"cannot decode cut direction {value}")


class TempoMapError(SaberkitError):
    """Tempo-change events cannot form a beat-ordered timeline."""


class BadDifficultyError(SaberkitError):
    """A difficulty name is not one of the five known difficulties."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"unexpected beatmap difficulty '{name}'")


class ReplayFormatError(SaberkitError):
    """Replay bytes do not follow the BSOR layout."""


class MissingResourceError(SaberkitError, FileNotFoundError):
    """A named file is absent from a map folder or archive."""

    def __init__(self, name: str, where: str = ""):
        self.name = name
        location = f" in {where}" if where else ""
        super().__init__(f"missing `{name}`{location}")
