"""Core data types shared by checks, the engine and the formatters."""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from datetime import timedelta
from enum import Enum
from typing import Any, Callable, Mapping, Optional


class Level(str, Enum):
    """How strictly a check's outcome is enforced."""

    DEFAULT = ""
    OPTIONAL = "optional"
    WARN = "warn"


@dataclass(frozen=True)
class Metadata:
    """Descriptive information attached to a check."""

    description: str = ""
    level: Level = Level.DEFAULT
    knowledge_base_url: str = ""
    check_url: str = ""


@dataclass(frozen=True)
class HelpText:
    """Guidance shown to the user when a check does not pass."""

    message: str = ""
    suggestion: str = ""


@dataclass
class ImageReference:
    """Everything known about the image under test."""

    image_uri: str = ""
    image_fs_path: str = ""
    image_info: Any = None
    image_repository: str = ""
    image_registry: str = ""
    image_tag_or_sha: str = ""
    manifest_list_digest: str = ""


Validator = Callable[[ImageReference], bool]


@dataclass(frozen=True)
class Check:
    """A named validation run against an image reference."""

    name: str
    validator: Optional[Validator] = None
    metadata: Metadata = field(default_factory=Metadata)
    help: HelpText = field(default_factory=HelpText)

    def validate(self, image_ref: ImageReference) -> bool:
        """Run the validator; any exception it raises propagates."""
        if self.validator is None:
            raise ValueError(f"check {self.name} has no validator")
        return bool(self.validator(image_ref))


@dataclass(frozen=True)
class Result:
    """The outcome of running a single check."""

    check: Check
    elapsed_time: timedelta = timedelta(0)
    error: Optional[BaseException] = None

    def name(self) -> str:
        return self.check.name

    @property
    def metadata(self) -> Metadata:
        return self.check.metadata

    @property
    def help(self) -> HelpText:
        return self.check.help

    def with_error(self, error: BaseException) -> "Result":
        """Return a copy of this result carrying the given error."""
        return dataclasses.replace(self, error=error)


@dataclass
class Results:
    """Aggregated outcome of a run of checks."""

    tested_image: str = ""
    passed_overall: bool = False
    tested_on: Optional[Mapping[str, str]] = None
    certification_hash: str = ""
    passed: list[Result] = field(default_factory=list)
    failed: list[Result] = field(default_factory=list)
    errors: list[Result] = field(default_factory=list)
    warned: list[Result] = field(default_factory=list)