"""Definitions and the units of work they identify.

A :class:`Definition` is the static identity of a unit of work: a unique
name, a semantic version and a description. :class:`Operation` is a leaf
unit of work and :class:`Sequence` a composite one; both pair a definition
with a handler of shape ``handler(bundle, deps, input) -> output`` and are
immutable once built.

Example:
    >>> plus1 = new_operation("plus1", "1.0.0", "adds one",
    ...                       lambda bundle, deps, x: x + 1)
    >>> plus1.definition.id
    'plus1'
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from packaging.version import InvalidVersion, Version

from opstrail.core.errors import InvalidDefinitionError

if TYPE_CHECKING:
    from opstrail.operations.bundle import Bundle

IN = TypeVar("IN")
OUT = TypeVar("OUT")
DEP = TypeVar("DEP")


def parse_version(version: Version | str) -> Version:
    """Coerce ``version`` to a :class:`packaging.version.Version`."""
    if isinstance(version, Version):
        return version
    try:
        return Version(version)
    except InvalidVersion as e:
        raise InvalidDefinitionError(f"Invalid version: {version!r}", cause=e) from e


@dataclass(frozen=True)
class Definition:
    """Identity and metadata of an operation or sequence.

    Attributes:
        id: Unique name of the unit of work.
        version: Semantic version. Metadata only; no compatibility checks.
        description: Human-readable description.
    """

    id: str
    version: Version
    description: str = ""

    def __post_init__(self) -> None:
        if not self.id:
            raise InvalidDefinitionError("Definition id must not be empty")
        object.__setattr__(self, "version", parse_version(self.version))

    def to_dict(self) -> dict[str, Any]:
        return {
            "ID": self.id,
            "Version": str(self.version),
            "Description": self.description,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Definition:
        return cls(
            id=data["ID"],
            version=data["Version"],
            description=data.get("Description", ""),
        )


@dataclass(frozen=True)
class _UnitOfWork(Generic[IN, OUT, DEP]):
    definition: Definition
    handler: Callable[..., Any] = field(repr=False)

    @property
    def id(self) -> str:
        return self.definition.id

    @property
    def version(self) -> Version:
        return self.definition.version

    @property
    def description(self) -> str:
        return self.definition.description

    def same_kind(self, other: _UnitOfWork) -> bool:
        """Two units of work are the same kind when their definition IDs match."""
        return self.definition.id == other.definition.id


@dataclass(frozen=True)
class Operation(_UnitOfWork[IN, OUT, DEP]):
    """A leaf unit of work, executed with :func:`execute_operation`."""

    def execute(self, bundle: Bundle, deps: DEP, input: IN) -> OUT:
        return self.handler(bundle, deps, input)


@dataclass(frozen=True)
class Sequence(_UnitOfWork[IN, OUT, DEP]):
    """A composite unit of work, executed with :func:`execute_sequence`.

    Its handler calls ``execute_operation``/``execute_sequence`` with the
    bundle it receives so the nested reports are attributed to it.
    """


def new_operation(
    id: str,
    version: Version | str,
    description: str,
    handler: Callable[[Bundle, DEP, IN], OUT],
) -> Operation[IN, OUT, DEP]:
    """Create an operation from its definition fields and handler."""
    return Operation(Definition(id, version, description), handler)


def new_sequence(
    id: str,
    version: Version | str,
    description: str,
    handler: Callable[[Bundle, DEP, IN], OUT],
) -> Sequence[IN, OUT, DEP]:
    """Create a sequence from its definition fields and handler."""
    return Sequence(Definition(id, version, description), handler)
