"""
Action and Receipt models — the execution contract.

Actions are the closed instruction set a module produces: plain, frozen
data describing one unit of filesystem or process effect. Building an
action does nothing; the executor performs the effect later.
Receipts record what the executor did with each action.

Failures are NOT captured in receipts. A failing action raises and
aborts the rest of the sequence.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from datetime import UTC, datetime
from pathlib import Path
from typing import Annotated, Any, ClassVar, Literal, Union

from pydantic import BaseModel, ConfigDict, Field


def _now_iso() -> str:
    """Current UTC time as ISO string."""
    return datetime.now(UTC).isoformat()


# Identity marker shared by every action class. Values coming back from
# module code are trusted only if they carry this exact object.
_ACTION_MARKER = object()

ACTION_TAGS = frozenset({"render", "cascade", "script", "delegate", "patch", "package"})


class _ActionBase(BaseModel):
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    marker: ClassVar[object] = _ACTION_MARKER


class RenderAction(_ActionBase):
    """Render one template file to one output file."""

    tag: Literal["render"] = "render"
    source: Path
    target: Path
    rendering_data: dict[str, Any] = Field(default_factory=dict)


class CascadeAction(_ActionBase):
    """Render every file of a directory tree into another directory."""

    tag: Literal["cascade"] = "cascade"
    source: Path
    target: Path
    ignore: tuple[str, ...] = ()
    rendering_data: dict[str, Any] = Field(default_factory=dict)


class ScriptAction(_ActionBase):
    """Run an async procedure inside a shell scope rooted at ``cwd``."""

    tag: Literal["script"] = "script"
    fn: Callable[[], Awaitable[Any]]
    cwd: Path
    shell: str


class DelegateAction(_ActionBase):
    """Run another module against another target directory."""

    tag: Literal["delegate"] = "delegate"
    source: Path
    target: Path
    input_data: dict[str, Any] = Field(default_factory=dict)


class PatchAction(_ActionBase):
    """Rewrite a file through a named patch preset."""

    tag: Literal["patch"] = "patch"
    path: Path
    preset: str
    manipulator: Callable[[Any], Any]
    touch: bool = False


class PackageAction(_ActionBase):
    """Add, remove or install package dependencies in ``cwd``."""

    tag: Literal["package"] = "package"
    cwd: Path
    names: tuple[str, ...] = ()
    dev: bool = False
    rm: bool = False


Action = Annotated[
    Union[
        RenderAction,
        CascadeAction,
        ScriptAction,
        DelegateAction,
        PatchAction,
        PackageAction,
    ],
    Field(discriminator="tag"),
]


def is_action(value: Any) -> bool:
    """Whether ``value`` is a well-formed action.

    Checks the class marker and the tag instead of isinstance, so it
    stays a narrow trust check on values returned by module code.
    """
    return (
        getattr(type(value), "marker", None) is _ACTION_MARKER
        and getattr(value, "tag", None) in ACTION_TAGS
    )


def describe(action: Any) -> str:
    """Short human-readable label for logs and receipts."""
    tag = getattr(action, "tag", type(action).__name__)
    for attr in ("target", "path", "cwd"):
        value = getattr(action, attr, None)
        if value is not None:
            return f"{tag}:{value}"
    return str(tag)


class Receipt(BaseModel):
    """Result of applying one action."""

    tag: str
    target: str = ""
    status: Literal["ok", "skipped"] = "ok"

    started_at: str = Field(default_factory=_now_iso)
    duration_ms: int = 0

    output: str = ""
    metadata: dict[str, Any] = Field(default_factory=dict)

    @property
    def ok(self) -> bool:
        """Whether the action was applied."""
        return self.status == "ok"

    @classmethod
    def success(
        cls,
        tag: str,
        target: str = "",
        output: str = "",
        **kwargs: Any,
    ) -> Receipt:
        """Create a success receipt."""
        return cls(tag=tag, target=target, status="ok", output=output, **kwargs)

    @classmethod
    def skip(
        cls,
        tag: str,
        target: str = "",
        reason: str = "",
        **kwargs: Any,
    ) -> Receipt:
        """Create a skip receipt."""
        return cls(tag=tag, target=target, status="skipped", output=reason, **kwargs)
