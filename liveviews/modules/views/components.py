"""
Interactive controls a view can render, and their remote snapshots.

Controls form a closed set discriminated by ComponentKind. Each control
knows how to turn itself into a payload for the transport and how to
compare itself with a ComponentSnapshot read back from the remote side.
"""

from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Any, Callable, Dict, List, Optional, Union


class ComponentKind(str, Enum):
    """Control kinds."""
    BUTTON = "button"
    STRING_SELECT = "string_select"


class ButtonStyle(IntEnum):
    """Button styles; LINK is reserved for LinkButton."""
    PRIMARY = 1
    SECONDARY = 2
    SUCCESS = 3
    DANGER = 4
    LINK = 5


@dataclass(frozen=True)
class Emoji:
    """Emoji shown on a control; custom emoji have an id."""
    name: Optional[str] = None
    id: Optional[str] = None

    def same_as(self, other: 'Emoji') -> bool:
        if self.id:
            return self.id == other.id
        return self.name == other.name

    def to_dict(self) -> Dict[str, Any]:
        return {k: v for k, v in (("name", self.name), ("id", self.id)) if v is not None}


def _emoji_equal(a: Optional[Emoji], b: Optional[Emoji]) -> bool:
    if a is None or b is None:
        return a is None and b is None
    return a.same_as(b)


@dataclass(frozen=True)
class SelectOption:
    """One choice of a StringSelect."""
    label: str
    value: str
    description: Optional[str] = None
    emoji: Optional[Emoji] = None
    default: bool = False

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"label": self.label, "value": self.value, "default": self.default}
        if self.description is not None:
            data["description"] = self.description
        if self.emoji is not None:
            data["emoji"] = self.emoji.to_dict()
        return data

    def same_as(self, other: 'SelectOption') -> bool:
        return (
            self.label == other.label
            and self.value == other.value
            and self.description == other.description
            and self.default == other.default
            and _emoji_equal(self.emoji, other.emoji)
        )


@dataclass
class ComponentSnapshot:
    """
    A control as the remote side currently shows it.

    Fields a transport cannot report stay None and are not compared.
    """
    kind: ComponentKind
    style: Optional[int] = None
    label: Optional[str] = None
    emoji: Optional[Emoji] = None
    url: Optional[str] = None
    disabled: Optional[bool] = None
    placeholder: Optional[str] = None
    min_values: Optional[int] = None
    max_values: Optional[int] = None
    options: Optional[List[SelectOption]] = None


def _reported_equal(expected: Any, reported: Any) -> bool:
    return reported is None or expected == reported


Handler = Callable[..., Any]


class InteractableButton:
    """Button that runs ``handler(ctx)`` when pressed."""

    kind = ComponentKind.BUTTON

    def __init__(
        self,
        handler: Handler,
        label: Optional[str] = None,
        emoji: Optional[Emoji] = None,
        style: ButtonStyle = ButtonStyle.SECONDARY,
        disabled: bool = False,
    ):
        if label is None and emoji is None:
            raise ValueError("A button needs a label or an emoji")
        if style == ButtonStyle.LINK:
            raise ValueError("Use LinkButton for link-style buttons")
        self.handler = handler
        self.label = label
        self.emoji = emoji
        self.style = style
        self.disabled = disabled

    @property
    def is_interactive(self) -> bool:
        return True

    def to_payload(self, custom_id: str) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "type": self.kind.value,
            "style": int(self.style),
            "custom_id": custom_id,
            "disabled": self.disabled,
        }
        if self.label is not None:
            payload["label"] = self.label
        if self.emoji is not None:
            payload["emoji"] = self.emoji.to_dict()
        return payload

    def matches(self, snapshot: ComponentSnapshot) -> bool:
        if snapshot.kind != ComponentKind.BUTTON:
            return False
        if not _emoji_equal(self.emoji, snapshot.emoji):
            return False
        return (
            _reported_equal(int(self.style), snapshot.style)
            and _reported_equal(self.disabled, snapshot.disabled)
            and self.label == snapshot.label
        )


class LinkButton:
    """Button that opens a URL; never reaches the runtime."""

    kind = ComponentKind.BUTTON

    def __init__(
        self,
        url: str,
        label: Optional[str] = None,
        emoji: Optional[Emoji] = None,
        disabled: bool = False,
    ):
        if label is None and emoji is None:
            raise ValueError("A button needs a label or an emoji")
        self.url = url
        self.label = label
        self.emoji = emoji
        self.disabled = disabled

    @property
    def is_interactive(self) -> bool:
        return False

    def to_payload(self, custom_id: Optional[str] = None) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "type": self.kind.value,
            "style": int(ButtonStyle.LINK),
            "url": self.url,
            "disabled": self.disabled,
        }
        if self.label is not None:
            payload["label"] = self.label
        if self.emoji is not None:
            payload["emoji"] = self.emoji.to_dict()
        return payload

    def matches(self, snapshot: ComponentSnapshot) -> bool:
        if snapshot.kind != ComponentKind.BUTTON:
            return False
        if not _emoji_equal(self.emoji, snapshot.emoji):
            return False
        return (
            _reported_equal(int(ButtonStyle.LINK), snapshot.style)
            and _reported_equal(self.disabled, snapshot.disabled)
            and self.label == snapshot.label
            and self.url == snapshot.url
        )


class StringSelect:
    """Drop-down with fixed options; ``handler(ctx)`` gets ctx.values."""

    kind = ComponentKind.STRING_SELECT

    def __init__(
        self,
        handler: Handler,
        options: List[SelectOption],
        placeholder: Optional[str] = None,
        min_values: int = 1,
        max_values: int = 1,
        disabled: bool = False,
    ):
        if not options:
            raise ValueError("A select needs at least one option")
        if not 0 <= min_values <= max_values:
            raise ValueError(f"Invalid value range {min_values}..{max_values}")
        self.handler = handler
        self.options = list(options)
        self.placeholder = placeholder
        self.min_values = min_values
        self.max_values = max_values
        self.disabled = disabled

    @property
    def is_interactive(self) -> bool:
        return True

    def to_payload(self, custom_id: str) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "type": self.kind.value,
            "custom_id": custom_id,
            "options": [option.to_dict() for option in self.options],
            "min_values": self.min_values,
            "max_values": self.max_values,
            "disabled": self.disabled,
        }
        if self.placeholder is not None:
            payload["placeholder"] = self.placeholder
        return payload

    def matches(self, snapshot: ComponentSnapshot) -> bool:
        if snapshot.kind != ComponentKind.STRING_SELECT:
            return False
        if not (
            _reported_equal(self.disabled, snapshot.disabled)
            and _reported_equal(self.min_values, snapshot.min_values)
            and _reported_equal(self.max_values, snapshot.max_values)
            and self.placeholder == snapshot.placeholder
        ):
            return False
        if snapshot.options is None:
            return True
        if len(self.options) != len(snapshot.options):
            return False
        return all(a.same_as(b) for a, b in zip(self.options, snapshot.options))


Component = Union[InteractableButton, LinkButton, StringSelect]


class ActionRow:
    """
    One row of controls.

    Falsy children are dropped, so rows can be built with conditionals:
    ``ActionRow(back_button, page > 0 and prev_button)``.
    """

    def __init__(self, *children: Union[Component, List[Component], None, bool]):
        flat: List[Component] = []
        for child in children:
            if isinstance(child, (list, tuple)):
                flat.extend(c for c in child if c)
            elif child:
                flat.append(child)
        self.children: List[Component] = flat

    def __iter__(self):
        return iter(self.children)

    def __len__(self) -> int:
        return len(self.children)


ComponentRow = Union[ActionRow, List[Component]]


def row_children(row: Any) -> Optional[List[Component]]:
    """Controls of a row, or None if ``row`` is not a row."""
    if isinstance(row, ActionRow):
        return row.children
    if isinstance(row, list):
        return [c for c in row if c]
    return None


def normalized_rows(rows: Optional[List[Any]]) -> List[List[Component]]:
    """Non-empty rows of a render, in order; anything that is not a row is skipped."""
    result: List[List[Component]] = []
    for row in rows or []:
        children = row_children(row)
        if children:
            result.append(children)
    return result
