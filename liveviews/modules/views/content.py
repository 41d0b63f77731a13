"""
Rendered output of a view and the remote content it is compared with.

- RenderedView: what View.render() returns (controls still hold handlers)
- SendableContent: what is handed to the connector (controls are payloads)
- MessageSnapshot: what the remote side currently displays
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .components import ComponentRow, ComponentSnapshot


@dataclass(frozen=True)
class EmbedAuthor:
    name: str
    url: Optional[str] = None
    icon_url: Optional[str] = None


@dataclass(frozen=True)
class EmbedFooter:
    text: str
    icon_url: Optional[str] = None


@dataclass(frozen=True)
class EmbedField:
    name: str
    value: str
    inline: bool = False


@dataclass
class Embed:
    """Rich content block attached to a message."""
    title: Optional[str] = None
    description: Optional[str] = None
    url: Optional[str] = None
    color: Optional[int] = None
    timestamp: Optional[str] = None
    author: Optional[EmbedAuthor] = None
    footer: Optional[EmbedFooter] = None
    image_url: Optional[str] = None
    thumbnail_url: Optional[str] = None
    fields: List[EmbedField] = field(default_factory=list)
    kind: str = "rich"

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"type": self.kind}
        for name in ("title", "description", "url", "color", "timestamp"):
            value = getattr(self, name)
            if value is not None:
                data[name] = value
        if self.author is not None:
            data["author"] = {k: v for k, v in vars(self.author).items() if v is not None}
        if self.footer is not None:
            data["footer"] = {k: v for k, v in vars(self.footer).items() if v is not None}
        if self.image_url is not None:
            data["image"] = {"url": self.image_url}
        if self.thumbnail_url is not None:
            data["thumbnail"] = {"url": self.thumbnail_url}
        if self.fields:
            data["fields"] = [
                {"name": f.name, "value": f.value, "inline": f.inline} for f in self.fields
            ]
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Embed':
        author = data.get("author")
        footer = data.get("footer")
        return cls(
            title=data.get("title"),
            description=data.get("description"),
            url=data.get("url"),
            color=data.get("color"),
            timestamp=data.get("timestamp"),
            author=EmbedAuthor(**author) if author else None,
            footer=EmbedFooter(**footer) if footer else None,
            image_url=(data.get("image") or {}).get("url"),
            thumbnail_url=(data.get("thumbnail") or {}).get("url"),
            fields=[
                EmbedField(f.get("name", ""), f.get("value", ""), f.get("inline", False))
                for f in data.get("fields", [])
            ],
            kind=data.get("type", "rich"),
        )


@dataclass
class RenderedView:
    """Declarative output of View.render()."""
    content: Optional[str] = None
    embeds: List[Embed] = field(default_factory=list)
    components: List[ComponentRow] = field(default_factory=list)


@dataclass
class SendableContent:
    """Committed form of a render: controls carry custom ids instead of handlers."""
    content: Optional[str] = None
    embeds: List[Embed] = field(default_factory=list)
    components: List[List[Dict[str, Any]]] = field(default_factory=list)
    ephemeral: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "content": self.content,
            "embeds": [embed.to_dict() for embed in self.embeds],
            "components": self.components,
        }


@dataclass
class MessageSnapshot:
    """Remote content as last observed; components is None without controls."""
    content: Optional[str] = None
    embeds: List[Embed] = field(default_factory=list)
    components: Optional[List[List[ComponentSnapshot]]] = None
