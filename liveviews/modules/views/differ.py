"""
Content differ - Does the remote message still show what the view renders?

Used when a view is rebuilt from the state store: if the user clicked on a
message whose content differs from a fresh render, the click was made on
an out-of-date view and must not be replayed against the new state.
"""

from datetime import datetime, timezone
from typing import Any, Optional, Union

from .components import normalized_rows
from .content import Embed, MessageSnapshot, RenderedView


def _text(value: Optional[str]) -> str:
    return (value or "").strip()


def _optional_text_equal(a: Optional[str], b: Optional[str]) -> bool:
    return _text(a) == _text(b)


def _instant(value: Any) -> Union[datetime, str, None]:
    """
    Timestamp as an aware datetime.

    Values that do not parse come back as stripped text, so two identical
    malformed values still match and anything else is a mismatch.
    """
    if value is None or value == "":
        return None
    try:
        if isinstance(value, datetime):
            moment = value
        elif isinstance(value, (int, float)):
            return datetime.fromtimestamp(value, tz=timezone.utc)
        else:
            text = str(value).strip()
            if text.endswith("Z"):
                text = text[:-1] + "+00:00"
            moment = datetime.fromisoformat(text)
    except (ValueError, OverflowError, OSError):
        return str(value).strip()
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment


def embeds_match(remote: Embed, rendered: Embed) -> bool:
    """Compare two embeds field by field; text is compared stripped."""
    if not (
        _optional_text_equal(remote.title, rendered.title)
        and _optional_text_equal(remote.description, rendered.description)
        and _optional_text_equal(remote.url, rendered.url)
    ):
        return False

    if (remote.color or 0) != (rendered.color or 0):
        return False

    if _instant(remote.timestamp) != _instant(rendered.timestamp):
        return False

    if (remote.author is None) != (rendered.author is None):
        return False
    if remote.author is not None and not (
        _optional_text_equal(remote.author.name, rendered.author.name)
        and _optional_text_equal(remote.author.url, rendered.author.url)
        and _optional_text_equal(remote.author.icon_url, rendered.author.icon_url)
    ):
        return False

    if (remote.footer is None) != (rendered.footer is None):
        return False
    if remote.footer is not None and not (
        _optional_text_equal(remote.footer.text, rendered.footer.text)
        and _optional_text_equal(remote.footer.icon_url, rendered.footer.icon_url)
    ):
        return False

    if not (
        _optional_text_equal(remote.image_url, rendered.image_url)
        and _optional_text_equal(remote.thumbnail_url, rendered.thumbnail_url)
    ):
        return False

    if len(remote.fields) != len(rendered.fields):
        return False
    return all(
        _text(a.name) == _text(b.name)
        and _text(a.value) == _text(b.value)
        and bool(a.inline) == bool(b.inline)
        for a, b in zip(remote.fields, rendered.fields)
    )


def messages_match(snapshot: MessageSnapshot, rendered: RenderedView) -> bool:
    """
    True when the remote message matches a fresh render.

    Only rich embeds of the snapshot count; link previews and other
    embeds the remote side generates on its own are ignored.
    """
    if _text(snapshot.content) != _text(rendered.content):
        return False

    rendered_rows = normalized_rows(rendered.components)
    remote_rows = snapshot.components or []
    if bool(rendered_rows) != bool(remote_rows):
        return False
    if len(rendered_rows) != len(remote_rows):
        return False
    for rendered_row, remote_row in zip(rendered_rows, remote_rows):
        if len(rendered_row) != len(remote_row):
            return False
        if not all(control.matches(remote) for control, remote in zip(rendered_row, remote_row)):
            return False

    remote_embeds = [embed for embed in snapshot.embeds if embed.kind == "rich"]
    if len(remote_embeds) != len(rendered.embeds):
        return False
    return all(embeds_match(a, b) for a, b in zip(remote_embeds, rendered.embeds))
