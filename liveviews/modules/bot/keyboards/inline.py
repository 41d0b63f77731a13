"""
Inline keyboards for views.

Converts committed component rows to InlineKeyboardMarkup and reads a
message's markup back as component snapshots for the differ. Telegram
reports only the text and url of a button.
"""

from typing import Any, Dict, List, Optional

from aiogram.types import InlineKeyboardButton, InlineKeyboardMarkup

from liveviews.core.errors import ConnectorError
from liveviews.modules.views.components import ComponentKind, ComponentSnapshot

# Telegram rejects longer callback_data
MAX_CALLBACK_DATA_BYTES = 64


def payload_to_button(payload: Dict[str, Any]) -> InlineKeyboardButton:
    """One committed control payload as an inline button."""
    if payload.get("type") != ComponentKind.BUTTON.value:
        raise ConnectorError(
            "Telegram inline keyboards only support buttons",
            data={"component_type": payload.get("type")},
        )
    if "emoji" in payload:
        raise ConnectorError(
            "Put emoji into the button label on Telegram",
            data={"label": payload.get("label")},
        )
    if payload.get("disabled"):
        raise ConnectorError(
            "Telegram has no disabled buttons; leave the button out instead",
            data={"label": payload.get("label")},
        )

    text = payload.get("label") or ""
    if "url" in payload:
        return InlineKeyboardButton(text=text, url=payload["url"])

    custom_id = payload["custom_id"]
    if len(custom_id.encode("utf-8")) > MAX_CALLBACK_DATA_BYTES:
        raise ConnectorError(
            "Custom id does not fit into callback_data",
            data={"custom_id": custom_id, "limit": MAX_CALLBACK_DATA_BYTES},
        )
    return InlineKeyboardButton(text=text, callback_data=custom_id)


def rows_to_markup(rows: List[List[Dict[str, Any]]]) -> Optional[InlineKeyboardMarkup]:
    """Committed rows as a keyboard, or None when there are no controls."""
    keyboard = [[payload_to_button(payload) for payload in row] for row in rows if row]
    if not keyboard:
        return None
    return InlineKeyboardMarkup(inline_keyboard=keyboard)


def button_to_snapshot(button: InlineKeyboardButton) -> ComponentSnapshot:
    return ComponentSnapshot(
        kind=ComponentKind.BUTTON,
        label=button.text,
        url=button.url,
    )


def markup_to_snapshots(markup: Optional[InlineKeyboardMarkup]) -> Optional[List[List[ComponentSnapshot]]]:
    """Keyboard of a received message as snapshot rows (None without buttons)."""
    if markup is None:
        return None
    rows = [[button_to_snapshot(button) for button in row] for row in markup.inline_keyboard if row]
    return rows or None
