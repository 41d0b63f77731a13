"""Inline keyboard conversion for views."""

from .inline import rows_to_markup, markup_to_snapshots, payload_to_button, button_to_snapshot

__all__ = [
    'rows_to_markup',
    'markup_to_snapshots',
    'payload_to_button',
    'button_to_snapshot',
]
