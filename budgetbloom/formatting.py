"""Formatting utilities for currency and text display."""

from __future__ import annotations

from typing import Union


def escape_dollar_for_markdown(amount: float) -> str:
    """Format a dollar amount and escape the dollar sign for markdown rendering.

    Streamlit markdown treats ``$`` as a LaTeX delimiter, so amounts shown
    inside ``st.markdown`` need the sign escaped.

    Example:
        >>> escape_dollar_for_markdown(1234.56)
        '\\$1,234.56'
    """
    return escape_dollars(format_currency(amount))


def escape_dollars(text: str) -> str:
    """Escape every ``$`` in ``text`` so markdown shows it literally."""
    return text.replace("$", "\\$")


def format_currency(amount: Union[float, int], include_sign: bool = True) -> str:
    """Format a currency amount.

    Example:
        >>> format_currency(1234.56)
        '$1,234.56'
        >>> format_currency(1234.56, include_sign=False)
        '1,234.56'
    """
    formatted = f"{amount:,.2f}"
    return f"${formatted}" if include_sign else formatted


def format_change(percent: float) -> str:
    """Signed percentage with one decimal, e.g. ``+12.5%``."""
    sign = '+' if percent >= 0 else ''
    return f"{sign}{percent:.1f}%"
