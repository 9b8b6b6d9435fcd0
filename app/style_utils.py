"""Style utilities for consistent UI presentation."""
import html

import streamlit as st

COLORS = {
    "primary": "#1E88E5",
    "secondary": "#6C757D",
    "success": "#28A745",
    "warning": "#FFC107",
    "critical": "#DC3545",
    "info": "#17A2B8",
    "light": "#F8F9FA",
    "dark": "#343A40",
    "terminal": "#0F172A",
    "terminal_text": "#CBD5E1",
}

BADGE_COLORS = {
    "Recommended": COLORS["success"],
    "Fast": COLORS["info"],
    "Exhaustive": COLORS["warning"],
    "Efficient": COLORS["primary"],
}


def log_line_color(line: str) -> str:
    """Errors in red, best-score lines in green, everything else plain."""
    lowered = line.lower()
    if "error" in lowered:
        return COLORS["critical"]
    if "best" in lowered:
        return COLORS["success"]
    return COLORS["terminal_text"]


def log_html(lines, height: int = 320) -> str:
    """Return HTML for a terminal-style log panel. Lines are shown with a '> ' prefix."""
    rows = "".join(
        f'<div style="color: {log_line_color(line)};">&gt; {html.escape(line)}</div>'
        for line in lines
    )
    return f"""
<div style="background: {COLORS['terminal']}; border-radius: 8px; padding: 12px 16px; height: {height}px;
            overflow-y: auto; font-family: ui-monospace, SFMono-Regular, Menlo, monospace; font-size: 0.85em;
            display: flex; flex-direction: column-reverse;">
<div>{rows}</div>
</div>
    """


def render_log(lines, height: int = 320):
    st.markdown(log_html(lines, height), unsafe_allow_html=True)


def method_badge(badge: str) -> str:
    """Return HTML for a tuning-method badge."""
    color = BADGE_COLORS.get(badge, COLORS["secondary"])
    return f'<span style="background: {color}; color: white; padding: 2px 8px; border-radius: 12px; font-size: 0.75em;">{html.escape(badge)}</span>'


def styled_metric(label: str, value: str, description: str = ""):
    """Render a styled metric with optional description."""
    desc_html = (
        f"<div style='font-size: 0.75em; color: {COLORS['secondary']}; margin-top: 4px;'>{description}</div>"
        if description else ""
    )
    st.markdown(f"""
<div style="padding: 12px; background: {COLORS['light']}; border-radius: 8px; margin-bottom: 8px;">
    <div style="font-size: 0.85em; color: {COLORS['secondary']}; margin-bottom: 4px;">{label}</div>
    <div style="font-size: 1.5em; font-weight: 600; color: {COLORS['dark']};">{value}</div>
    {desc_html}
</div>
    """, unsafe_allow_html=True)


def section_header(title: str, subtitle: str = ""):
    """Render a styled section header."""
    st.markdown(f"""
<div style="margin: 24px 0 16px 0;">
    <h3 style="margin: 0; color: {COLORS['dark']};">{title}</h3>
    {"<p style='margin: 4px 0 0 0; color: " + COLORS['secondary'] + "; font-size: 0.9em;'>" + subtitle + "</p>" if subtitle else ""}
</div>
    """, unsafe_allow_html=True)


def format_duration(ms: int) -> str:
    """Format a millisecond span as e.g. '23h 59m' or '5m'."""
    minutes = max(int(ms // 60_000), 0)
    hours, minutes = divmod(minutes, 60)
    days, hours = divmod(hours, 24)
    if days:
        return f"{days}d {hours}h"
    if hours:
        return f"{hours}h {minutes}m"
    return f"{minutes}m"
