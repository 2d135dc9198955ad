"""QSS stylesheets for light and dark themes."""

from __future__ import annotations

_TEMPLATE = """
QMainWindow, QWidget {{
    background-color: {bg};
    color: {text};
    font-family: "Segoe UI", "Noto Sans CJK JP", "Meiryo", sans-serif;
    font-size: 13px;
}}

#sidebar {{
    background-color: {sidebar};
    border-right: 1px solid {border};
}}
#sidebar QPushButton {{
    background: transparent;
    border: none;
    border-radius: 6px;
    padding: 10px 16px;
    text-align: left;
    color: {muted};
}}
#sidebar QPushButton:hover {{
    background-color: {hover};
}}
#sidebar QPushButton:checked {{
    background-color: {selected};
    color: {accent};
    font-weight: 600;
}}

QPushButton {{
    background-color: {accent};
    color: white;
    border: none;
    border-radius: 4px;
    padding: 6px 14px;
}}
QPushButton:disabled {{
    background-color: {hover};
    color: {muted};
}}
QPushButton[secondary="true"] {{
    background-color: transparent;
    color: {accent};
    border: 1px solid {accent};
}}
QPushButton[danger="true"] {{
    background-color: {danger};
}}

QLineEdit, QPlainTextEdit, QSpinBox, QComboBox {{
    border: 1px solid {border};
    border-radius: 4px;
    padding: 4px 8px;
    background: {input};
    color: {text};
}}
QLineEdit:focus, QPlainTextEdit:focus {{
    border-color: {accent};
}}

QTableWidget {{
    gridline-color: {border};
    alternate-background-color: {alt_row};
    selection-background-color: {selected};
    selection-color: {text};
}}
QHeaderView::section {{
    background-color: {sidebar};
    color: {muted};
    border: none;
    border-bottom: 1px solid {border};
    padding: 4px 6px;
    font-weight: 600;
}}

QGroupBox {{
    border: 1px solid {border};
    border-radius: 6px;
    margin-top: 14px;
    padding: 12px;
    font-weight: 600;
}}
QGroupBox::title {{
    subcontrol-origin: margin;
    left: 10px;
    padding: 0 4px;
}}

QLabel[heading="true"] {{
    font-size: 20px;
    font-weight: 600;
}}
QLabel[subheading="true"] {{
    color: {muted};
    font-size: 12px;
}}
QLabel[warning="true"] {{
    color: {danger};
    font-weight: 600;
}}

QProgressBar {{
    border: none;
    border-radius: 3px;
    background: {hover};
    height: 6px;
    text-align: center;
}}
QProgressBar::chunk {{
    background-color: {accent};
    border-radius: 3px;
}}
"""

_LIGHT = {
    "bg": "#FFFFFF",
    "text": "#172B4D",
    "muted": "#505F79",
    "sidebar": "#F4F5F7",
    "border": "#DFE1E6",
    "hover": "#EBECF0",
    "selected": "#DEEBFF",
    "accent": "#0052CC",
    "danger": "#DE350B",
    "input": "#FAFBFC",
    "alt_row": "#F7F8FA",
}

_DARK = {
    "bg": "#1E1E1E",
    "text": "#E0E6ED",
    "muted": "#B0BEC5",
    "sidebar": "#252A31",
    "border": "#37474F",
    "hover": "#2E343C",
    "selected": "#1C3A5E",
    "accent": "#4C9AFF",
    "danger": "#FF5630",
    "input": "#263238",
    "alt_row": "#23282E",
}

LIGHT_THEME = _TEMPLATE.format(**_LIGHT)
DARK_THEME = _TEMPLATE.format(**_DARK)
