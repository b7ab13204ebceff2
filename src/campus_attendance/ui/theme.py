from __future__ import annotations

# Surfaces
BG = "#1E1E1E"
SURFACE = "#252526"
SURFACE_ALT = "#2D2D30"
DIVIDER = "#2F2F2F"
BORDER = "#3C3C3C"

# Accent
ACCENT = "#0E639C"
ACCENT_HOVER = "#1177BB"

# Text
TEXT = "#F3F3F3"
TEXT_MUTED = "#9DA5B4"

# Status
SUCCESS = "#6A9955"
WARNING = "#F48771"
DANGER = "#D9534F"
DANGER_HOVER = "#C9302C"

STATUS_COLORS = {
    "present": SUCCESS,
    "absent": DANGER,
    "late": WARNING,
    "unset": TEXT_MUTED,
}

TONE_COLORS = {
    "info": TEXT_MUTED,
    "success": SUCCESS,
    "warning": WARNING,
}
