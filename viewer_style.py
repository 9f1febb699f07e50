# viewer_style.py
"""Colors, fonts and display settings shared by the ICO viewer."""

BG_MAIN = "#f0f2f5"
BG_TOOLBAR = "#2d3e50"
BG_PANEL = "#ffffff"
BG_BUTTON = "#3c8dbc"
FG_BUTTON = "#ffffff"
FG_TEXT = "#222222"
FG_SUBTEXT = "#555555"

FONT_HEADER = ("Segoe UI", 11, "bold")
FONT_TEXT = ("Segoe UI", 10)
FONT_MONO = ("Consolas", 9)

# transparency checkerboard drawn behind frames
CHECKER_CELL = 8
CHECKER_LIGHT = (255, 255, 255)
CHECKER_DARK = (204, 204, 204)

ZOOM_STEP = 1.25
INITIAL_ZOOM = 4.0
