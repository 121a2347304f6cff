"""
Terminal Farben für schöne Ausgaben
Verwendet ANSI Escape Codes für Terminal-Farben und einen passenden Log-Formatter
"""
import logging
import sys

# Prüfe ob Terminal Farben unterstützt
SUPPORTS_COLOR = hasattr(sys.stdout, 'isatty') and sys.stdout.isatty()


class Colors:
    """ANSI Farb-Codes für Terminal-Ausgaben"""

    RESET = '\033[0m'
    BOLD = '\033[1m'

    SUCCESS = '\033[92m'  # Bright Green
    SUCCESS_BOLD = '\033[1;92m'

    ERROR = '\033[91m'  # Bright Red
    ERROR_BOLD = '\033[1;91m'

    WARNING = '\033[93m'  # Bright Yellow
    WARNING_BOLD = '\033[1;93m'

    INFO = '\033[96m'  # Bright Cyan
    INFO_BOLD = '\033[1;96m'

    HIGHLIGHT = '\033[95m'  # Bright Magenta
    HIGHLIGHT_BOLD = '\033[1;95m'

    DIM_TEXT = '\033[90m'  # Bright Black (grau)


def colorize(text, color_code, enabled=None):
    """Färbt Text ein, falls Terminal Farben unterstützt"""
    if enabled is None:
        enabled = SUPPORTS_COLOR
    if not enabled:
        return text
    return f"{color_code}{text}{Colors.RESET}"


def success(text, bold=False):
    """Grüner Text für Erfolgsmeldungen"""
    return colorize(text, Colors.SUCCESS_BOLD if bold else Colors.SUCCESS)


def error(text, bold=False):
    """Roter Text für Fehlermeldungen"""
    return colorize(text, Colors.ERROR_BOLD if bold else Colors.ERROR)


def warning(text, bold=False):
    """Gelber Text für Warnungen"""
    return colorize(text, Colors.WARNING_BOLD if bold else Colors.WARNING)


def info(text, bold=False):
    """Cyan Text für Informationen"""
    return colorize(text, Colors.INFO_BOLD if bold else Colors.INFO)


def highlight(text, bold=False):
    """Magenta Text für Hervorhebungen"""
    return colorize(text, Colors.HIGHLIGHT_BOLD if bold else Colors.HIGHLIGHT)


def dim(text):
    """Grauer Text für weniger wichtige Informationen"""
    return colorize(text, Colors.DIM_TEXT)


class ColorFormatter(logging.Formatter):
    """Log-Formatter, der die Zeile je nach Level einfärbt"""

    LEVEL_COLORS = {
        logging.DEBUG: Colors.DIM_TEXT,
        logging.INFO: Colors.INFO,
        logging.WARNING: Colors.WARNING,
        logging.ERROR: Colors.ERROR,
        logging.CRITICAL: Colors.ERROR_BOLD,
    }

    def __init__(self, fmt='[%(levelname)s] %(name)s: %(message)s', use_color=None):
        super().__init__(fmt)
        self.use_color = SUPPORTS_COLOR if use_color is None else use_color

    def format(self, record):
        message = super().format(record)
        color = self.LEVEL_COLORS.get(record.levelno)
        if color is None:
            return message
        return colorize(message, color, enabled=self.use_color)


def setup_logging(level='INFO', use_color=None):
    """Richtet das Root-Logging mit farbiger Konsolenausgabe ein"""
    handler = logging.StreamHandler()
    handler.setFormatter(ColorFormatter(use_color=use_color))

    root = logging.getLogger()
    for existing in list(root.handlers):
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(level if isinstance(level, int) else str(level).upper())
    return handler
