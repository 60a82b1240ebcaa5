# radar/logger.py

from colorama import Fore, Style, init as colorama_init
from datetime import datetime
import threading
from tqdm import tqdm

from radar.core.status import Status, check_exhaustive

# Initialize once for whole project
colorama_init(autoreset=True)


# Colour used when a line is about a classified work
STATUS_COLORS = {
    Status.OK: Fore.GREEN,
    Status.UNKNOWN: Fore.WHITE,
    Status.NO_DOI: Fore.WHITE,
    Status.CORRECTED: Fore.CYAN,
    Status.EXPRESSION_OF_CONCERN: Fore.YELLOW,
    Status.WITHDRAWN: Fore.YELLOW,
    Status.RETRACTED: Fore.RED,
}
check_exhaustive(STATUS_COLORS, "STATUS_COLORS")


class ColorLogger:
    """
    Colorized logger with optional timestamps.

    Format:
        [NAME - TAG - TIMESTAMP] MESSAGE
        or
        [NAME - TAG] MESSAGE

    Output goes through tqdm.write so it does not break progress bars.
    """

    # TAG colors
    COLOR_INFO = Fore.CYAN
    COLOR_SUCCESS = Fore.GREEN
    COLOR_ERROR = Fore.RED
    COLOR_WARN = Fore.YELLOW

    def __init__(self, name: str = "", tag_color: str = Fore.CYAN, include_timestamps: bool = False, include_threading_id: bool = False):
        self.name = name.upper()
        self.include_name = bool(name)
        self.include_timestamps = include_timestamps
        self.include_threading_id = include_threading_id
        self.tag_color = tag_color

    def _tag(self, label: str, color: str) -> str:
        name_part = f"{self.name} - " if self.include_name else ""

        if self.include_timestamps:
            ts = datetime.now().strftime("%H:%M:%S")
            return f"{self.tag_color}[{name_part}{color}{label}{self.tag_color} - {ts}]{Style.RESET_ALL}"
        return f"{self.tag_color}[{name_part}{color}{label}{self.tag_color}]{Style.RESET_ALL}"

    def _emit(self, label: str, color: str, message: str, use_color: bool) -> None:
        tag = self._tag(label, color)
        body_color = color if use_color else Fore.RESET
        line = f"{tag} {body_color}{message}{Style.RESET_ALL}"
        if self.include_threading_id:
            line += f" [{threading.get_ident()}]"
        tqdm.write(line)

    # Public Logging Methods
    def info(self, message: str, use_color: bool = True):
        self._emit("INFO", self.COLOR_INFO, message, use_color)

    def success(self, message: str, use_color: bool = True):
        self._emit("SUCCESS", self.COLOR_SUCCESS, message, use_color)

    def error(self, message: str, use_color: bool = True):
        self._emit("ERROR", self.COLOR_ERROR, message, use_color)

    def warn(self, message: str, use_color: bool = True):
        self._emit("WARN", self.COLOR_WARN, message, use_color)

    def verdict(self, status: Status, message: str):
        """Log a classification line tagged and coloured by its status."""
        self._emit(status.label, STATUS_COLORS[status], message, True)

    def banner(self, title: str, subtitle: str | None = None, color: str = None):
        """Prints a boxed banner.

        Args:
            title (str): The main title
            subtitle (str | None, optional): The subtitle. Defaults to None.
            color (str, optional): The color for the banner. Defaults to the tag color.
        """
        if color is None:
            color = self.tag_color

        lines = [title]
        if subtitle:
            lines.append(subtitle)

        width = max(len(line) for line in lines) + 4

        print(color + Style.BRIGHT + "╔" + "═" * width + "╗")
        for line in lines:
            left = (width - len(line)) // 2
            right = width - len(line) - left
            print(color + Style.BRIGHT + "║" + " " * left + line + " " * right + "║")
        print(color + Style.BRIGHT + "╚" + "═" * width + "╝" + Style.RESET_ALL)
