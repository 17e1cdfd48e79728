"""
Styled console messages.
"""

import sys

from colorama import Fore, Style

SUCCESS_PREFIX = "[OK]"
WARNING_PREFIX = "[!]"
ERROR_PREFIX = "[X]"
INFO_PREFIX = "[*]"

class Console:
    """Prints prefixed status lines unless quiet. Errors are always printed."""

    def __init__(self, quiet: bool = False, stream=None):
        self.quiet = quiet
        self.stream = stream

    def _print(self, prefix: str, color: str, message: str, force: bool = False):
        if self.quiet and not force:
            return
        stream = self.stream or (sys.stderr if force else sys.stdout)
        print(f"{color}{Style.BRIGHT}{prefix}{Style.RESET_ALL} {message}", file=stream)

    def success(self, message: str):
        self._print(SUCCESS_PREFIX, Fore.GREEN, message)

    def warning(self, message: str):
        self._print(WARNING_PREFIX, Fore.YELLOW, message)

    def error(self, message: str):
        self._print(ERROR_PREFIX, Fore.RED, message, force=True)

    def info(self, message: str):
        self._print(INFO_PREFIX, Fore.CYAN, message)

    def line(self, text: str = ""):
        if not self.quiet:
            print(text, file=self.stream or sys.stdout)
