"""
Tagged console output in the '[INFO] ...' style used throughout the migration scripts.

Info, progress and success lines are printed only when console output is enabled. Warnings and errors are always printed.
"""
import sys

import pyfiglet

BOLD = "\033[1m"
GREEN = "\033[1;32m"
ORANGE = "\033[1;38;5;214m"
RED = "\033[1;31m"
CYAN = "\033[1;36m"
RESET = "\033[0m"


class Console:
    def __init__(self, enabled=False, stream=None):
        self.enabled = enabled
        self.stream = stream

    def _write(self, color, tag, message):
        print(f"{color}[{tag}] {message}{RESET}", file=self.stream or sys.stdout, flush=True)

    def info(self, message):
        if self.enabled:
            self._write(BOLD, "INFO", message)

    def progress(self, message):
        if self.enabled:
            self._write(BOLD, "PROGRESS", message)

    def success(self, message):
        if self.enabled:
            self._write(GREEN, "SUCCESS", message)

    def debug(self, message):
        if self.enabled:
            self._write(CYAN, "DEBUG", message)

    def warning(self, message):
        self._write(ORANGE, "WARNING", message)

    def error(self, message):
        self._write(RED, "ERROR", message)

    def separator(self, char="=", width=100):
        if self.enabled:
            print(f"{BOLD}{char * width}{RESET}", file=self.stream or sys.stdout)

    def banner(self, text="vault2git"):
        """
        This function prints the ASCII-art banner shown at the start of a run.
        """
        if self.enabled:
            print(pyfiglet.figlet_format(text, font="ogre"), file=self.stream or sys.stdout)
