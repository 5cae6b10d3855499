"""Terminal output for scanner status lines.

Each helper returns a prefixed line (``[+]``, ``[i]``, ``[!]``) styled with
rich markup, or plain text when colour is disabled. Warnings and criticals
count towards the reporter's exit code.
"""

from typing import Optional

from rich.console import Console
from rich.markup import escape


class Reporter:
    """Formats status lines and tracks how many problems were reported.

    Examples:
        >>> reporter = Reporter(color=False)
        >>> reporter.info("Data is up to date")
        '[+] Data is up to date'
        >>> reporter.warning("Archive missing")
        '[!] Archive missing'
        >>> reporter.exit_code
        1
    """

    def __init__(self, console: Optional[Console] = None, color: bool = True):
        """Initialize reporter.

        Args:
            console: Console to print to (a new one if None)
            color: Whether to style the prefixes
        """
        self.color = color
        self.console = console or Console(no_color=not color, highlight=False)
        self.exit_code = 0

    def _format(self, prefix: str, style: str, text: str) -> str:
        if not self.color:
            return f"{prefix} {text}"
        return f"[{style}]{escape(prefix)}[/{style}] {escape(text)}"

    def info(self, text: str) -> str:
        return self._format("[+]", "green", text)

    def notice(self, text: str) -> str:
        return self._format("[i]", "blue", text)

    def warning(self, text: str) -> str:
        self.exit_code += 1
        return self._format("[!]", "yellow", text)

    def critical(self, text: str) -> str:
        self.exit_code += 1
        return self._format("[!]", "red", text)

    def bold(self, text: str) -> str:
        if not self.color:
            return text
        return f"[bold]{escape(text)}[/bold]"

    def echo(self, line: str = "") -> None:
        """Print a line produced by one of the formatting helpers."""
        self.console.print(line, markup=self.color, highlight=False)
