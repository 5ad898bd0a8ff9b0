import io
from contextlib import contextmanager
from typing import Iterator, List, Optional, Sequence

import qrcode
from rich import box
from rich.prompt import Confirm, IntPrompt, Prompt
from rich.table import Table

from clientbuild.logger import get_console
from clientbuild.src.core.errors import ClientBuildError


class Reporter:
    """Everything the orchestration needs from the terminal.

    The orchestrator only talks to this interface so it can run without one.
    """

    @contextmanager
    def step(self, message: str) -> Iterator[None]:
        yield

    def info(self, message: str) -> None:
        raise NotImplementedError

    def success(self, message: str) -> None:
        raise NotImplementedError

    def warn(self, message: str) -> None:
        raise NotImplementedError

    def newline(self) -> None:
        raise NotImplementedError

    def table(self, headers: Sequence[str], rows: Sequence[Sequence[str]]) -> None:
        raise NotImplementedError

    def link(self, url: str) -> None:
        raise NotImplementedError

    def qr_code(self, url: str) -> None:
        raise NotImplementedError

    def ask(self, message: str, default: Optional[str] = None) -> str:
        raise NotImplementedError

    def confirm(self, message: str, default: bool = True) -> bool:
        raise NotImplementedError

    def choose(self, message: str, choices: List[str], default: int = 0) -> int:
        """Return the index of the picked choice"""
        raise NotImplementedError


class RichReporter(Reporter):
    def __init__(self, console=None, interactive: bool = True):
        self.console = console or get_console()
        self.interactive = interactive

    @contextmanager
    def step(self, message: str) -> Iterator[None]:
        with self.console.status(f"[bold blue]{message}"):
            yield

    def info(self, message: str) -> None:
        self.console.print(message)

    def success(self, message: str) -> None:
        self.console.print(f"[green]✓ {message}[/]")

    def warn(self, message: str) -> None:
        self.console.print(f"[yellow]⚠ {message}[/]")

    def newline(self) -> None:
        self.console.print()

    def table(self, headers: Sequence[str], rows: Sequence[Sequence[str]]) -> None:
        table = Table(box=box.ROUNDED)
        for header in headers:
            table.add_column(header, style="cyan" if header == headers[0] else None)
        for row in rows:
            table.add_row(*row)
        self.console.print(table)

    def link(self, url: str) -> None:
        self.console.print(f"[green][link={url}]{url}[/link][/green]")

    def qr_code(self, url: str) -> None:
        qr = qrcode.QRCode(border=1)
        qr.add_data(url)
        qr.make(fit=True)
        out = io.StringIO()
        qr.print_ascii(out=out, invert=True)
        self.console.print(out.getvalue(), markup=False)

    def ask(self, message: str, default: Optional[str] = None) -> str:
        if not self.interactive:
            if default is None:
                raise ClientBuildError(
                    f"Cannot prompt in non-interactive mode: {message}",
                    code="NON_INTERACTIVE",
                )
            return default
        return Prompt.ask(message, default=default, console=self.console)

    def confirm(self, message: str, default: bool = True) -> bool:
        if not self.interactive:
            return default
        return Confirm.ask(message, default=default, console=self.console)

    def choose(self, message: str, choices: List[str], default: int = 0) -> int:
        if not self.interactive:
            return default
        self.console.print(f"\n[bold]{message}[/bold]")
        for number, choice in enumerate(choices, start=1):
            self.console.print(f"[{number}] {choice}")
        picked = IntPrompt.ask(
            "Enter your choice",
            choices=[str(n) for n in range(1, len(choices) + 1)],
            default=default + 1,
            console=self.console,
        )
        return picked - 1
