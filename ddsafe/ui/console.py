"""Terminal output and prompts.

Device tables are rendered with rich; cells that satisfy an enabled
constraint are highlighted so duplicates stand out before anything is
written. Prompts read through an injectable input function so the gate and
selector can be driven from tests.
"""

from __future__ import annotations

from typing import Callable, Optional, Sequence

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from ddsafe.domain import DeviceRecord, MatchReport, TransferSource
from ddsafe.exceptions import UserDeclinedError

YES_TOKENS = {"y", "yes"}
NO_TOKENS = {"n", "no"}

MATCH_STYLE = "bold green"
TARGET_STYLE = "bold"


class Prompter:
    """Yes/no and index prompts with a safe default of "no"."""

    def __init__(
        self,
        console: Optional[Console] = None,
        input_func: Optional[Callable[[str], str]] = None,
    ):
        self.console = console or Console()
        self.input_func = input_func or self.console.input

    def _read(self, prompt: str) -> Optional[str]:
        try:
            return self.input_func(prompt)
        except EOFError:
            return None

    def confirm(self, question: str) -> bool:
        """Ask question until answered y/yes/n/no. Empty input or EOF is no."""
        while True:
            answer = self._read(f"{question} {escape('[y/N]')} ")
            if answer is None:
                self.console.print()
                return False
            token = answer.strip().lower()
            if not token or token in NO_TOKENS:
                return False
            if token in YES_TOKENS:
                return True
            self.console.print("Please answer yes or no.")

    def choose_index(self, count: int, prompt: str = "Select device") -> int:
        """Ask for a 1-based index in 1..count and return it 0-based.

        Invalid input reprompts without limit.

        Raises:
            UserDeclinedError: If input ends before a valid answer.
        """
        while True:
            answer = self._read(f"{prompt} [1-{count}]: ")
            if answer is None:
                self.console.print()
                raise UserDeclinedError(prompt)
            answer = answer.strip()
            try:
                value = int(answer)
            except ValueError:
                value = 0
            if 1 <= value <= count:
                return value - 1
            self.console.print(
                f"[red]Invalid selection {escape(answer)!r}; "
                f"enter a number from 1 to {count}.[/red]"
            )


def _styled(text: str, highlighted: bool) -> str:
    text = escape(text)
    if highlighted:
        return f"[{MATCH_STYLE}]{text}[/{MATCH_STYLE}]"
    return text


def build_device_table(
    devices: Sequence[DeviceRecord],
    report: Optional[MatchReport] = None,
    title: str = "Block devices",
) -> Table:
    """Build the numbered device table, highlighting constraint matches."""
    table = Table(title=title)
    table.add_column("#", style="dim", justify="right")
    table.add_column("Device", style="cyan")
    table.add_column("Size")
    table.add_column("Model")
    table.add_column("Parts", justify="right")

    results = report.results if report is not None else ()
    for index, device in enumerate(devices, start=1):
        result = results[index - 1] if index - 1 < len(results) else None
        size_hit = result is not None and result.size_matches
        model_hit = result is not None and result.model_matches
        row_style = TARGET_STYLE if result is not None and result.is_selected_target else None
        marker = "*" if row_style else ""
        table.add_row(
            f"{marker}{index}",
            escape(device.name),
            _styled(device.size, size_hit),
            _styled(device.model or "-", model_hit),
            str(device.partition_count),
            style=row_style,
        )
    return table


def print_devices(
    console: Console,
    devices: Sequence[DeviceRecord],
    report: Optional[MatchReport] = None,
) -> None:
    console.print(build_device_table(devices, report))


def print_match_summary(console: Console, report: MatchReport) -> None:
    """Report how the target compares with the other devices."""
    constraint = report.constraint
    if not constraint.any_enabled:
        return
    others_size = [d for d in report.size_matching if d.name != report.target]
    others_model = [d for d in report.model_matching if d.name != report.target]

    if constraint.size_enabled:
        status = "[green]matches[/green]" if report.size_matches else "[red]does not match[/red]"
        console.print(f"Size {escape(constraint.size)}: {escape(report.target)} {status}")
        if others_size:
            names = ", ".join(escape(d.name) for d in others_size)
            console.print(f"[yellow]Other devices this size: {names}[/yellow]")
    if constraint.model_enabled:
        status = "[green]matches[/green]" if report.model_matches else "[red]does not match[/red]"
        console.print(
            f"Model /{escape(constraint.model.pattern)}/: {escape(report.target)} {status}"
        )
        if others_model:
            names = ", ".join(escape(d.name) for d in others_model)
            console.print(f"[yellow]Other devices with this model: {names}[/yellow]")
    if not report.target_found:
        console.print(
            f"[yellow]{escape(report.target)} was not in the device listing[/yellow]"
        )


def print_mismatch(console: Console, report: MatchReport) -> None:
    """Explain a failed constraint and list devices that would have matched."""
    failed = " and ".join(report.failed_constraints())
    console.print(
        f"[bold red]{escape(report.target)} does not match expected {escape(failed)}.[/bold red]"
    )
    alternatives = report.alternatives()
    if alternatives:
        console.print("Devices that do match:")
        for device in alternatives:
            console.print(f"  {escape(device.format_label())}")
    else:
        console.print("No other device matches either.")


def print_plan(
    console: Console,
    source: TransferSource,
    target: str,
    commands: Sequence[Sequence[str]],
    dry_run: bool = False,
) -> None:
    heading = "[yellow]DRY RUN - No changes will be made[/yellow]" if dry_run else "Write plan"
    console.print(heading)
    console.print(f"  Input:  {escape(source.describe())}")
    console.print(f"  Output: {escape(target)}")
    console.print(f"  Command: {escape(' | '.join(' '.join(c) for c in commands))}")
