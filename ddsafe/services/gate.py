"""Confirmation gate in front of the destructive write.

    MATCH_OK   --(no constraints)--> "no safety checks" prompt --> final prompt
    MATCH_OK   ----------------------------------------------> final prompt
    MATCH_FAIL --(no force)--> ConstraintMismatchError
    MATCH_FAIL --(force)-----> override prompt ----------------> final prompt

Any "no" ends in ABORT. Only a "yes" to the final prompt gives PROCEED.
"""

from __future__ import annotations

from rich.markup import escape

from ddsafe.domain import GateOutcome, GateState, MatchReport
from ddsafe.exceptions import ConstraintMismatchError
from ddsafe.logging import LoggerFactory
from ddsafe.ui.console import Prompter, print_mismatch

from . import matcher

log = LoggerFactory.for_system()


class ConfirmationGate:
    def __init__(self, prompter: Prompter, force: bool = False):
        self.prompter = prompter
        self.force = force

    @property
    def console(self):
        return self.prompter.console

    def _ask(self, question: str) -> bool:
        answer = self.prompter.confirm(question)
        log.info(f"Confirmation {question!r}: {'yes' if answer else 'no'}")
        return answer

    def run(self, report: MatchReport, source_label: str) -> GateOutcome:
        """Walk the user through the confirmations for report.

        Raises:
            ConstraintMismatchError: If an enabled constraint failed and force
                is not set. Nothing has been unmounted or written.
        """
        state = matcher.gate_state(report)
        target = escape(report.target)

        if state is GateState.MATCH_FAIL:
            print_mismatch(self.console, report)
            if not self.force:
                raise ConstraintMismatchError(
                    report.target,
                    report.failed_constraints(),
                    [device.name for device in report.alternatives()],
                )
            self.console.print(
                f"[bold red]WARNING: -f given. {target} FAILED its safety checks "
                f"and will be overwritten anyway.[/bold red]"
            )
            log.warning(f"Force override requested for {report.target}")
            if not self._ask(f"Override the failed checks and write to {target}?"):
                return GateOutcome.ABORT

        if not report.constraint.any_enabled:
            self.console.print(
                "[bold yellow]No safety checks enabled: neither an expected size (-s) "
                "nor a model pattern (-m) was given.[/bold yellow]"
            )
            if not self._ask("Continue without any safety checks?"):
                return GateOutcome.ABORT

        if not self._ask(
            f"Write {escape(source_label)} to {target}? "
            f"ALL DATA ON {target} WILL BE DESTROYED."
        ):
            return GateOutcome.ABORT
        return GateOutcome.PROCEED
