"""
Command-line interface for reviewing facts.
"""

import logging
from typing import NamedTuple, Optional

from rich.console import Console
from rich.panel import Panel

from factcore.exceptions import FactcoreError
from factcore.session import SessionController

logger = logging.getLogger(__name__)
console = Console()

QUIT_COMMAND = ":q"


class ReviewSummary(NamedTuple):
    reviewed: int
    correct: int


def _ask_definition() -> Optional[str]:
    """Prompt for the definition; None when the user asks to stop."""
    answer = console.input(
        f"[bold]Definition[/bold] [dim]({QUIT_COMMAND} to stop)[/dim]: "
    )
    if answer.strip() == QUIT_COMMAND:
        return None
    return answer.strip()


def start_review_flow(
    controller: SessionController,
    limit: Optional[int] = None,
    keep_going: bool = False,
) -> ReviewSummary:
    """
    Runs an interactive review session against a loaded controller.

    Args:
        controller: The session controller owning the facts.
        limit: Maximum number of facts to present; None for no limit.
        keep_going: Keep presenting facts that are not due yet once every
            due fact has been answered.

    Returns:
        How many facts were answered, and how many correctly.
    """
    console.print("[bold cyan]Starting review session...[/bold cyan]")
    reviewed = correct = 0

    while limit is None or reviewed < limit:
        selection = controller.get_new_fact()
        if selection is None:
            console.print("[bold yellow]There are no facts to review.[/bold yellow]")
            break
        if not selection.was_eligible and not keep_going:
            controller.finish_current_fact(None)
            if reviewed == 0:
                console.print(
                    "[bold yellow]No facts are due for review.[/bold yellow]"
                )
            break

        fact = selection.fact
        title = "Testing" if selection.was_eligible else "Extra practice"
        console.rule(f"[bold]{title} - fact {reviewed + 1}[/bold]")
        console.print(Panel(fact.term, title="Term", border_style="green"))

        answer = _ask_definition()
        if answer is None:
            controller.finish_current_fact(None)
            break

        was_correct = answer == fact.definition
        try:
            controller.finish_current_fact(was_correct)
        except FactcoreError as e:
            logger.error(f"Failed to record answer for {fact.uuid}: {e}")
            console.print(
                "[bold red]Error recording the answer. The fact stays due.[/bold red]"
            )
            break

        reviewed += 1
        if was_correct:
            correct += 1
            console.print("[green]Correct![/green]")
        else:
            console.print(
                f"[red]Wrong - it should've been[/red] [bold]{fact.definition!r}[/bold]"
            )
        console.print("")

    remaining = controller.count_eligible_now()
    console.print(
        f"[bold cyan]Review session finished.[/bold cyan] "
        f"{correct}/{reviewed} correct, "
        f"only {remaining} fact(s) remaining this session!"
    )
    return ReviewSummary(reviewed=reviewed, correct=correct)
