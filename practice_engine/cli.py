"""
Practice Engine: developer CLI.

A Rich terminal interface for exercising the rating and recommendation
algorithms without a backend.

Commands:
- practice-engine simulate   - Simulate a learner through one session
- practice-engine estimate   - Estimate section scores from a profile JSON file
- practice-engine daily      - Show the daily challenge for a date
"""
from __future__ import annotations

import json
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from practice_engine.config import get_settings
from practice_engine.log_setup import configure_logging
from practice_engine.models import MODULES, CandidateQuestion, LearnerProfile, SessionMode, now_ms
from practice_engine.rating.estimate import EstimatedScore, estimate_section_score
from practice_engine.selection.recommender import QuestionRecommender, date_seed_for
from practice_engine.simulation import build_question_bank, run_simulation

# =============================================================================
# CLI Setup
# =============================================================================

app = typer.Typer(
    name="practice-engine",
    help="Practice Engine: adaptive question selection toolkit",
    no_args_is_help=True,
)
console = Console()

STYLES = {
    "correct": "bold green",
    "incorrect": "bold red",
    "info": "bold cyan",
    "difficulty": {"E": "green", "M": "yellow", "H": "red"},
}


def style_difficulty(difficulty: str) -> str:
    color = STYLES["difficulty"].get(difficulty, "white")
    return f"[{color}]{difficulty}[/{color}]"


def _check_module(module: str) -> str:
    if module not in MODULES:
        raise typer.BadParameter(f"module must be one of {', '.join(MODULES)}")
    return module


def _load_json(path: Path) -> object:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        console.print(f"[{STYLES['incorrect']}]Cannot read {path}: {exc}[/]")
        raise typer.Exit(code=1) from exc


def _estimate_row(table: Table, module: str, estimate: EstimatedScore) -> None:
    table.add_row(
        module,
        str(estimate.score),
        f"{estimate.confidence:.0%}",
        f"{estimate.raw_accuracy:.0%}",
    )


# =============================================================================
# Commands
# =============================================================================


@app.callback()
def main_options(
    log_level: Optional[str] = typer.Option(
        None, "--log-level", help="Loguru level (defaults to PRACTICE_LOG_LEVEL)"
    ),
) -> None:
    """Configure logging before any command runs."""
    configure_logging(log_level or get_settings().log_level)


@app.command()
def simulate(
    module: str = typer.Option("math", "--module", "-m", help="english or math"),
    questions: int = typer.Option(30, "--questions", "-n", min=1, help="Answers to simulate"),
    ability: float = typer.Option(1200.0, "--ability", "-a", help="Hidden learner ability (Elo)"),
    seed: int = typer.Option(7, "--seed", "-s", help="Random seed"),
    mode: SessionMode = typer.Option(SessionMode.SANDBOX, "--mode", help="Session mode"),
    show: int = typer.Option(15, "--show", help="Trailing steps to print (0 for none)"),
) -> None:
    """Simulate a learner answering questions in one session."""
    _check_module(module)
    report = run_simulation(module=module, questions=questions, true_ability=ability, seed=seed, mode=mode)

    if show > 0 and report.steps:
        table = Table(title=f"Last {min(show, report.answered)} answers")
        table.add_column("#", justify="right")
        table.add_column("Question")
        table.add_column("Diff")
        table.add_column("Skill", overflow="fold")
        table.add_column("Q Elo", justify="right")
        table.add_column("Result")
        table.add_column("Rating", justify="right")
        for step in report.steps[-show:]:
            result = (
                f"[{STYLES['correct']}]correct[/]" if step.is_correct else f"[{STYLES['incorrect']}]wrong[/]"
            )
            table.add_row(
                str(step.number),
                step.question_id,
                style_difficulty(step.difficulty),
                step.skill,
                f"{step.question_elo:.0f}",
                result,
                str(step.rating),
            )
        console.print(table)

    counts = report.difficulty_counts()
    summary = (
        f"Answered: {report.answered}  Correct: {report.correct} ({report.accuracy:.0%})\n"
        f"Rating: {report.final_rating}  True ability: {ability:.0f}\n"
        f"Difficulty mix: E={counts['E']} M={counts['M']} H={counts['H']}"
    )
    if report.estimate is not None:
        summary += (
            f"\nEstimated {module} score: {report.estimate.score} "
            f"(confidence {report.estimate.confidence:.0%})"
        )
    console.print(Panel(summary, title="Simulation", border_style="cyan"))


@app.command()
def estimate(
    profile_path: Path = typer.Argument(..., exists=True, dir_okay=False, help="Learner profile JSON"),
    module: Optional[str] = typer.Option(None, "--module", "-m", help="Only this module"),
) -> None:
    """Estimate section scores from a stored learner profile."""
    raw = _load_json(profile_path)
    if not isinstance(raw, dict):
        console.print(f"[{STYLES['incorrect']}]Profile must be a JSON object[/]")
        raise typer.Exit(code=1)

    profile = LearnerProfile.from_dict(raw)
    modules = [_check_module(module)] if module else list(MODULES)

    table = Table(title="Estimated section scores")
    table.add_column("Module")
    table.add_column("Score", justify="right")
    table.add_column("Confidence", justify="right")
    table.add_column("Raw accuracy", justify="right")

    total = 0
    for name in modules:
        result = estimate_section_score(profile.skill_elos, name)
        total += result.score
        _estimate_row(table, name, result)
    console.print(table)
    if len(modules) > 1:
        console.print(f"[{STYLES['info']}]Total: {total}[/]")


@app.command()
def daily(
    date: Optional[str] = typer.Option(None, "--date", "-d", help="Challenge date (YYYY-MM-DD, default today UTC)"),
    count: int = typer.Option(5, "--count", "-c", min=1, help="Questions in the challenge"),
    module: str = typer.Option("math", "--module", "-m", help="english or math"),
    bank_path: Optional[Path] = typer.Option(None, "--bank", help="JSON list of questions (synthetic bank if omitted)"),
    learner: Optional[str] = typer.Option(None, "--learner", help="Per-learner challenge salt"),
) -> None:
    """Show the deterministic daily challenge."""
    _check_module(module)
    if bank_path is not None:
        raw = _load_json(bank_path)
        if not isinstance(raw, list):
            console.print(f"[{STYLES['incorrect']}]Question bank must be a JSON list[/]")
            raise typer.Exit(code=1)
        bank = [CandidateQuestion.from_dict(item) for item in raw if isinstance(item, dict)]
    else:
        bank = build_question_bank(module)

    date_seed = date or date_seed_for(now_ms())
    question_ids = QuestionRecommender().recommend_daily(
        bank, date_seed, count, module=module, learner_id=learner
    )
    by_id = {q.question_id: q for q in bank}

    table = Table(title=f"Daily challenge {date_seed}")
    table.add_column("#", justify="right")
    table.add_column("Question")
    table.add_column("Diff")
    table.add_column("Skill", overflow="fold")
    for number, question_id in enumerate(question_ids, start=1):
        question = by_id[question_id]
        table.add_row(str(number), question_id, style_difficulty(question.difficulty), question.skill)
    console.print(table)


# =============================================================================
# Entry Point
# =============================================================================


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
