import typer
import logging
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table
from typing import Optional
from datetime import datetime, timezone

from progress_engine.config import settings
from progress_engine.database import SessionLocal, init_db
from progress_engine.crud import (
    create_user, get_user,
    create_node, get_node, get_nodes, add_item, get_item, review_item, node_to_schema,
    get_rank_profile, record_match, get_leaderboard,
    get_progress, add_xp, check_in, update_achievement_progress
)
from progress_engine.aggregates import classify_node, node_mastery, global_stats
from progress_engine.exceptions import ProgressEngineError
from progress_engine.progression import CHECK_IN_XP, ProgressionEngine
from progress_engine.rank import RankEngine, leaderboard_score
from progress_engine.schemas import ItemKind, MatchResult, NodeStatus
from progress_engine.sm2 import SM2Algorithm

app = typer.Typer(help="Progress CLI - spaced repetition reviews, XP and ranked ladder")
console = Console()

STATUS_STYLES = {
    NodeStatus.DUE: "yellow",
    NodeStatus.WEAK: "red",
    NodeStatus.FUTURE: "green",
    NodeStatus.LEARNING: "cyan",
}

def resolve_now(at: Optional[str]) -> datetime:
    """Parse --at (ISO-8601) or fall back to the current UTC time"""
    if at:
        try:
            return datetime.fromisoformat(at)
        except ValueError:
            raise typer.BadParameter(f"Not an ISO-8601 date: {at!r}", param_hint="'--at'")
    return datetime.now(timezone.utc)

@app.callback()
def main(verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging")):
    """Configure logging for every command"""
    logging.basicConfig(
        level=logging.DEBUG if verbose else settings.log_level.upper(),
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )

@app.command()
def init():
    """Initialize database tables"""
    init_db()
    console.print("[green]✓[/green] Database initialized successfully!")

@app.command(name="create-user")
def create_user_command(name: str = typer.Option(..., prompt="Learner name")):
    """Create a new learner account"""
    db = SessionLocal()
    try:
        user = create_user(db, name)
        console.print(f"[green]✓[/green] User created! User ID: {user.id}")
    finally:
        db.close()

@app.command(name="add-node")
def add_node_command(
    user_id: int = typer.Option(..., prompt="User ID"),
    title: str = typer.Option(..., prompt="Node title")
):
    """Create a knowledge node for a learner"""
    db = SessionLocal()
    try:
        if not get_user(db, user_id):
            console.print(f"[red]✗[/red] User ID {user_id} not found")
            return
        node = create_node(db, user_id, title)
        console.print(f"[green]✓[/green] Node created! Node ID: {node.id}")
    finally:
        db.close()

@app.command(name="add-item")
def add_item_command(
    node_id: int = typer.Option(..., prompt="Node ID"),
    kind: ItemKind = typer.Option(ItemKind.FLASHCARD, help="Item kind"),
    front: str = typer.Option(..., prompt="Prompt / question"),
    back: str = typer.Option("", help="Answer"),
    at: Optional[str] = typer.Option(None, help="Creation time (ISO-8601), default: now")
):
    """Add a learning item to a node; it is due immediately"""
    db = SessionLocal()
    try:
        if not get_node(db, node_id):
            console.print(f"[red]✗[/red] Node ID {node_id} not found")
            return
        item = add_item(db, node_id, kind, {"front": front, "back": back}, resolve_now(at))
        console.print(f"[green]✓[/green] Item added! Item ID: {item.id} ({item.kind})")
    finally:
        db.close()

@app.command()
def preview(
    item_id: int = typer.Option(..., prompt="Item ID"),
    at: Optional[str] = typer.Option(None, help="Review time (ISO-8601), default: now")
):
    """Show the next interval each quality rating would give, without saving"""
    db = SessionLocal()
    try:
        item = get_item(db, item_id)
        if not item:
            console.print(f"[red]✗[/red] Item ID {item_id} not found")
            return

        choices = SM2Algorithm.preview_choices(item.record, resolve_now(at))

        table = Table(show_header=True, header_style="bold magenta")
        table.add_column("Quality", style="cyan", justify="right")
        table.add_column("Next review", style="green")
        for quality, label in choices.items():
            table.add_row(str(quality), label)
        console.print(table)
    finally:
        db.close()

@app.command()
def review(
    item_id: int = typer.Option(..., prompt="Item ID"),
    quality: int = typer.Option(..., prompt="Quality rating (0-5)"),
    at: Optional[str] = typer.Option(None, help="Review time (ISO-8601), default: now")
):
    """Record a review of an item and reschedule it"""
    db = SessionLocal()
    try:
        item = review_item(db, item_id, quality, resolve_now(at))
        if not item:
            console.print(f"[red]✗[/red] Item ID {item_id} not found")
            return

        console.print(f"[green]✓[/green] Review recorded!")
        console.print(f"  Quality: {quality}/5")
        console.print(f"  Next review: {item.next_review_date:%Y-%m-%d %H:%M} ({SM2Algorithm.format_interval(item.interval)})")
        console.print(f"  Repetitions: {item.repetitions}")
        console.print(f"  Easiness: {item.ease_factor:.2f}")
    except ProgressEngineError as e:
        console.print(f"[red]✗[/red] Error: {str(e)}")
    finally:
        db.close()

@app.command()
def status(
    user_id: int,
    at: Optional[str] = typer.Option(None, help="Reference time (ISO-8601), default: now")
):
    """Show status and mastery of every node"""
    db = SessionLocal()
    try:
        user = get_user(db, user_id)
        if not user:
            console.print(f"[red]✗[/red] User ID {user_id} not found")
            return

        now = resolve_now(at)
        nodes = [node_to_schema(node) for node in get_nodes(db, user_id)]
        if not nodes:
            console.print(f"[yellow]No nodes found for user {user_id}[/yellow]")
            return

        console.print(f"\n[bold]Knowledge Nodes - {user.name}[/bold]\n")

        table = Table(show_header=True, header_style="bold magenta")
        table.add_column("ID", style="dim", justify="right")
        table.add_column("Node", style="cyan")
        table.add_column("Items", justify="right")
        table.add_column("Status")
        table.add_column("Mastery", style="blue", justify="right")

        for node in nodes:
            node_status = classify_node(node, now)
            style = STATUS_STYLES[node_status]
            table.add_row(
                str(node.id),
                node.title[:50],
                str(len(node.items)),
                f"[{style}]{node_status.value}[/{style}]",
                f"{node_mastery(node, now)}%"
            )

        console.print(table)
    finally:
        db.close()

@app.command()
def stats(
    user_id: int,
    at: Optional[str] = typer.Option(None, help="Reference time (ISO-8601), default: now")
):
    """Count due, weak and new items across all nodes"""
    db = SessionLocal()
    try:
        if not get_user(db, user_id):
            console.print(f"[red]✗[/red] User ID {user_id} not found")
            return

        nodes = [node_to_schema(node) for node in get_nodes(db, user_id)]
        totals = global_stats(nodes, resolve_now(at))

        console.print(f"[cyan]Statistics:[/cyan]")
        console.print(f"  Due for review: {totals.due}")
        console.print(f"  Weak: {totals.weak}")
        console.print(f"  New: {totals.new}")
    finally:
        db.close()

@app.command()
def match(
    user_id: int = typer.Option(..., prompt="User ID"),
    lp_delta: int = typer.Option(..., prompt="LP change"),
    result: Optional[MatchResult] = typer.Option(None, help="Victory or Defeat, default: from the sign of LP change"),
    at: Optional[str] = typer.Option(None, help="Match time (ISO-8601), default: now")
):
    """Record a ranked match result"""
    db = SessionLocal()
    try:
        if result is None:
            result = MatchResult.VICTORY if lp_delta > 0 else MatchResult.DEFEAT

        update = record_match(db, user_id, lp_delta, result, resolve_now(at))
        rank_name = RankEngine.display_name(update.profile)

        if update.promoted:
            console.print(f"[bold yellow]▲ Promoted to {rank_name}![/bold yellow]")
        elif update.demoted:
            console.print(f"[bold red]▼ Demoted to {rank_name}[/bold red]")
        else:
            console.print(f"[green]✓[/green] {result.value}! {lp_delta:+d} LP")
        console.print(f"  Rank: {rank_name} - {update.profile.lp} LP")
    except ProgressEngineError as e:
        console.print(f"[red]✗[/red] Error: {str(e)}")
    finally:
        db.close()

@app.command()
def rank(user_id: int):
    """View a learner's rank profile and recent matches"""
    db = SessionLocal()
    try:
        user = get_user(db, user_id)
        if not user:
            console.print(f"[red]✗[/red] User ID {user_id} not found")
            return

        profile = get_rank_profile(db, user_id)

        console.print(f"\n[bold]Rank Profile - {user.name}[/bold]")
        console.print(f"  Rank: {RankEngine.display_name(profile)} - {profile.lp} LP")
        console.print(f"  Score: {leaderboard_score(profile)}")
        console.print(f"  Record: {profile.total_wins}W / {profile.total_losses}L")
        console.print(
            f"  Season points: {profile.season_points.daily} today, "
            f"{profile.season_points.weekly} this week, {profile.season_points.monthly} this month"
        )

        if profile.match_history:
            console.print(f"\n[cyan]Recent Matches:[/cyan]")
            table = Table(show_header=True, header_style="bold magenta")
            table.add_column("Time", style="dim")
            table.add_column("Result")
            table.add_column("LP", justify="right")

            for entry in profile.match_history[:10]:
                style = "green" if entry.result == MatchResult.VICTORY else "red"
                table.add_row(
                    entry.timestamp.strftime("%Y-%m-%d %H:%M"),
                    f"[{style}]{entry.result.value}[/{style}]",
                    f"{entry.lp_change:+d}"
                )
            console.print(table)
    finally:
        db.close()

@app.command()
def leaderboard(limit: Optional[int] = typer.Option(None, help="Number of rows, default from settings")):
    """Show the ranked leaderboard"""
    db = SessionLocal()
    try:
        rows = get_leaderboard(db, limit)
        if not rows:
            console.print("[yellow]No players yet[/yellow]")
            return

        table = Table(show_header=True, header_style="bold magenta")
        table.add_column("#", style="cyan", justify="right")
        table.add_column("Name", style="green")
        table.add_column("Rank", style="yellow")
        table.add_column("LP", justify="right")
        table.add_column("Score", style="blue", justify="right")

        for row in rows:
            table.add_row(
                str(row.rank),
                row.name,
                f"{row.tier.value} {row.division.value}",
                str(row.lp),
                str(row.score)
            )
        console.print(table)
    finally:
        db.close()

@app.command()
def xp(
    user_id: int = typer.Option(..., prompt="User ID"),
    amount: int = typer.Option(..., prompt="XP amount"),
    reason: str = typer.Option("Manual award", help="Reason stored in the XP history"),
    at: Optional[str] = typer.Option(None, help="Award time (ISO-8601), default: now")
):
    """Award XP to a learner"""
    db = SessionLocal()
    try:
        update = add_xp(db, user_id, amount, reason, resolve_now(at))
        console.print(f"[green]✓[/green] +{amount} XP ({reason})")
        if update.leveled_up:
            console.print(f"[bold yellow]▲ Level up! Now level {update.progress.level}[/bold yellow]")
        console.print(f"  Total: {update.progress.xp} XP - level {update.progress.level}")
    except ProgressEngineError as e:
        console.print(f"[red]✗[/red] Error: {str(e)}")
    finally:
        db.close()

@app.command(name="check-in")
def check_in_command(
    user_id: int,
    at: Optional[str] = typer.Option(None, help="Check-in time (ISO-8601), default: now")
):
    """Daily check-in to keep the streak going"""
    db = SessionLocal()
    try:
        update = check_in(db, user_id, resolve_now(at))
        if not update.checked_in:
            console.print(f"[yellow]Already checked in today (streak: {update.progress.streak})[/yellow]")
            return
        console.print(f"[green]✓[/green] Checked in! Day {update.progress.streak} streak, +{CHECK_IN_XP} XP")
        if update.leveled_up:
            console.print(f"[bold yellow]▲ Level up! Now level {update.progress.level}[/bold yellow]")
    except ProgressEngineError as e:
        console.print(f"[red]✗[/red] Error: {str(e)}")
    finally:
        db.close()

@app.command()
def achievement(
    user_id: int = typer.Option(..., prompt="User ID"),
    achievement_id: str = typer.Option(..., prompt="Achievement ID"),
    increment: int = typer.Option(1, help="Progress to add"),
    at: Optional[str] = typer.Option(None, help="Update time (ISO-8601), default: now")
):
    """Advance progress on an achievement"""
    db = SessionLocal()
    try:
        update = update_achievement_progress(db, user_id, achievement_id, increment, resolve_now(at))
        current = update.progress.achievement(achievement_id)
        if current is None:
            console.print(f"[red]✗[/red] Achievement {achievement_id} not found")
            return
        if update.unlocked:
            console.print(f"[bold yellow]★ Achievement unlocked: {current.title}! +{current.reward_xp} XP[/bold yellow]")
        else:
            console.print(f"[green]✓[/green] {current.title}: {current.progress}/{current.goal}")
    except ProgressEngineError as e:
        console.print(f"[red]✗[/red] Error: {str(e)}")
    finally:
        db.close()

@app.command()
def progress(
    user_id: int,
    at: Optional[str] = typer.Option(None, help="Reference time (ISO-8601), default: now")
):
    """View a learner's level, streak and achievements"""
    db = SessionLocal()
    try:
        user = get_user(db, user_id)
        if not user:
            console.print(f"[red]✗[/red] User ID {user_id} not found")
            return

        current = get_progress(db, user_id)
        checked_in = ProgressionEngine.is_checked_in(current, resolve_now(at))

        console.print(f"\n[bold]Progress - {user.name}[/bold]")
        console.print(f"  Level: {current.level} ({current.xp} XP)")
        console.print(f"  Streak: {current.streak} days" + (" (checked in today)" if checked_in else ""))

        table = Table(show_header=True, header_style="bold magenta")
        table.add_column("ID", style="dim")
        table.add_column("Achievement", style="cyan")
        table.add_column("Progress", justify="right")
        table.add_column("XP", justify="right")

        for item in current.achievements:
            state = "[green]unlocked[/green]" if item.unlocked else f"{item.progress}/{item.goal}"
            table.add_row(item.id, item.title, state, str(item.reward_xp))
        console.print(table)
    finally:
        db.close()

if __name__ == "__main__":
    app()
