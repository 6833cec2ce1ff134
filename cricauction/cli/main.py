"""
CricAuction CLI - Command Line Interface for the auction core

Main entry point for all CLI commands.
"""

import json
import logging
import click
from pathlib import Path
from typing import Any, Dict

from cricauction.core.config import load_config
from cricauction.core.errors import AuctionError
from cricauction.utils.logger import setup_logging, get_logger

logger = get_logger("cli")


def open_service(data_dir: Path, in_memory: bool = False):
    """Build a service over the SQLite store in data_dir (or in memory)."""
    from cricauction.core.service import AuctionService
    from cricauction.core.storage import InMemoryStore, StorageManager

    cfg = load_config()
    cfg.data_dir = data_dir
    store = InMemoryStore() if in_memory else StorageManager(data_dir, cfg.db_name)
    service = AuctionService(store=store, service_config=cfg)
    loaded = service.load_from_store()
    logger.debug(f"Opened {loaded} stored auctions from {data_dir}")
    return service


@click.group()
@click.option("--debug", is_flag=True, help="Enable debug logging")
@click.option("--log-file", is_flag=True, help="Also write cricauction.log to the log directory")
@click.option("--data-dir", default=None, help="Data directory (default: CRICAUCTION_DATA_DIR or ./data)")
@click.version_option(version="0.1.0")
@click.pass_context
def cli(ctx, debug, log_file, data_dir):
    """CricAuction - live cricket player auctions"""
    cfg = load_config()
    level = logging.DEBUG if debug else cfg.log_level
    setup_logging(level=level, log_dir=cfg.log_dir if log_file else None)

    ctx.ensure_object(dict)
    ctx.obj["data_dir"] = Path(data_dir).expanduser() if data_dir else cfg.data_dir
    ctx.obj["data_dir"].mkdir(parents=True, exist_ok=True)


# =============================================================================
# Simulate Command
# =============================================================================


def _run_action(service, auction_id: str, step: Dict[str, Any], auctioneer, teams_by_name) -> str:
    """Apply one scripted step. Returns a one-line description."""
    from cricauction.core.policy import Actor, Role

    action = step.get("action")

    if action == "start":
        service.start_auction(auction_id, auctioneer)
        return "auction started"

    if action == "bid":
        team = teams_by_name[step["team"]]
        captain = Actor(team.captain_id, Role.CAPTAIN, display_name=f"{team.name} captain")
        status = service.get_status(auction_id)
        player_id = step.get("player_id") or status["current_player"]
        bid = service.place_bid(auction_id, player_id, team.team_id, captain, step["amount"])
        return f"{team.name} bids {bid.amount}"

    if action == "tick":
        count = int(step.get("count", 1))
        for _ in range(count):
            service.tick(auction_id)
        return f"{count} seconds elapsed"

    if action == "sell":
        service.resolve_current_round(auction_id, auctioneer, "sell")
        return "sold to leading bid"

    if action == "unsold":
        service.resolve_current_round(auction_id, auctioneer, "unsold")
        return "marked unsold"

    if action == "next":
        service.advance_player(auction_id, auctioneer)
        return "advanced to next player"

    if action == "pause":
        service.pause_auction(auction_id, auctioneer)
        return "paused"

    if action == "resume":
        service.resume_auction(auction_id, auctioneer)
        return "resumed"

    if action == "cancel":
        service.cancel_auction(auction_id, auctioneer)
        return "cancelled"

    raise click.BadParameter(f"Unknown scenario action: {action}")


@cli.command("simulate")
@click.argument("scenario", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--memory", is_flag=True, help="Use an in-memory store instead of SQLite")
@click.pass_context
def simulate(ctx, scenario, memory):
    """Run a scripted auction from a JSON scenario file"""
    from cricauction.core.policy import Actor, Role
    from cricauction.core.registry import TournamentSettings
    from cricauction.core.schemas import PlayerInput, TeamInput, TournamentInput, parse_model

    data = json.loads(scenario.read_text())
    service = open_service(ctx.obj["data_dir"], in_memory=memory)
    auctioneer = Actor("cli-auctioneer", Role.ADMIN, display_name="Auctioneer")

    try:
        t_input = parse_model(TournamentInput, data.get("tournament", {}))
        tournament = service.register_tournament(
            auctioneer,
            t_input.name,
            t_input.format,
            TournamentSettings(
                total_tokens=t_input.total_tokens,
                max_players_per_team=t_input.max_players_per_team,
                min_players_per_team=t_input.min_players_per_team,
            ),
        )

        teams_by_name = {}
        for raw in data.get("teams", []):
            t = parse_model(TeamInput, raw)
            team = service.register_team(
                auctioneer, tournament.tournament_id, t.name, t.captain_id,
                manager_id=t.manager_id, tokens=t.tokens, max_players=t.max_players,
            )
            teams_by_name[team.name] = team

        player_ids = []
        for raw in data.get("players", []):
            p = parse_model(PlayerInput, raw)
            player = service.register_player(p.name, p.roles, p.base_price, p.player_group)
            player_ids.append(player.player_id)

        auction_data = data.get("auction", {})
        snapshot = service.create_auction(
            auctioneer,
            tournament.tournament_id,
            auction_data.get("name", f"{tournament.name} Auction"),
            player_ids=player_ids,
            settings=auction_data.get("settings"),
        )
    except AuctionError as e:
        click.echo(f"❌ Invalid scenario: {e.message}")
        if getattr(e, "errors", None):
            for field_name, messages in e.errors.items():
                click.echo(f"   {field_name}: {'; '.join(messages)}")
        raise SystemExit(1)

    auction_id = snapshot["auction_id"]
    click.echo("=" * 60)
    click.echo(f"  {snapshot['name']} ({len(player_ids)} players, {len(teams_by_name)} teams)")
    click.echo("=" * 60)

    for index, step in enumerate(data.get("actions", []), start=1):
        try:
            click.echo(f"  {index:>3}. ✓ {_run_action(service, auction_id, step, auctioneer, teams_by_name)}")
        except AuctionError as e:
            click.echo(f"  {index:>3}. ✗ {step.get('action')}: {e.code} - {e.message}")

    _print_status(service.get_status(auction_id))
    click.echo()
    _print_teams(service.team_statistics(tournament.tournament_id))
    click.echo()
    click.echo(f"Auction ID: {auction_id}")
    click.echo(f"Tournament ID: {tournament.tournament_id}")


# =============================================================================
# Inspection Commands
# =============================================================================


def _print_status(status: Dict[str, Any]) -> None:
    stats = status["statistics"]
    click.echo()
    click.echo(f"📊 {status['name']} - {status['status']}")
    click.echo("-" * 40)
    click.echo(f"  Round: {status['round_number']}")
    click.echo(f"  Current player: {status['current_player'] or '-'}")
    click.echo(f"  Remaining: {status['remaining_count']}")
    click.echo(f"  Sold: {stats['total_sold']}  Unsold: {status['unsold_count']}  Skipped: {status['skipped_count']}")
    click.echo(f"  Revenue: {stats['total_revenue']}  Avg price: {stats['avg_sale_price']:.1f}")


def _print_teams(teams) -> None:
    click.echo("🏏 Teams")
    click.echo("-" * 40)
    for team in teams:
        click.echo(
            f"  {team['name']:<20} players={team['player_count']:<3} "
            f"spent={team['total_spent']:<6} available={team['available_budget']}"
        )


@cli.command("status")
@click.argument("auction_id")
@click.option("--json", "as_json", is_flag=True, help="Print the raw snapshot")
@click.pass_context
def status(ctx, auction_id, as_json):
    """Show a stored auction's state"""
    service = open_service(ctx.obj["data_dir"])
    try:
        snapshot = service.get_status(auction_id)
    except AuctionError as e:
        click.echo(f"❌ {e.message}")
        raise SystemExit(1)

    if as_json:
        click.echo(json.dumps(snapshot, indent=2, sort_keys=True))
    else:
        _print_status(snapshot)


@cli.command("teams")
@click.argument("tournament_id")
@click.pass_context
def teams(ctx, tournament_id):
    """List team budgets for a tournament"""
    service = open_service(ctx.obj["data_dir"])
    stats = service.team_statistics(tournament_id)
    if not stats:
        click.echo(f"No teams found for tournament {tournament_id}")
        return
    _print_teams(stats)


if __name__ == "__main__":
    cli()
