"""
CLI entry point: dedup run | scan | health.

Every command loads config from --config (default config.yaml). Secrets come
from the environment (or a .env file). Scheduling is left to cron or any
other host trigger: each invocation is one self-contained run.
"""

import logging
import sys

import click
from dotenv import load_dotenv

from config import AppConfig, ConfigError, load_config

load_dotenv()

logger = logging.getLogger("dedup")


def _setup_logging() -> None:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(name)s %(levelname)s  %(message)s",
        stream=sys.stderr,
    )


def _load(ctx: click.Context) -> AppConfig:
    try:
        return load_config(ctx.obj["config_path"])
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc


def _make_client(cfg: AppConfig):
    """Build the IG client from config; credentials must be present."""
    if not cfg.broker.has_credentials:
        raise ConfigError("IG credentials missing. Set IG_API_KEY, IG_USERNAME and IG_PASSWORD.")
    from broker import get_ig_client

    return get_ig_client(
        cfg.broker.api_key,
        cfg.broker.username,
        cfg.broker.password,
        demo=cfg.broker.demo,
        timeout=cfg.broker.timeout_seconds,
    )


def _account_label(cfg: AppConfig) -> str:
    return "demo" if cfg.broker.demo else "live"


@click.group()
@click.option("--config", "config_path", default="config.yaml", help="Path to config file.")
@click.pass_context
def cli(ctx: click.Context, config_path: str) -> None:
    """position-dedup: close duplicate positions opened too close together on one instrument."""
    _setup_logging()
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path


# ---------- dedup run ----------


@cli.command()
@click.option("--dry-run", is_flag=True, default=False, help="Detect and report, but submit no closing orders.")
@click.pass_context
def run(ctx: click.Context, dry_run: bool) -> None:
    """One full cycle: login, market check, detect conflicts, close redundant positions."""
    cfg = _load(ctx)
    from broker import BrokerError
    from cli.cycle import run_dedup_cycle
    from cli.output import format_cycle_summary, format_scan
    from cli.structured_log import StructuredEventLogger
    from execution import ClosureBatchError
    from journal import JournalWriter

    events = StructuredEventLogger(
        _account_label(cfg),
        enabled=cfg.alerting.structured_logs,
        webhook_url=cfg.alerting.webhook_url,
    )
    journal = JournalWriter(cfg.journal.path, echo_stdout=cfg.journal.echo_stdout) if cfg.journal.enabled else None

    try:
        client = _make_client(cfg)
        result = run_dedup_cycle(cfg, client, events=events, journal=journal, dry_run=dry_run)
    except ConfigError as exc:
        events.error(message="Configuration error", detail=str(exc))
        raise click.ClickException(str(exc)) from exc
    except ClosureBatchError as exc:
        closed = exc.attempted - len(exc.failures)
        events.run_complete(closed=closed, failed=len(exc.failures))
        events.error(message="One or more closures failed", detail=str(exc))
        click.echo(f"Closed {closed} position(s), {len(exc.failures)} failed:", err=True)
        for failure in exc.failures:
            click.echo(f"  {failure.deal_id}: {failure.message}", err=True)
        raise SystemExit(1)
    except BrokerError as exc:
        events.error(message=type(exc).__name__, detail=str(exc))
        raise click.ClickException(f"Run aborted: {exc}") from exc

    if result.skipped:
        click.echo(f"Market status {result.market_status}; run skipped.")
        return

    click.echo(format_scan(result.pipeline))
    if dry_run:
        click.echo("\nDry run: no orders submitted.")
    else:
        click.echo("\n" + format_cycle_summary(result.closed))


# ---------- dedup scan ----------


@cli.command()
@click.pass_context
def scan(ctx: click.Context) -> None:
    """Fetch positions and closed trades, show the conflict report. Never closes anything."""
    cfg = _load(ctx)
    from broker import BrokerError
    from cli.output import format_scan
    from dedup_core.pipeline import run_pipeline

    try:
        client = _make_client(cfg)
        session = client.login()
        positions = client.open_positions(session)
        trades = client.closed_trades(session, cfg.dedup.closed_trade_lookback_days)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc
    except BrokerError as exc:
        raise click.ClickException(f"Scan aborted: {exc}") from exc

    result = run_pipeline(
        positions,
        trades,
        window=cfg.dedup.window,
        require_created_after=cfg.dedup.require_created_after,
        excluded_instruments=cfg.dedup.excluded_instruments,
    )
    click.echo(format_scan(result))


# ---------- dedup health ----------


@cli.command()
@click.pass_context
def health(ctx: click.Context) -> None:
    """Check system health: config, credentials, broker login.

    Exit code 0 = healthy, 1 = unhealthy.
    """
    checks: list[tuple[str, bool, str]] = []

    try:
        cfg = load_config(ctx.obj["config_path"])
        checks.append(("config", True, f"loaded ({_account_label(cfg)} account)"))
    except ConfigError as e:
        checks.append(("config", False, str(e)))
        _print_health(checks)
        raise SystemExit(1)

    if not cfg.broker.has_credentials:
        checks.append(("credentials", False, "IG_API_KEY / IG_USERNAME / IG_PASSWORD not set"))
        _print_health(checks)
        raise SystemExit(1)
    checks.append(("credentials", True, "present"))

    from broker import BrokerError

    try:
        client = _make_client(cfg)
        session = client.login()
        status = client.market_status(session, cfg.broker.market_check_epic)
        checks.append(("broker", True, f"login ok, {cfg.broker.market_check_epic} is {status}"))
    except (BrokerError, ValueError) as e:
        checks.append(("broker", False, str(e)))

    _print_health(checks)
    healthy = all(ok for _, ok, _ in checks)
    raise SystemExit(0 if healthy else 1)


def _print_health(checks: list[tuple[str, bool, str]]) -> None:
    for name, ok, detail in checks:
        status = "OK" if ok else "FAIL"
        click.echo(f"  [{status}] {name}: {detail}")
    healthy = all(ok for _, ok, _ in checks)
    click.echo(f"\nHealth: {'HEALTHY' if healthy else 'UNHEALTHY'}")


if __name__ == "__main__":
    cli()
