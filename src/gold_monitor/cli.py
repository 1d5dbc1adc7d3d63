from __future__ import annotations

import asyncio
import logging
from datetime import UTC, datetime, timedelta
from pathlib import Path

import typer

from gold_monitor.config.monitor import ConfigForm, load_monitor_file
from gold_monitor.engine.runtime import build_runtime, form_from_settings
from gold_monitor.logging_utils import configure_logging
from gold_monitor.notifications import build_notifier
from gold_monitor.settings import Settings
from gold_monitor.sources.jijinhao import JijinhaoQuoteClient
from gold_monitor.stats import compute_stats
from gold_monitor.storage.history import HistoryStore, HistoryStoreError

app = typer.Typer(no_args_is_help=True, add_completion=False)
logger = logging.getLogger("gold_monitor")


def _load_form(config: Path | None, settings: Settings) -> ConfigForm:
    if config is None:
        return form_from_settings(settings)
    if not config.exists():
        raise typer.BadParameter(f"config file not found: {config}")
    try:
        return load_monitor_file(config).to_form()
    except Exception as e:
        raise typer.BadParameter(f"invalid config: {e}") from e


@app.command()
def config_init(
    path: Path = typer.Option(Path(".env"), help="Path to write a starter .env file."),
    overwrite: bool = typer.Option(False, "--overwrite", help="Overwrite if exists."),
) -> None:
    """
    Create a starter `.env` file (copy from `.env.example`).
    """
    example_path = Path(".env.example")
    if not example_path.exists():
        raise typer.Exit(code=2)

    if path.exists() and not overwrite:
        raise typer.Exit(code=1)

    path.write_text(example_path.read_text(encoding="utf-8"), encoding="utf-8")
    typer.echo(f"Wrote {path}")


@app.command()
def show_config() -> None:
    settings = Settings()
    configure_logging(settings.log_level)
    redacted = settings.model_dump()
    redacted["notify_key"] = "***" if redacted["notify_key"] else ""
    redacted["telegram_bot_token"] = "***" if redacted["telegram_bot_token"] else ""
    logger.info("loaded_config", extra={"channel": settings.notify_channel})
    typer.echo(redacted)


@app.command()
def health() -> None:
    """
    Fetch the quote once and print the current price.
    """
    settings = Settings()
    configure_logging(settings.log_level)

    async def _run() -> None:
        client = JijinhaoQuoteClient(
            url=settings.quote_url,
            product=settings.quote_product,
            timeout_seconds=settings.quote_timeout_seconds,
        )
        try:
            price = await client.fetch_price()
            typer.echo({"ok": True, "product": client.product, "price": price})
        finally:
            await client.aclose()

    asyncio.run(_run())


@app.command()
def alerts_test(
    message: str = typer.Option("gold-monitor test alert", help="Message to send."),
) -> None:
    settings = Settings()
    configure_logging(settings.log_level)

    if not settings.notifications_configured():
        typer.echo({"ok": False, "channel": settings.notify_channel, "enabled": False})
        raise typer.Exit(code=1)

    async def _run() -> None:
        notifier = build_notifier(settings)
        try:
            await notifier.send(key=settings.notify_key, title="测试提醒", body=message)
            typer.echo({"ok": True, "channel": notifier.channel, "enabled": True})
        finally:
            await notifier.aclose()

    asyncio.run(_run())


@app.command()
def run(
    config: Path | None = typer.Option(
        None,
        help="Monitor config file (TOML), e.g. configs/monitor.toml. Defaults to .env values.",
    ),
) -> None:
    """
    Run the monitor headless: start immediately, log to stdout, stop with Ctrl-C.
    """
    settings = Settings()
    configure_logging(settings.log_level)
    form = _load_form(config, settings)

    async def _run() -> None:
        try:
            runtime = await build_runtime(settings, form=form)
        except HistoryStoreError as e:
            logger.error("history_store_unavailable", exc_info=True)
            typer.echo(f"history store unavailable: {e}", err=True)
            raise typer.Exit(code=1) from e

        try:
            ok, message = runtime.loop.start()
            if not ok:
                raise typer.BadParameter(message)
            await runtime.loop.run_forever()
        finally:
            await runtime.aclose()

    try:
        asyncio.run(_run())
    except KeyboardInterrupt:
        logger.info("monitor_stopped")


@app.command()
def serve(
    host: str | None = typer.Option(None, help="Override: bind host."),
    port: int | None = typer.Option(None, help="Override: bind port."),
) -> None:
    """
    Serve the HTTP control panel (start/pause, live config, log and stats).
    """
    import uvicorn

    from gold_monitor.web import create_app

    settings = Settings()
    configure_logging(settings.log_level)
    uvicorn.run(
        create_app(settings),
        host=host or settings.http_host,
        port=port or settings.http_port,
        log_config=None,
    )


@app.command()
def history(
    window_minutes: int = typer.Option(60, help="Trailing window in minutes."),
) -> None:
    """
    Print windowed stats computed from the persisted history.
    """
    if window_minutes <= 0:
        raise typer.BadParameter("window_minutes must be > 0")
    settings = Settings()
    configure_logging(settings.log_level)

    async def _run() -> None:
        store = HistoryStore(database_url=settings.database_url)
        try:
            await store.open()
            now = datetime.now(UTC)
            samples = await store.query_recent(since=now - timedelta(minutes=window_minutes))
        except HistoryStoreError as e:
            typer.echo(f"history store unavailable: {e}", err=True)
            raise typer.Exit(code=1) from e
        finally:
            await store.aclose()

        stats = compute_stats(samples, window_minutes, now)
        typer.echo(
            {
                "window_minutes": window_minutes,
                "count": stats.count,
                "max": stats.maximum,
                "min": stats.minimum,
                "mean": round(stats.mean, 4),
                "median": stats.median,
            }
        )

    asyncio.run(_run())
