import sys
from pathlib import Path

import httpx
import typer

from cfgrelay.config import settings
from cfgrelay.logging import logger, get_run_id

app = typer.Typer(no_args_is_help=True)


@app.callback()
def main():
    """
    Config upload relay CLI.
    """
    pass


@app.command(name="serve")
def serve(
    host: str = typer.Option(None, help="Bind address (default: HOST setting)"),
    port: int = typer.Option(None, help="Port (default: PORT setting)"),
    reload: bool = typer.Option(False, help="Auto-reload on code changes"),
):
    """
    Run the relay HTTP service.
    """
    import uvicorn

    uvicorn.run(
        "cfgrelay.api.app:create_app",
        factory=True,
        host=host or settings.HOST,
        port=port or settings.PORT,
        reload=reload,
        log_level=settings.LOG_LEVEL.lower(),
    )


@app.command(name="doctor")
def doctor():
    """
    Check configuration and Storage Service reachability.
    """
    from cfgrelay.infra.webhook.transport import sanitize_webhook_for_logging

    logger.info("Running doctor check...")

    failures: list[str] = []
    passed = 0

    print("\n🩺 Config Relay Doctor\n")

    # ── Check 1: Environment ────────────────────────────────────────────────
    print("[Environment]")
    print(f"  Python: {sys.version.split()[0]}")
    print(f"  Run ID: {get_run_id()}")
    passed += 1

    # ── Check 2: Webhook ─────────────────────────────────────────────────────
    print("\n[Configuration]")
    if settings.webhook_url:
        print(f"  CLOUD_WEBHOOK:        ✅ {sanitize_webhook_for_logging(settings.webhook_url)}")
        passed += 1
    else:
        print("  CLOUD_WEBHOOK:        ❌ Missing")
        failures.append("CLOUD_WEBHOOK is not set; uploads will be rejected with 500")

    print(f"  CONFIGS_CHANNEL_ID:   {settings.CONFIGS_CHANNEL_ID}")
    print(f"  MAX_UPLOAD_BYTES:     {settings.MAX_UPLOAD_BYTES}")
    print(f"  QUEUE_PACING_SECS:    {settings.QUEUE_PACING_SECS}")

    # ── Check 3: Storage Service ────────────────────────────────────────────
    print("\n[Storage]")
    if not settings.STORAGE_ENABLED:
        print("  Storage:              ⚠️  Disabled (Discord-only relay)")
    else:
        url = f"{settings.STORAGE_API_URL.rstrip('/')}/health"
        try:
            resp = httpx.get(url, timeout=settings.STORAGE_HEALTH_TIMEOUT_SECS)
            ok = resp.is_success
        except httpx.HTTPError as e:
            ok = False
            logger.debug(f"Storage probe failed: {e}")
        if ok:
            print(f"  {settings.STORAGE_API_URL:<22}✅ Healthy")
            passed += 1
        elif settings.STORAGE_REQUIRED:
            print(f"  {settings.STORAGE_API_URL:<22}❌ Unreachable")
            failures.append("Storage is required (STORAGE_REQUIRED) but unreachable")
        else:
            print(f"  {settings.STORAGE_API_URL:<22}⚠️  Unreachable (uploads fall back to Discord only)")

    # ── Summary ──────────────────────────────────────────────────────────────
    total = passed + len(failures)
    print(f"\n{'─' * 50}")
    if failures:
        print(f"Result: {passed}/{total} checks passed\n")
        for msg in failures:
            print(f"  ❌ {msg}")
        print()
        raise typer.Exit(code=1)
    else:
        print(f"Result: {passed}/{total} checks passed, all good ✅")
        print()


@app.command(name="push")
def push(
    path: Path = typer.Argument(..., exists=True, dir_okay=False, help="Config file to upload"),
    url: str = typer.Option(
        f"http://127.0.0.1:{settings.PORT}", help="Base URL of a running relay",
    ),
    content: str = typer.Option("", help="Message text"),
    embed_title: str = typer.Option(None, help="Title of a single embed"),
    embed_description: str = typer.Option("", help="Description of the embed"),
    embed_color: int = typer.Option(0xE8BBF9, help="Embed color as an integer"),
):
    """
    Queue a config file on a running relay.
    """
    import json

    data: dict[str, str] = {}
    if content:
        data["content"] = content
    if embed_title:
        data["embeds"] = json.dumps([{
            "title": embed_title,
            "description": embed_description,
            "color": embed_color,
        }])

    try:
        resp = httpx.post(
            f"{url.rstrip('/')}/api/service/upload",
            data=data,
            files={"file": (path.name, path.read_bytes(), "text/plain")},
            timeout=30.0,
        )
    except httpx.HTTPError as e:
        logger.error(f"Push failed: {e}")
        print(f"❌ Failed: {e}")
        raise typer.Exit(code=1)

    try:
        body = resp.json()
    except ValueError:
        body = {}
    if resp.is_success and body.get("success"):
        print(f"✅ Config queued ({body.get('queueTime')})")
    else:
        print(f"❌ Upload rejected [{resp.status_code}]: {body.get('error', resp.text)}")
        raise typer.Exit(code=1)


if __name__ == "__main__":
    app()
