"""CLI commands using Typer."""

import typer

from studioauth.cli.db import app as db_app
from studioauth.cli.users import app as users_app

app = typer.Typer(name="studioauth", help="ManuMu Studio auth CLI")

# Register sub-apps
app.add_typer(db_app, name="db")
app.add_typer(users_app, name="users")


@app.command()
def version():
    """Show version information."""
    from studioauth import __version__

    typer.echo(f"studioauth v{__version__}")


@app.command()
def serve(
    host: str = typer.Option("0.0.0.0", help="Host to bind to"),
    port: int = typer.Option(8000, help="Port to bind to"),
    reload: bool = typer.Option(False, help="Enable auto-reload"),
):
    """Run the development server."""
    import uvicorn

    from studioauth.logging import get_uvicorn_log_config

    uvicorn.run(
        "studioauth.main:app",
        host=host,
        port=port,
        reload=reload,
        log_config=get_uvicorn_log_config(),
    )


@app.command()
def seed():
    """Create or update the verified demo accounts."""
    import asyncio

    from rich.console import Console

    from studioauth.cli.users import DEMO_USERS, seed_demo_users
    from studioauth.database import get_session_context

    console = Console()

    async def _seed():
        async with get_session_context() as session:
            await seed_demo_users(session)

    asyncio.run(_seed())
    for email, _, password, role in DEMO_USERS:
        console.print(f"[green]Seeded[/green] {email} / {password} ({role.value})")


if __name__ == "__main__":
    app()
