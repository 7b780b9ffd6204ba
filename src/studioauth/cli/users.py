"""User management CLI commands."""

import asyncio
from datetime import UTC, datetime

import typer
from rich.console import Console
from rich.table import Table
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from studioauth.database import get_session_context
from studioauth.models import User, UserRole, normalize_email
from studioauth.services.auth import hash_password
from studioauth.services.verification import get_user_by_email, get_verification_manager

console = Console()
app = typer.Typer(help="User management commands")

# (email, name, password, role)
DEMO_USERS = [
    ("admin@demo.io", "Admin Demo", "admin123", UserRole.ADMIN),
    ("user@demo.io", "User Demo", "user1234", UserRole.USER),
]


async def upsert_user(
    session: AsyncSession,
    email: str,
    password: str | None = None,
    name: str | None = None,
    role: UserRole = UserRole.USER,
    verified: bool = False,
) -> tuple[User, bool]:
    """Create a user, or update role/verification of an existing one.

    An existing password is never overwritten. Returns the user and whether it
    was created.
    """
    email = normalize_email(email)
    user = await get_user_by_email(session, email)
    created = user is None

    if user is None:
        user = User(
            email=email,
            name=name,
            password=hash_password(password) if password else None,
        )
        session.add(user)

    user.role = role
    if verified and user.email_verified is None:
        user.email_verified = datetime.now(UTC)

    await session.commit()
    return user, created


async def seed_demo_users(session: AsyncSession) -> list[User]:
    """Ensure the verified demo accounts exist."""
    users = []
    for email, name, password, role in DEMO_USERS:
        user, _ = await upsert_user(
            session, email, password=password, name=name, role=role, verified=True
        )
        users.append(user)
    return users


@app.command("list")
def list_users():
    """List all users."""

    async def _list():
        async with get_session_context() as session:
            stmt = select(User).order_by(User.email)
            result = await session.execute(stmt)
            users = result.scalars().all()

            table = Table(title="Users")
            table.add_column("ID", style="cyan")
            table.add_column("Email", style="green")
            table.add_column("Role", style="magenta")
            table.add_column("Verified")
            table.add_column("Created", style="dim")

            for user in users:
                verified = (
                    user.email_verified.strftime("%Y-%m-%d %H:%M")
                    if user.email_verified
                    else "[yellow]No[/yellow]"
                )
                created = user.created_at.strftime("%Y-%m-%d") if user.created_at else "-"
                table.add_row(str(user.id), user.email, user.role.value, verified, created)

            console.print(table)

    asyncio.run(_list())


@app.command("create")
def create_user(
    email: str = typer.Argument(..., help="User email"),
    password: str | None = typer.Option(None, "--password", "-p", help="Password (omit for OAuth-only)"),
    name: str | None = typer.Option(None, "--name", "-n", help="Display name"),
    admin: bool = typer.Option(False, "--admin", help="Make user an admin"),
    verified: bool = typer.Option(False, "--verified", help="Mark the email as already verified"),
):
    """Create a new user."""

    async def _create():
        async with get_session_context() as session:
            if await get_user_by_email(session, normalize_email(email)):
                console.print(f"[red]Error:[/red] User {email} already exists")
                raise typer.Exit(1)

            role = UserRole.ADMIN if admin else UserRole.USER
            user, _ = await upsert_user(
                session, email, password=password, name=name, role=role, verified=verified
            )
            name_str = f" ({name})" if name else ""
            console.print(
                f"[green]Created user:[/green] {user.email}{name_str} "
                f"(role={role.value}, verified={user.email_verified is not None})"
            )

    asyncio.run(_create())


@app.command("grant-admin")
def grant_admin(email: str = typer.Argument(..., help="User email")):
    """Grant admin privileges to a user."""

    async def _grant():
        async with get_session_context() as session:
            user = await get_user_by_email(session, normalize_email(email))

            if not user:
                console.print(f"[red]Error:[/red] User {email} not found")
                raise typer.Exit(1)

            if user.is_admin:
                console.print(f"[yellow]Warning:[/yellow] User {email} is already an admin")
                return

            user.role = UserRole.ADMIN
            await session.commit()
            console.print(f"[green]Granted admin to:[/green] {email}")

    asyncio.run(_grant())


@app.command("verify-url")
def verify_url(email: str = typer.Argument(..., help="User email")):
    """Issue a verification token and print its link without sending email."""

    async def _generate():
        async with get_session_context() as session:
            user = await get_user_by_email(session, normalize_email(email))

            if not user:
                console.print(f"[red]Error:[/red] User {email} not found")
                raise typer.Exit(1)

            if user.email_verified:
                console.print(f"[yellow]Warning:[/yellow] User {email} is already verified")
                return

            issued = await get_verification_manager().issue(session, user.email)
            console.print(f"[green]Verification URL:[/green] {issued.verify_url}")
            console.print(f"[dim]Expires: {issued.expires}[/dim]")

    asyncio.run(_generate())


@app.command("mark-verified")
def mark_verified(email: str = typer.Argument(..., help="User email")):
    """Mark a user's email as verified without a token."""

    async def _mark():
        async with get_session_context() as session:
            user = await get_user_by_email(session, normalize_email(email))

            if not user:
                console.print(f"[red]Error:[/red] User {email} not found")
                raise typer.Exit(1)

            if user.email_verified:
                console.print(f"[yellow]Warning:[/yellow] User {email} is already verified")
                return

            await upsert_user(session, user.email, role=user.role, verified=True)
            console.print(f"[green]Marked verified:[/green] {email}")

    asyncio.run(_mark())
