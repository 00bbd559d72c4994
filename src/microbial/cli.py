"""Command-line interface for Microbial."""

from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.table import Table
from sqlalchemy import func, select

from microbial.auth.local import LocalAuthService
from microbial.logging_config import configure_logging, get_logger
from microbial.storage.db import db
from microbial.storage.models import Contact
from microbial.storage.repo import CampaignRepository

# Configure logging
configure_logging()
logger = get_logger(__name__)

app = typer.Typer(
    name="microbial",
    help="Microbial - referral campaign tracking backend",
    no_args_is_help=True,
)

# Rich console for pretty output
console = Console()


@app.command("init")
def init_database() -> None:
    """Initialize the database and create tables."""
    console.print("[bold blue]Initializing database...[/bold blue]")
    db.create_tables()
    console.print("[bold green]✓[/bold green] Database initialized successfully")


@app.command("create-user")
def create_user(
    email: Annotated[str, typer.Option("--email", "-e", help="User email")],
    password: Annotated[str, typer.Option("--password", "-p", prompt=True, hide_input=True, help="Password")],
    name: Annotated[Optional[str], typer.Option("--name", "-n", help="Display name")] = None,
) -> None:
    """Provision a user who can manage campaigns."""
    try:
        user = LocalAuthService().create_user(email=email, password=password, name=name)
    except ValueError as e:
        console.print(f"[bold red]✗[/bold red] {e}")
        raise typer.Exit(code=1)

    console.print(f"[bold green]✓[/bold green] User created with ID: [bold]{user.id}[/bold]")


@app.command("campaigns")
def list_campaigns() -> None:
    """List all campaigns with their contact counts."""
    with db.session() as session:
        campaigns = CampaignRepository(session).find()

        if not campaigns:
            console.print("[yellow]No campaigns found[/yellow]")
            return

        counts = dict(
            session.execute(
                select(Contact.campaign_id, func.count(Contact.id)).group_by(Contact.campaign_id)
            ).all()
        )

        table = Table(title="Campaigns")
        table.add_column("ID", style="cyan")
        table.add_column("Name", style="green")
        table.add_column("Public Code")
        table.add_column("Nudges", justify="right")
        table.add_column("Contacts", justify="right")
        table.add_column("Created At")

        for campaign in campaigns:
            table.add_row(
                campaign.id,
                campaign.name,
                campaign.public_code,
                str(campaign.nudge_threshold),
                str(counts.get(campaign.id, 0)),
                campaign.created_at.strftime("%Y-%m-%d %H:%M"),
            )

        console.print(table)


@app.command("serve")
def serve(
    host: Annotated[str, typer.Option("--host", help="Bind address")] = "127.0.0.1",
    port: Annotated[int, typer.Option("--port", help="Port")] = 5000,
    reload: Annotated[bool, typer.Option("--reload", help="Reload on code changes")] = False,
) -> None:
    """Run the API server."""
    import uvicorn

    console.print(f"[bold blue]Serving Microbial API on {host}:{port}[/bold blue]")
    uvicorn.run("microbial.api.main:app", host=host, port=port, reload=reload)


if __name__ == "__main__":
    app()
