"""Flask CLI commands for SharePool."""

from __future__ import annotations

import click


def init_app(app) -> None:
    """Register CLI commands on the Flask app."""

    # Imported lazily so `import sharepool.cli` stays free of app wiring.
    from .extensions import get_context
    from .services import auth

    @app.cli.command("sharepool-init")
    def sharepool_init() -> None:
        """Create the schema and seed the share pool (idempotent)."""

        ctx = get_context()
        pool = ctx.pool_repo.snapshot()
        click.echo(
            f"Pool ready: {pool.available_units}/{pool.total_units} units at ${pool.unit_price:.2f}"
        )

    @app.cli.command("sharepool-create-user")
    @click.argument("email")
    @click.option("--password", prompt=True, hide_input=True, confirmation_prompt=True)
    @click.option("--admin", "is_admin", is_flag=True, default=False, help="Grant the admin flag")
    def sharepool_create_user(email: str, password: str, is_admin: bool) -> None:
        """Register a user, optionally as an admin."""

        try:
            user = auth.create_user(
                email=email,
                password=password,
                is_admin=is_admin,
                session_factory=get_context().session_factory,
            )
        except ValueError as exc:
            raise click.ClickException(str(exc)) from exc
        role = "admin" if user.is_admin else "user"
        click.echo(f"Created {role} {user.email} (id={user.id})")

    @app.cli.command("sharepool-status")
    def sharepool_status() -> None:
        """Print pool availability and price."""

        status = get_context().trading.get_platform_status()
        click.echo(f"Available: {status.available_units}/{status.total_units}")
        click.echo(f"Price: ${status.price:.2f}")
