"""CLI tools for back-office administration."""

import click
from pydantic import ValidationError

from backoffice.core.exceptions import ConflictError
from backoffice.core.logging import configure_logging
from backoffice.db.enums import EmployeeRole, ProjectCategory
from backoffice.db.session import SessionLocal
from backoffice.schemas.employee import EmployeeCreate
from backoffice.services import employee_service, project_service, seed_service


@click.group()
def cli():
    """Back-office CLI tools."""
    configure_logging()


@cli.command()
@click.option("--name", required=True, help="Display name")
@click.option("--email", required=True, help="Login email address")
@click.option(
    "--role",
    type=click.Choice([r.value for r in EmployeeRole]),
    default=EmployeeRole.ADMIN.value,
    show_default=True,
)
@click.option("--password", required=True, prompt=True, hide_input=True, confirmation_prompt=True)
def create_employee(name: str, email: str, role: str, password: str):
    """
    Create an employee with a login account.

    This is the bootstrap command for the first administrator.

    Example:
        backoffice create-employee --name "山田太郎" --email "admin@example.jp"
    """
    try:
        data = EmployeeCreate(name=name, email=email, role=EmployeeRole(role), password=password)
    except ValidationError as e:
        raise click.ClickException(str(e))

    db = SessionLocal()
    try:
        employee = employee_service.create_employee(db, data)
    except ConflictError as e:
        raise click.ClickException(e.message)
    finally:
        db.close()

    click.echo(f"✓ Created employee: {employee.name}")
    click.echo(f"  ID: {employee.id}")
    click.echo(f"  Role: {employee.role}")


@cli.command()
@click.option("--email", required=True, help="Employee email to revoke sessions for")
def revoke_sessions(email: str):
    """
    Revoke all sessions for an employee by bumping their token_version.

    Example:
        backoffice revoke-sessions --email "staff@example.jp"
    """
    db = SessionLocal()
    try:
        employee = employee_service.get_employee_by_email(db, email)
        if not employee:
            raise click.ClickException(f"Employee not found: {email}")
        old_version = employee.token_version
        employee.token_version += 1
        db.commit()
        click.echo(f"✓ Revoked all sessions for {email}")
        click.echo(f"  Token version: {old_version} → {employee.token_version}")
    finally:
        db.close()


@cli.command()
def seed_masters():
    """Insert default master data (safe to run repeatedly)."""
    db = SessionLocal()
    try:
        counts = seed_service.seed_masters(db)
    finally:
        db.close()

    for name, added in counts.items():
        click.echo(f"✓ {name}: {added} added")


@cli.command()
@click.argument("category")
def next_project_code(category: str):
    """
    Print the next project code for a category.

    CATEGORY accepts a value (A_Survey), a label (A:一般測量) or a prefix letter (A).
    """
    parsed = ProjectCategory.parse(category)
    if parsed is None:
        raise click.BadParameter(f"Unknown category: {category}", param_hint="CATEGORY")

    db = SessionLocal()
    try:
        click.echo(project_service.next_project_code(db, parsed))
    finally:
        db.close()


if __name__ == "__main__":
    cli()
