"""CLI commands for Ponto API."""

from datetime import date

import click

from ponto_api.backup.service import BackupService
from ponto_api.db.seed import seed_all
from ponto_api.db.session import SessionLocal
from ponto_api.ledger.errors import LedgerError
from ponto_api.ledger.service import SYSTEM_ACTOR, LedgerService


@click.group()
def cli():
    """Ponto API CLI."""
    pass


@cli.command()
def seed():
    """Seed initial data."""
    click.echo("Seeding initial data...")
    db = SessionLocal()
    try:
        seed_all(db)
        click.echo("✓ Seed data created.")
    except Exception as e:
        click.echo(f"✗ Error seeding data: {e}", err=True)
        db.rollback()
        raise SystemExit(1)
    finally:
        db.close()


@cli.command("verify-chain")
@click.option("--tenant-id", type=int, required=True)
def verify_chain(tenant_id: int):
    """Verify a tenant's hash chain."""
    db = SessionLocal()
    try:
        result = LedgerService(db).verify_integrity_chain(tenant_id)
    finally:
        db.close()

    if result.is_valid:
        click.echo(f"✓ Chain valid ({result.checked_records} records)")
        return
    for error in result.errors:
        click.echo(f"✗ {error}", err=True)
    raise SystemExit(1)


@cli.command("rebuild-chain")
@click.option("--tenant-id", type=int, required=True)
@click.option("--performed-by", default=SYSTEM_ACTOR, show_default=True)
@click.confirmation_option(prompt="Rewrite the stored hash chain for this tenant?")
def rebuild_chain(tenant_id: int, performed_by: str):
    """Recompute a tenant's hash chain. Every rewrite is audited."""
    db = SessionLocal()
    try:
        result = LedgerService(db).rebuild_integrity_chain(tenant_id, performed_by=performed_by)
    except LedgerError as e:
        click.echo(f"✗ Rebuild failed: {e}", err=True)
        raise SystemExit(1)
    finally:
        db.close()
    click.echo(f"✓ {result.fixed} record(s) fixed, state {result.state.value}")


@cli.command()
@click.option("--tenant-id", type=int, required=True)
@click.option("--date", "backup_date", type=click.DateTime(formats=["%Y-%m-%d"]), default=None)
@click.option("--verify", is_flag=True, help="Verify an existing backup instead of writing one.")
def backup(tenant_id: int, backup_date, verify: bool):
    """Write or verify a tenant's daily snapshot."""
    day = backup_date.date() if backup_date else date.today()
    db = SessionLocal()
    try:
        service = BackupService(db)
        if verify:
            ok = service.verify_backup(tenant_id, day)
            click.echo("✓ Backup íntegro" if ok else "✗ Backup comprometido", err=not ok)
            if not ok:
                raise SystemExit(1)
            return
        created = service.create_backup(tenant_id, day)
        click.echo(f"✓ Backup {created.storage_key}: {created.record_count} records, hash {created.backup_hash[:12]}")
    except LedgerError as e:
        click.echo(f"✗ {e}", err=True)
        raise SystemExit(1)
    finally:
        db.close()


if __name__ == "__main__":
    cli()
