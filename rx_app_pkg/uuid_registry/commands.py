# rx_app_pkg/uuid_registry/commands.py
import click
from flask.cli import with_appcontext
from ..models import PatientData, FormEncounter, User, Drug, Prescription, ListEntry
from .services import create_missing_uuids

# Tables whose uuids the medication view exposes.
UUID_TABLES = [Prescription, PatientData, FormEncounter, User, Drug, ListEntry]


@click.command('backfill-uuids')
@with_appcontext
def backfill_uuids_command():
    """Assign uuids to rows created without one."""
    counts = create_missing_uuids(UUID_TABLES)
    for table_name, count in counts.items():
        click.echo(f"{table_name}: {count}")
