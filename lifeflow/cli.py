import json
import click
from lifeflow.extensions import db
from lifeflow.models.inventory_model import InventoryRow
from lifeflow.services import grid_store
from lifeflow.services.dashboard_state import DEMO_RECORDS, DEMO_INVENTORY


def register_commands(app):

    @app.cli.command('init-db')
    def init_db():
        """Create the donor and inventory grids."""
        db.create_all()
        InventoryRow.current()
        db.session.commit()
        click.echo('Grids ready.')

    @app.cli.command('seed-demo')
    def seed_demo():
        """Append the demo donors and set the demo inventory."""
        db.create_all()
        for donor in DEMO_RECORDS:
            grid_store.append_donor(donor)
        grid_store.write_inventory(
            DEMO_INVENTORY['bloodUnitsAvailable'],
            DEMO_INVENTORY['plasmaUnitsAvailable'],
            DEMO_INVENTORY['plateletUnitsAvailable'],
        )
        db.session.commit()
        click.echo(f'Added {len(DEMO_RECORDS)} donors.')

    @app.cli.command('snapshot')
    def print_snapshot():
        """Print the donor records and inventory as JSON."""
        data = grid_store.snapshot()
        db.session.commit()
        click.echo(json.dumps(data, indent=2))
