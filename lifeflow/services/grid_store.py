"""Row-level operations on the donor and inventory grids.

Rows are addressed the way the spreadsheet addresses them: a 1-based row
index where row 1 is the header, so the first donor sits at row 2. Nothing
here commits; the caller owns the transaction.
"""
import logging

from sqlalchemy import inspect

from lifeflow.errors import GridNotFoundError, RowOutOfRangeError
from lifeflow.extensions import db
from lifeflow.models.donor_model import DonorRow, DEFAULT_STATUS, FIRST_DATA_ROW, utc_timestamp
from lifeflow.models.inventory_model import InventoryRow

logger = logging.getLogger(__name__)


def _require_grid(model, grid):
    if not inspect(db.engine).has_table(model.__tablename__):
        raise GridNotFoundError(grid)


def _cell(value):
    return '' if value is None else str(value)


def donor_rows():
    _require_grid(DonorRow, 'Donor')
    return DonorRow.query.order_by(DonorRow.position).all()


def row_at(row_index):
    _require_grid(DonorRow, 'Donor')
    row = None
    if row_index >= FIRST_DATA_ROW:
        row = DonorRow.query.filter_by(position=row_index - FIRST_DATA_ROW).first()
    if row is None:
        raise RowOutOfRangeError(row_index)
    return row


def append_donor(donor):
    _require_grid(DonorRow, 'Donor')
    row = DonorRow(
        position=DonorRow.query.count(),
        timestamp=utc_timestamp(),
        donor_name=_cell(donor.get('donorName')),
        phone_number=_cell(donor.get('phoneNumber')),
        channel=_cell(donor.get('channel')),
        donation_type=_cell(donor.get('donationType')),
        appointment_date=_cell(donor.get('appointmentDate')),
        time=_cell(donor.get('time')),
        status=_cell(donor.get('status')) or DEFAULT_STATUS,
    )
    db.session.add(row)
    db.session.flush()
    logger.info('Appended donor %s at row %d', row.donor_name, row.row_index)
    return row


def set_status(row_index, new_status):
    row = row_at(row_index)
    row.status = _cell(new_status)
    return row


def set_details(row_index, donor):
    """Overwrite every cell after the timestamp; the caller commits them together"""
    row = row_at(row_index)
    for key, column in DonorRow.FIELDS:
        setattr(row, column, _cell(donor.get(key)))
    return row


def delete_row(row_index):
    row = row_at(row_index)
    position = row.position
    db.session.delete(row)
    db.session.flush()
    # Rows underneath move up one, same as deleting a sheet row
    DonorRow.query.filter(DonorRow.position > position).update(
        {DonorRow.position: DonorRow.position - 1}, synchronize_session=False
    )
    logger.info('Deleted row %d', row_index)
    return row


def write_inventory(blood_units=None, plasma_units=None, platelet_units=None):
    """Overwrite the inventory row; a count left as None keeps its stored value"""
    _require_grid(InventoryRow, 'Inventory')
    inventory = InventoryRow.current()
    if blood_units is not None:
        inventory.blood_units = blood_units
    if plasma_units is not None:
        inventory.plasma_units = plasma_units
    if platelet_units is not None:
        inventory.platelet_units = platelet_units
    inventory.last_updated = utc_timestamp()
    return inventory


def snapshot():
    return {
        'donorRecords': [row.to_dict() for row in donor_rows()],
        'inventory': InventoryRow.current().to_dict(),
    }
