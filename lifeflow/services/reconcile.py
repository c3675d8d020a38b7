"""Map a record the user is looking at back to its row in the donor grid.

Records carry no row number of their own. The row is worked out from where
the record sits in the full, unfiltered list the dashboard currently holds,
so a list that has drifted from the grid (another client deleted a row, say)
yields a stale index. Matching is by ``recordId`` where both sides have one,
otherwise by the ``(donorName, phoneNumber)`` pair, which must then be unique.
"""
from lifeflow.errors import RecordNotFoundError
from lifeflow.models.donor_model import FIRST_DATA_ROW


def _field(record, key):
    if isinstance(record, dict):
        return record.get(key)
    return getattr(record, key, None)


def identity(record):
    return _field(record, 'donorName'), _field(record, 'phoneNumber')


def find_record_position(records, target):
    """Return the 0-based position of the first entry matching target, or None"""
    record_id = _field(target, 'recordId')
    wanted = identity(target)
    for position, record in enumerate(records):
        other_id = _field(record, 'recordId')
        if record_id and other_id:
            # Both sides carry a stable id, so it alone decides
            if other_id == record_id:
                return position
            continue
        if identity(record) == wanted:
            return position
    return None


def row_index_for(records, target):
    position = find_record_position(records, target)
    if position is None:
        raise RecordNotFoundError()
    return position + FIRST_DATA_ROW


def next_row_index(records):
    """Row an appended record lands on, until the list is refetched"""
    return len(records) + FIRST_DATA_ROW
