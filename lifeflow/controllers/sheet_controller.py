import json
from flask import Blueprint, request, jsonify, current_app
from sqlalchemy.exc import SQLAlchemyError
from lifeflow.extensions import db
from lifeflow.errors import ActionError, GridNotFoundError, RowOutOfRangeError
from lifeflow.services import grid_store

# Define Blueprint for the spreadsheet write endpoint and its read path
sheet_bp = Blueprint('sheet_bp', __name__)


def _read_envelope():
    """Parse the body as JSON whatever its content type, else use the form parameters"""
    data = request.get_json(force=True, silent=True)
    if data is None:
        if request.get_data():
            current_app.logger.warning('Body is not JSON, falling back to form parameters')
        data = request.values.to_dict()
        # A form-encoded donor arrives as a JSON string
        if isinstance(data.get('donor'), str):
            try:
                data['donor'] = json.loads(data['donor'])
            except ValueError:
                raise ActionError('Invalid donor: ' + data['donor'])
    if not data:
        raise ActionError('No data received')
    if not isinstance(data, dict):
        raise ActionError('Request body must be a JSON object')
    return data


def _int_field(data, name, required=True):
    value = data.get(name)
    if value is None or value == '':
        if required:
            raise ActionError(f'Missing required field: {name}')
        return None
    if isinstance(value, bool):
        raise ActionError(f'Invalid {name}: {value}')
    if isinstance(value, float):
        if not value.is_integer():
            raise ActionError(f'Invalid {name}: {value}')
        return int(value)
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ActionError(f'Invalid {name}: {value}')


def _donor_field(data):
    donor = data.get('donor')
    if not isinstance(donor, dict):
        raise ActionError('Missing donor')
    return donor


def add_donor(data):
    row = grid_store.append_donor(_donor_field(data))
    return {
        'success': True,
        'message': 'Donor added successfully',
        'rowIndex': row.row_index,
        'recordId': row.record_id,
    }


def update_donor_status(data):
    row_index = _int_field(data, 'rowIndex')
    new_status = data.get('newStatus')
    if new_status is None:
        raise ActionError('Missing required field: newStatus')
    grid_store.set_status(row_index, new_status)
    return {
        'success': True,
        'message': 'Status updated successfully',
        'rowIndex': row_index,
        'newStatus': new_status,
    }


def update_donor_details(data):
    row_index = _int_field(data, 'rowIndex')
    grid_store.set_details(row_index, _donor_field(data))
    return {'success': True, 'message': 'Donor details updated successfully', 'rowIndex': row_index}


def delete_donor(data):
    row_index = _int_field(data, 'rowIndex')
    grid_store.delete_row(row_index)
    return {'success': True, 'message': 'Donor deleted successfully', 'rowIndex': row_index}


def update_inventory(data):
    inventory = grid_store.write_inventory(
        _int_field(data, 'bloodUnits', required=False),
        _int_field(data, 'plasmaUnits', required=False),
        _int_field(data, 'plateletUnits', required=False),
    )
    return {
        'success': True,
        'message': 'Inventory updated successfully',
        'inventory': {
            'bloodUnits': inventory.blood_units,
            'plasmaUnits': inventory.plasma_units,
            'plateletUnits': inventory.platelet_units,
            'lastUpdated': inventory.last_updated,
        },
    }


ACTIONS = {
    'addDonor': add_donor,
    'updateDonorStatus': update_donor_status,
    'updateDonorDetails': update_donor_details,
    'deleteDonor': delete_donor,
    'updateInventory': update_inventory,
}


# Health check
@sheet_bp.route('/', methods=['GET'])
def health():
    return jsonify({'status': 'ok', 'message': 'Blood Bank API is running'}), 200


# POST an action envelope
@sheet_bp.route('/', methods=['POST'])
def dispatch_action():
    try:
        data = _read_envelope()
        action = data.get('action')
        handler = ACTIONS.get(action)
        if handler is None:
            return jsonify({'success': False, 'error': f'Unknown action: {action}'}), 200

        result = handler(data)
        db.session.commit()
        return jsonify(result), 200
    except (ActionError, GridNotFoundError, RowOutOfRangeError) as e:
        db.session.rollback()
        current_app.logger.info('Action rejected: %s', e)
        return jsonify({'success': False, 'error': str(e)}), 200
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.error('Database error while handling action: %s', e)
        return jsonify({'success': False, 'error': f'Database error: {str(e)}'}), 200
    except Exception as e:
        db.session.rollback()
        current_app.logger.exception('Unexpected error while handling action')
        return jsonify({'success': False, 'error': str(e)}), 200


# GET the current donor records and inventory
@sheet_bp.route('/snapshot', methods=['GET'])
def get_snapshot():
    try:
        data = grid_store.snapshot()
        db.session.commit()  # the inventory row may have been created on first read
        return jsonify(data), 200
    except GridNotFoundError as e:
        return jsonify({'error': str(e)}), 404
    except SQLAlchemyError as e:
        db.session.rollback()
        return jsonify({'error': 'Database error occurred'}), 500
