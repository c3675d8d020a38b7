import math
import re
from datetime import date
from flask import Blueprint, request, jsonify, current_app, send_file
from werkzeug.exceptions import BadRequest
from lifeflow.services import donor_query

# Define Blueprint for the dashboard back-end
dashboard_bp = Blueprint('dashboard_bp', __name__)

REQUIRED_DONOR_FIELDS = ['donorName', 'phoneNumber', 'appointmentDate', 'time']
DONOR_FORM_DEFAULTS = {'channel': 'Website', 'donationType': 'Blood', 'status': 'Queued'}
_LEADING_INT = re.compile(r'\s*([+-]?\d+)')


def _state():
    state = current_app.extensions['dashboard_state']
    state.ensure_loaded()
    return state


def _client():
    return current_app.extensions['sheets_client']


def _json_body():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise BadRequest('No input data provided')
    return data


def _donor_form(data):
    """Validate the add/edit form the way the form itself does before submitting"""
    if not isinstance(data, dict):
        raise BadRequest('No donor data provided')
    donor = dict(DONOR_FORM_DEFAULTS)
    donor.update({k: v for k, v in data.items() if v is not None})
    for field in REQUIRED_DONOR_FIELDS:
        if not str(donor.get(field) or '').strip():
            raise BadRequest(f'Missing required field: {field}')
    return donor


def _record(data):
    record = data.get('record')
    if not isinstance(record, dict):
        raise BadRequest('Missing required field: record')
    return record


def _units(value):
    """Unit count as the inventory editor reads it: leading digits, else 0"""
    if value is None:
        return None
    if isinstance(value, bool) or (isinstance(value, float) and not math.isfinite(value)):
        return 0
    if isinstance(value, (int, float)):
        return int(value)
    match = _LEADING_INT.match(str(value))
    return int(match.group(1)) if match else 0


def _write_response(result):
    if result.get('success'):
        return jsonify(result), 200
    if result.get('kind') == 'local':
        return jsonify(result), 404
    current_app.logger.warning('Write failed: %s', result.get('error'))
    return jsonify(result), 502


# GET the dashboard state (records, inventory, sync status)
@dashboard_bp.route('/state', methods=['GET'])
def get_state():
    data = _state().to_dict()
    client = _client()
    data['isUpdating'] = client.is_updating
    data['updateError'] = client.update_error
    return jsonify(data), 200


# POST to refetch the snapshot now
@dashboard_bp.route('/refresh', methods=['POST'])
def refresh():
    state = current_app.extensions['dashboard_state']
    state.refresh()
    return jsonify(state.to_dict()), 200


# GET one page of donors, searched, filtered and sorted
@dashboard_bp.route('/donors', methods=['GET'])
def get_donors():
    try:
        query = request.args.get('q', '')
        status = request.args.get('status', donor_query.STATUS_ALL)
        sort = request.args.get('sort')
        descending = request.args.get('order', 'asc').lower() == 'desc'
        try:
            page = int(request.args.get('page', 1))
            per_page = int(request.args.get('per_page', current_app.config['DEFAULT_PAGE_SIZE']))
        except ValueError:
            raise BadRequest('page and per_page must be integers')
        if per_page not in current_app.config['PAGE_SIZES']:
            raise BadRequest(f'per_page must be one of {list(current_app.config["PAGE_SIZES"])}')

        records = donor_query.filter_records(_state().records_snapshot(), query, status)
        if sort:
            try:
                records = donor_query.sort_records(records, sort, descending)
            except ValueError as e:
                raise BadRequest(str(e))

        page_data = donor_query.paginate(records, page, per_page)
        items = []
        for record in page_data.items:
            item = dict(record)
            item['statusLabel'] = donor_query.status_label(record.get('status'))
            item['displayDate'] = donor_query.format_short_date(record.get('appointmentDate'))
            items.append(item)

        return jsonify({
            'items': items,
            'page': page_data.page,
            'pageSize': page_data.page_size,
            'totalItems': page_data.total_items,
            'totalPages': page_data.total_pages,
        }), 200
    except BadRequest as e:
        return jsonify({'error': e.description}), 400


# GET headline numbers for the metric tiles
@dashboard_bp.route('/metrics', methods=['GET'])
def get_metrics():
    state = _state().to_dict()
    return jsonify(donor_query.dashboard_metrics(state['donorRecords'], state['inventory'])), 200


# GET an xlsx export of recent donors
@dashboard_bp.route('/export', methods=['GET'])
def export_donors():
    days = request.args.get('days', donor_query.EXPORT_ALL)
    if days != donor_query.EXPORT_ALL:
        try:
            days = int(days)
        except ValueError:
            return jsonify({'error': 'days must be a number or "all"'}), 400
        if days < 0:
            return jsonify({'error': 'days must not be negative'}), 400

    today = date.today()
    records = donor_query.export_records(_state().records_snapshot(), days, today)
    current_app.logger.info('Exporting %d donor records', len(records))
    return send_file(
        donor_query.export_bytes(records),
        mimetype=donor_query.XLSX_MIMETYPE,
        as_attachment=True,
        download_name=donor_query.export_filename(today),
    )


# POST a new donor
@dashboard_bp.route('/donors', methods=['POST'])
def add_donor():
    try:
        data = _json_body()
        donor = _donor_form(data.get('donor', data))
        result = _client().add_donor_to(_state().records_snapshot(), donor)
        return _write_response(result)
    except BadRequest as e:
        return jsonify({'success': False, 'error': e.description, 'kind': 'local'}), 400


# PUT a new status on an existing donor
@dashboard_bp.route('/donors/status', methods=['PUT'])
def update_donor_status():
    try:
        data = _json_body()
        record = _record(data)
        new_status = (data.get('newStatus') or '').strip()
        if not new_status:
            raise BadRequest('Missing required field: newStatus')
        result = _client().update_record_status(record, _state().records_snapshot(), new_status)
        return _write_response(result)
    except BadRequest as e:
        return jsonify({'success': False, 'error': e.description, 'kind': 'local'}), 400


# PUT edited details for an existing donor
@dashboard_bp.route('/donors', methods=['PUT'])
def update_donor_details():
    try:
        data = _json_body()
        record = _record(data)
        donor = _donor_form(data.get('donor'))
        result = _client().update_donor_record(record, _state().records_snapshot(), donor)
        return _write_response(result)
    except BadRequest as e:
        return jsonify({'success': False, 'error': e.description, 'kind': 'local'}), 400


# DELETE a donor
@dashboard_bp.route('/donors', methods=['DELETE'])
def delete_donor():
    try:
        data = _json_body()
        result = _client().delete_donor_record(_record(data), _state().records_snapshot())
        return _write_response(result)
    except BadRequest as e:
        return jsonify({'success': False, 'error': e.description, 'kind': 'local'}), 400


# PUT new inventory counts
@dashboard_bp.route('/inventory', methods=['PUT'])
def update_inventory():
    try:
        data = _json_body()
        result = _client().update_inventory(
            blood_units=_units(data.get('bloodUnits')),
            plasma_units=_units(data.get('plasmaUnits')),
            platelet_units=_units(data.get('plateletUnits')),
        )
        return _write_response(result)
    except BadRequest as e:
        return jsonify({'success': False, 'error': e.description, 'kind': 'local'}), 400
