"""Search, filter, paging and export over the donor records the dashboard holds"""
import math
import re
from collections import namedtuple
from datetime import date, datetime, timedelta
from io import BytesIO

from openpyxl import Workbook

STATUS_ALL = 'all'
EXPORT_ALL = 'all'

EXPORT_COLUMNS = [
    ('Donor Name', 'donorName', 20),
    ('Phone Number', 'phoneNumber', 15),
    ('Channel', 'channel', 10),
    ('Donation Type', 'donationType', 10),
    ('Appointment Date', 'appointmentDate', 15),
    ('Time', 'time', 10),
    ('Status', 'status', 10),
]
EXPORT_SHEET_TITLE = 'Donors'
XLSX_MIMETYPE = 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'

SORTABLE_FIELDS = ('donorName', 'phoneNumber', 'channel', 'donationType', 'appointmentDate', 'time', 'status')

Page = namedtuple('Page', ['items', 'page', 'page_size', 'total_items', 'total_pages'])

_ISO_DATE = re.compile(r'^\d{4}-\d{2}-\d{2}')
_DMY_SPLIT = re.compile(r'[-/]')


def _text(record, key):
    return str(record.get(key) or '')


def matches_search(record, query):
    if not query:
        return True
    needle = query.lower()
    return (
        needle in _text(record, 'donorName').lower()
        or query in _text(record, 'phoneNumber')
        or needle in _text(record, 'channel').lower()
    )


def matches_status(record, status):
    if not status or status.lower() == STATUS_ALL:
        return True
    return _text(record, 'status').lower() == status.lower()


def filter_records(records, query='', status=STATUS_ALL):
    return [r for r in records if matches_search(r, query) and matches_status(r, status)]


def sort_records(records, key, descending=False):
    if key not in SORTABLE_FIELDS:
        raise ValueError(f'Cannot sort by {key}')
    if key == 'appointmentDate':
        # Unparseable dates sort after every real one
        def sort_key(record):
            parsed = parse_appointment_date(record.get(key))
            return (parsed is None, parsed or date.min)
    else:
        def sort_key(record):
            return _text(record, key).lower()
    return sorted(records, key=sort_key, reverse=descending)


def total_pages(item_count, page_size):
    return math.ceil(item_count / page_size)


def paginate(records, page=1, page_size=10):
    if page_size < 1:
        raise ValueError('page_size must be at least 1')
    page = max(1, page)
    start = (page - 1) * page_size
    return Page(
        items=records[start:start + page_size],
        page=page,
        page_size=page_size,
        total_items=len(records),
        total_pages=total_pages(len(records), page_size),
    )


def parse_appointment_date(value):
    """Read YYYY-MM-DD (optionally followed by a time), DD-MM-YYYY or DD/MM/YYYY"""
    if not value:
        return None
    value = str(value).strip()
    if _ISO_DATE.match(value):
        try:
            return datetime.fromisoformat(value.replace('Z', '+00:00')).date()
        except ValueError:
            try:
                return datetime.strptime(value[:10], '%Y-%m-%d').date()
            except ValueError:
                return None

    parts = _DMY_SPLIT.split(value)
    if len(parts) == 3:
        try:
            day, month, year = (int(p) for p in parts)
            return date(year, month, day)
        except ValueError:
            return None
    return None


def format_short_date(value):
    """'2025-03-05' -> '5 Mar'; anything unparseable comes back unchanged"""
    parsed = parse_appointment_date(value)
    if parsed is None:
        return value
    return f'{parsed.day} {parsed.strftime("%b")}'


def status_label(status):
    lowered = (status or '').lower()
    for label in ('Completed', 'Booked', 'Queued', 'Cancelled'):
        if label.lower() in lowered:
            return label
    return status


def export_records(records, days, today=None):
    """Records whose appointment falls within the last `days` days, or all of them"""
    if days == EXPORT_ALL:
        return list(records)
    today = today or date.today()
    cutoff = today - timedelta(days=int(days))
    kept = []
    for record in records:
        parsed = parse_appointment_date(record.get('appointmentDate'))
        if parsed is not None and parsed >= cutoff:
            kept.append(record)
    return kept


def build_export_workbook(records):
    wb = Workbook()
    ws = wb.active
    ws.title = EXPORT_SHEET_TITLE
    ws.append([title for title, _, _ in EXPORT_COLUMNS])
    for record in records:
        ws.append([_text(record, key) for _, key, _ in EXPORT_COLUMNS])

    for index, (_, _, width) in enumerate(EXPORT_COLUMNS):
        ws.column_dimensions[chr(ord('A') + index)].width = width
    return wb


def export_bytes(records):
    buf = BytesIO()
    build_export_workbook(records).save(buf)
    buf.seek(0)
    return buf


def export_filename(today=None):
    today = today or date.today()
    return f'donors_export_{today.isoformat()}.xlsx'


def dashboard_metrics(records, inventory):
    total = len(records)
    statuses = [_text(r, 'status').lower() for r in records]
    confirmed = sum(1 for s in statuses if 'booked' in s or 'completed' in s)
    pending = sum(1 for s in statuses if 'queued' in s)
    total_units = (
        int(inventory.get('bloodUnitsAvailable') or 0)
        + int(inventory.get('plasmaUnitsAvailable') or 0)
        + int(inventory.get('plateletUnitsAvailable') or 0)
    )
    return {
        'totalDonors': total,
        'confirmedAppointments': confirmed,
        'pendingAppointments': pending,
        'totalUnits': total_units,
        'confirmationRate': math.floor(confirmed / total * 100 + 0.5) if total else 0,  # halves round up
    }
