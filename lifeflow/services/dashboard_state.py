import logging
import threading
from datetime import datetime, timezone

import requests

from lifeflow.errors import TransportError

logger = logging.getLogger(__name__)

EMPTY_INVENTORY = {
    'bloodUnitsAvailable': 0,
    'plasmaUnitsAvailable': 0,
    'plateletUnitsAvailable': 0,
    'lastUpdated': '',
}

# Shown when the spreadsheet cannot be read at all
DEMO_RECORDS = [
    {'timestamp': '', 'donorName': 'John Doe', 'phoneNumber': '555-1234', 'channel': 'Website',
     'donationType': 'Blood', 'appointmentDate': '2025-01-15', 'time': '09:00', 'status': 'Booked'},
    {'timestamp': '', 'donorName': 'Jane Smith', 'phoneNumber': '555-5678', 'channel': 'App',
     'donationType': 'Plasma', 'appointmentDate': '2025-01-16', 'time': '10:30', 'status': 'Queued'},
    {'timestamp': '', 'donorName': 'Ravi Kumar', 'phoneNumber': '555-9012', 'channel': 'Walk-in',
     'donationType': 'Platelets', 'appointmentDate': '2025-01-17', 'time': '14:00', 'status': 'Completed'},
]
DEMO_INVENTORY = {
    'bloodUnitsAvailable': 120,
    'plasmaUnitsAvailable': 45,
    'plateletUnitsAvailable': 30,
    'lastUpdated': '',
}


class SnapshotReader:
    """Reads {donorRecords, inventory} from the read path"""

    def __init__(self, snapshot_url, session=None, timeout=10):
        self.snapshot_url = snapshot_url
        self.session = session or requests.Session()
        self.timeout = timeout

    def fetch(self):
        try:
            response = self.session.get(self.snapshot_url, timeout=self.timeout)
            response.raise_for_status()
            data = response.json()
        except requests.RequestException as e:
            raise TransportError(str(e))
        except ValueError:
            raise TransportError('Snapshot is not JSON')

        if not isinstance(data, dict) or 'donorRecords' not in data or 'inventory' not in data:
            raise TransportError('Snapshot is missing donorRecords or inventory')
        return data


class DashboardState:
    """The records and inventory the dashboard currently shows.

    Writes reconcile against ``records``, so it has to be the full unfiltered
    list in grid order, exactly as last read.
    """

    def __init__(self, reader):
        self.reader = reader
        self.records = []
        self.inventory = dict(EMPTY_INVENTORY)
        self.last_updated = None
        self.error = None
        self.is_loading = False
        self._lock = threading.Lock()

    def refresh(self):
        self.is_loading = True
        try:
            data = self.reader.fetch()
        except TransportError as e:
            logger.warning('Could not read snapshot: %s', e)
            with self._lock:
                self.error = str(e)
                if self.last_updated is None:
                    self.records = [dict(r) for r in DEMO_RECORDS]
                    self.inventory = dict(DEMO_INVENTORY)
                    self.last_updated = datetime.now(timezone.utc)
            return False
        finally:
            self.is_loading = False

        with self._lock:
            self.records = list(data['donorRecords'])
            self.inventory = dict(EMPTY_INVENTORY, **data['inventory'])
            self.error = None
            self.last_updated = datetime.now(timezone.utc)
        logger.info('Loaded %d donor records', len(self.records))
        return True

    def ensure_loaded(self):
        if self.last_updated is None:
            self.refresh()

    def records_snapshot(self):
        with self._lock:
            return list(self.records)

    def to_dict(self):
        with self._lock:
            return {
                'donorRecords': list(self.records),
                'inventory': dict(self.inventory),
                'lastUpdated': self.last_updated.isoformat() if self.last_updated else None,
                'error': self.error,
                'isLoading': self.is_loading,
            }
