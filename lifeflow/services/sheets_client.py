"""Client side of the spreadsheet write endpoint.

Every write goes through :meth:`SheetsClient._send`, which counts itself as in
flight for ``is_updating``, clears ``update_error``, posts the ``{action, ...}``
envelope and, once the endpoint confirms, asks for a refresh after a short
settle delay. The endpoint's JSON body is read, so a ``success: false`` answer
is reported back instead of being mistaken for a success.

Results are plain dicts: the endpoint body on success, or
``{'success': False, 'error': ..., 'kind': ...}`` where ``kind`` is
``'local'`` (nothing was sent), ``'transport'`` or ``'endpoint'``.
"""
import logging
import threading
import time
from datetime import datetime, timedelta

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from lifeflow.errors import SheetsAPIError, TransportError, EndpointError, RecordNotFoundError
from lifeflow.services.reconcile import identity, row_index_for, next_row_index

logger = logging.getLogger(__name__)

REFRESH_JOB_ID = 'sheets-refresh'


def build_session(retries=3, backoff_factor=0.5):
    """requests session with retries that never repeat a write the endpoint may have applied

    Connection failures are retried for every method since the request never
    reached the endpoint. Read timeouts and gateway errors are retried for GET
    only; a POST behind a 504 may already have added or deleted a row.
    """
    retry = Retry(
        total=retries,
        connect=retries,
        read=retries,
        status=retries,
        backoff_factor=backoff_factor,
        status_forcelist=(502, 503, 504),
        allowed_methods=frozenset(['GET']),
        raise_on_status=False,
    )
    session = requests.Session()
    adapter = HTTPAdapter(max_retries=retry)
    session.mount('http://', adapter)
    session.mount('https://', adapter)
    return session


def _failure(error):
    return {'success': False, 'error': str(error), 'kind': error.kind}


class SheetsClient:

    def __init__(self, endpoint_url, on_data_update=None, settle_delay=1.0, scheduler=None,
                 session=None, timeout=10, retries=3, backoff_factor=0.5):
        self.endpoint_url = endpoint_url
        self.on_data_update = on_data_update
        self.settle_delay = settle_delay
        self.scheduler = scheduler
        self.timeout = timeout
        self.session = session or build_session(retries, backoff_factor)

        self.update_error = None
        self._lock = threading.Lock()
        self._in_flight = 0

    @property
    def is_updating(self):
        """True while any write is in flight"""
        with self._lock:
            return self._in_flight > 0

    # -- transport --------------------------------------------------------

    def _post(self, envelope):
        try:
            response = self.session.post(self.endpoint_url, json=envelope, timeout=self.timeout)
            response.raise_for_status()
            body = response.json()
        except requests.RequestException as e:
            raise TransportError(str(e))
        except ValueError:
            raise TransportError('Endpoint returned a response that is not JSON')

        if not isinstance(body, dict):
            raise TransportError('Endpoint returned an unexpected response')
        if not body.get('success'):
            raise EndpointError(body.get('error') or 'Request failed', body)
        return body

    def _schedule_refresh(self):
        if self.on_data_update is None:
            return
        if self.scheduler is None:
            if self.settle_delay:
                time.sleep(self.settle_delay)
            self.on_data_update()
            return
        self.scheduler.add_job(
            id=REFRESH_JOB_ID,
            func=self.on_data_update,
            trigger='date',
            run_date=datetime.now() + timedelta(seconds=self.settle_delay),
            replace_existing=True,
        )

    def _send(self, envelope, sent_message):
        with self._lock:
            self._in_flight += 1
        self.update_error = None
        try:
            body = self._post(envelope)
            logger.info(sent_message)
            self._schedule_refresh()
            return body
        except SheetsAPIError as e:
            self.update_error = str(e)
            logger.warning('%s failed (%s): %s', envelope.get('action'), e.kind, e)
            return _failure(e)
        finally:
            with self._lock:
                self._in_flight -= 1

    # -- one call per endpoint action --------------------------------------

    def add_donor(self, donor):
        return self._send(
            {'action': 'addDonor', 'donor': donor},
            f"Add donor sent for {donor.get('donorName')}",
        )

    def update_donor_status(self, row_index, new_status, donor_name=None):
        return self._send(
            {'action': 'updateDonorStatus', 'rowIndex': row_index, 'newStatus': new_status},
            f'Status update sent for {donor_name} (row {row_index}) to: {new_status}',
        )

    def update_donor_details(self, row_index, donor):
        return self._send(
            {'action': 'updateDonorDetails', 'rowIndex': row_index, 'donor': donor},
            f'Details update sent for row {row_index}',
        )

    def delete_donor(self, row_index):
        return self._send(
            {'action': 'deleteDonor', 'rowIndex': row_index},
            f'Delete sent for row {row_index}',
        )

    def update_inventory(self, blood_units=None, plasma_units=None, platelet_units=None):
        return self._send(
            {
                'action': 'updateInventory',
                'bloodUnits': blood_units,
                'plasmaUnits': plasma_units,
                'plateletUnits': platelet_units,
            },
            f'Inventory update sent: blood={blood_units} plasma={plasma_units} platelets={platelet_units}',
        )

    # -- record-level helpers that reconcile against the held list -----------

    def add_donor_to(self, records, donor):
        """Add donor; on success the result carries the row it lands on in records' terms"""
        expected_row = next_row_index(records)
        result = self.add_donor(donor)
        if result.get('success'):
            result.setdefault('rowIndex', expected_row)
            result['expectedRowIndex'] = expected_row
        return result

    def update_record_status(self, target, records, new_status):
        try:
            row_index = row_index_for(records, target)
        except RecordNotFoundError as e:
            return _failure(e)
        return self.update_donor_status(row_index, new_status, donor_name=identity(target)[0])

    def update_donor_record(self, target, records, donor):
        try:
            row_index = row_index_for(records, target)
        except RecordNotFoundError as e:
            return _failure(e)
        return self.update_donor_details(row_index, donor)

    def delete_donor_record(self, target, records):
        try:
            row_index = row_index_for(records, target)
        except RecordNotFoundError:
            return _failure(RecordNotFoundError('Could not find record to delete'))
        return self.delete_donor(row_index)
