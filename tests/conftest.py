from urllib.parse import urlsplit

import pytest
import requests

from lifeflow import create_app
from lifeflow.config import TestingConfig
from lifeflow.extensions import db


class RoutedResponse:
    def __init__(self, response):
        self._response = response
        self.status_code = response.status_code

    def json(self):
        data = self._response.get_json(silent=True)
        if data is None:
            raise ValueError('response is not JSON')
        return data

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f'{self.status_code} Error')


class RoutedSession:
    """Stands in for requests.Session and hands each call to the Flask test client"""

    def __init__(self, test_client):
        self.test_client = test_client
        self.posted = []
        self.fail_with = None

    def post(self, url, json=None, timeout=None):
        if self.fail_with is not None:
            raise self.fail_with
        self.posted.append(json)
        return RoutedResponse(self.test_client.post(urlsplit(url).path, json=json))

    def get(self, url, timeout=None):
        if self.fail_with is not None:
            raise self.fail_with
        return RoutedResponse(self.test_client.get(urlsplit(url).path))


@pytest.fixture
def app():
    app = create_app(TestingConfig)
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def routed_session(app):
    session = RoutedSession(app.test_client())
    app.extensions['sheets_client'].session = session
    app.extensions['dashboard_state'].reader.session = session
    return session


def make_donor(name, phone, **fields):
    donor = {
        'donorName': name,
        'phoneNumber': phone,
        'channel': 'Website',
        'donationType': 'Blood',
        'appointmentDate': '2025-01-15',
        'time': '09:00',
        'status': 'Queued',
    }
    donor.update(fields)
    return donor


@pytest.fixture
def seed(client):
    """Append donors through the endpoint, in order"""
    def _seed(*donors):
        for donor in donors:
            body = client.post('/api/v1/sheet/', json={'action': 'addDonor', 'donor': donor}).get_json()
            assert body['success'], body
    return _seed
