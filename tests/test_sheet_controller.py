import json

from lifeflow.extensions import db
from lifeflow.models.donor_model import DonorRow
from lifeflow.models.inventory_model import InventoryRow
from tests.conftest import make_donor

URL = '/api/v1/sheet/'


def post(client, **envelope):
    response = client.post(URL, json=envelope)
    assert response.status_code == 200
    return response.get_json()


def names(client):
    snapshot = client.get(URL + 'snapshot').get_json()
    return [r['donorName'] for r in snapshot['donorRecords']]


def test_health(client):
    body = client.get(URL).get_json()
    assert body == {'status': 'ok', 'message': 'Blood Bank API is running'}


def test_add_donor_appends_with_defaults(client):
    body = post(client, action='addDonor', donor={'donorName': 'Amy', 'phoneNumber': '111'})
    assert body['success'] is True
    assert body['message'] == 'Donor added successfully'
    assert body['rowIndex'] == 2
    assert body['recordId']

    record = client.get(URL + 'snapshot').get_json()['donorRecords'][0]
    assert record['status'] == 'Queued'
    assert record['channel'] == ''
    assert record['appointmentDate'] == ''
    assert record['timestamp'].endswith('Z')
    assert record['rowIndex'] == 2


def test_add_donor_lands_on_last_row(client, seed):
    seed(make_donor('Amy', '111'), make_donor('Ben', '222'))
    body = post(client, action='addDonor', donor=make_donor('Cal', '333'))
    assert body['rowIndex'] == 4
    assert names(client) == ['Amy', 'Ben', 'Cal']


def test_add_donor_without_donor(client):
    body = post(client, action='addDonor')
    assert body == {'success': False, 'error': 'Missing donor'}


def test_update_status(client, seed):
    seed(make_donor('Amy', '111'), make_donor('Ben', '222'))
    body = post(client, action='updateDonorStatus', rowIndex=3, newStatus='Completed')
    assert body['success'] is True
    assert body['rowIndex'] == 3
    assert body['newStatus'] == 'Completed'
    statuses = [r.status for r in DonorRow.query.order_by(DonorRow.position)]
    assert statuses == ['Queued', 'Completed']


def test_update_status_out_of_range_changes_nothing(client, seed):
    seed(make_donor('Amy', '111'))
    for row_index in (1, 3, 0, -5):
        body = post(client, action='updateDonorStatus', rowIndex=row_index, newStatus='Completed')
        assert body == {'success': False, 'error': f'Row {row_index} is out of range'}
    assert DonorRow.query.one().status == 'Queued'


def test_update_details_overwrites_all_but_timestamp(client, seed):
    seed(make_donor('Amy', '111'))
    before = DonorRow.query.one().timestamp
    new = make_donor('Amy B', '999', channel='App', donationType='Plasma',
                     appointmentDate='20-02-2025', time='11:00', status='Booked')
    body = post(client, action='updateDonorDetails', rowIndex=2, donor=new)
    assert body['success'] is True

    row = DonorRow.query.one()
    assert row.timestamp == before
    assert row.to_row()[1:] == ['Amy B', '999', 'App', 'Plasma', '20-02-2025', '11:00', 'Booked']


def test_update_details_out_of_range_changes_nothing(client, seed):
    seed(make_donor('Amy', '111'))
    body = post(client, action='updateDonorDetails', rowIndex=7, donor=make_donor('X', '0'))
    assert body['success'] is False
    assert DonorRow.query.one().donor_name == 'Amy'


def test_delete_shifts_rows_up(client, seed):
    seed(make_donor('Amy', '111'), make_donor('Ben', '222'), make_donor('Cal', '333'))
    body = post(client, action='deleteDonor', rowIndex=2)
    assert body['success'] is True
    assert body['message'] == 'Donor deleted successfully'

    snapshot = client.get(URL + 'snapshot').get_json()['donorRecords']
    assert [(r['donorName'], r['rowIndex']) for r in snapshot] == [('Ben', 2), ('Cal', 3)]


def test_second_delete_with_stale_index_hits_the_wrong_row(client, seed):
    # Client holds [Amy, Ben, Cal] and deletes Amy then Ben without refetching.
    # Ben was row 3 before the first delete; afterwards row 3 is Cal.
    seed(make_donor('Amy', '111'), make_donor('Ben', '222'), make_donor('Cal', '333'))
    post(client, action='deleteDonor', rowIndex=2)
    post(client, action='deleteDonor', rowIndex=3)
    assert names(client) == ['Ben']


def test_update_inventory(client):
    body = post(client, action='updateInventory', bloodUnits=120, plasmaUnits=45, plateletUnits=30)
    assert body['success'] is True
    inventory = body['inventory']
    assert {k: inventory[k] for k in ('bloodUnits', 'plasmaUnits', 'plateletUnits')} == {
        'bloodUnits': 120, 'plasmaUnits': 45, 'plateletUnits': 30,
    }
    assert inventory['lastUpdated']

    assert InventoryRow.query.count() == 1
    snapshot = client.get(URL + 'snapshot').get_json()['inventory']
    assert snapshot['bloodUnitsAvailable'] == 120
    assert snapshot['lastUpdated'] == inventory['lastUpdated']


def test_update_inventory_overwrites_the_single_row(client):
    post(client, action='updateInventory', bloodUnits=1, plasmaUnits=2, plateletUnits=3)
    post(client, action='updateInventory', bloodUnits=4, plasmaUnits=5, plateletUnits=6)
    rows = InventoryRow.query.all()
    assert len(rows) == 1
    assert (rows[0].blood_units, rows[0].plasma_units, rows[0].platelet_units) == (4, 5, 6)


def test_update_inventory_rejects_non_numbers(client):
    body = post(client, action='updateInventory', bloodUnits='lots', plasmaUnits=1, plateletUnits=1)
    assert body == {'success': False, 'error': 'Invalid bloodUnits: lots'}


def test_fractional_row_index_is_rejected(client, seed):
    seed(make_donor('Amy', '111'), make_donor('Ben', '222'))
    body = post(client, action='deleteDonor', rowIndex=2.7)
    assert body == {'success': False, 'error': 'Invalid rowIndex: 2.7'}
    body = post(client, action='updateDonorStatus', rowIndex='2.5', newStatus='Booked')
    assert body == {'success': False, 'error': 'Invalid rowIndex: 2.5'}
    assert names(client) == ['Amy', 'Ben']


def test_whole_float_row_index_is_accepted(client, seed):
    seed(make_donor('Amy', '111'), make_donor('Ben', '222'))
    body = post(client, action='deleteDonor', rowIndex=3.0)
    assert body['success'] is True
    assert names(client) == ['Amy']


def test_update_inventory_rejects_fractional_counts(client):
    post(client, action='updateInventory', bloodUnits=10, plasmaUnits=5, plateletUnits=1)
    body = post(client, action='updateInventory', bloodUnits=10, plasmaUnits=4.5, plateletUnits=1)
    assert body == {'success': False, 'error': 'Invalid plasmaUnits: 4.5'}
    assert InventoryRow.query.one().plasma_units == 5


def test_unknown_action_mutates_nothing(client, seed):
    seed(make_donor('Amy', '111'))
    body = post(client, action='dropTable', rowIndex=2)
    assert body == {'success': False, 'error': 'Unknown action: dropTable'}
    assert names(client) == ['Amy']


def test_missing_action(client):
    body = post(client, rowIndex=2)
    assert body == {'success': False, 'error': 'Unknown action: None'}


def test_empty_body(client):
    body = client.post(URL).get_json()
    assert body == {'success': False, 'error': 'No data received'}


def test_text_plain_json_body_is_parsed(client, seed):
    seed(make_donor('Amy', '111'))
    response = client.post(
        URL,
        data=json.dumps({'action': 'updateDonorStatus', 'rowIndex': 2, 'newStatus': 'Booked'}),
        content_type='text/plain;charset=UTF-8',
    )
    assert response.get_json()['success'] is True
    assert DonorRow.query.one().status == 'Booked'


def test_unparsable_body_falls_back_to_form_parameters(client, seed):
    seed(make_donor('Amy', '111'), make_donor('Ben', '222'))
    response = client.post(URL, data={'action': 'deleteDonor', 'rowIndex': '3'})
    assert response.get_json()['success'] is True
    assert names(client) == ['Amy']


def test_form_donor_is_decoded_from_json(client):
    response = client.post(URL, data={
        'action': 'addDonor',
        'donor': json.dumps({'donorName': 'Amy', 'phoneNumber': '111'}),
    })
    assert response.get_json()['success'] is True
    assert names(client) == ['Amy']


def test_missing_donor_grid(client):
    DonorRow.__table__.drop(db.engine)
    body = post(client, action='addDonor', donor=make_donor('Amy', '111'))
    assert body == {'success': False, 'error': 'Donor sheet not found'}


def test_missing_inventory_grid(client):
    InventoryRow.__table__.drop(db.engine)
    body = post(client, action='updateInventory', bloodUnits=1, plasmaUnits=1, plateletUnits=1)
    assert body == {'success': False, 'error': 'Inventory sheet not found'}


def test_snapshot_starts_with_zeroed_inventory(client):
    snapshot = client.get(URL + 'snapshot').get_json()
    assert snapshot['donorRecords'] == []
    assert snapshot['inventory'] == {
        'bloodUnitsAvailable': 0,
        'plasmaUnitsAvailable': 0,
        'plateletUnitsAvailable': 0,
        'lastUpdated': '',
    }
