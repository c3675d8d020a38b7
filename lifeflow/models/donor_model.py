import uuid
from datetime import datetime, timezone
from lifeflow.extensions import db

# Header row of the donor grid, column A through H
DONOR_HEADERS = [
    'Timestamp', 'Donor Name', 'Phone Number', 'Channel',
    'Donation Type', 'Appointment Date', 'Time', 'Status',
]

# Data starts under the header row, so position 0 is row 2
HEADER_ROWS = 1
FIRST_DATA_ROW = HEADER_ROWS + 1

DEFAULT_STATUS = 'Queued'


def new_record_id():
    return uuid.uuid4().hex


def utc_timestamp():
    return datetime.now(timezone.utc).isoformat(timespec='milliseconds').replace('+00:00', 'Z')


class DonorRow(db.Model):
    __tablename__ = 'donor_row'

    id = db.Column(db.Integer, primary_key=True)
    record_id = db.Column(db.String(32), nullable=False, unique=True, default=new_record_id)
    position = db.Column(db.Integer, nullable=False, index=True)  # 0-based order in the grid

    timestamp = db.Column(db.String(40), nullable=False, default='')
    donor_name = db.Column(db.String(120), nullable=False, default='')
    phone_number = db.Column(db.String(40), nullable=False, default='')
    channel = db.Column(db.String(60), nullable=False, default='')
    donation_type = db.Column(db.String(60), nullable=False, default='')
    appointment_date = db.Column(db.String(40), nullable=False, default='')
    time = db.Column(db.String(20), nullable=False, default='')
    status = db.Column(db.String(40), nullable=False, default=DEFAULT_STATUS)  # free text, not an enum

    # camelCase envelope field -> column, in grid order after the timestamp
    FIELDS = (
        ('donorName', 'donor_name'),
        ('phoneNumber', 'phone_number'),
        ('channel', 'channel'),
        ('donationType', 'donation_type'),
        ('appointmentDate', 'appointment_date'),
        ('time', 'time'),
        ('status', 'status'),
    )

    @property
    def row_index(self):
        return self.position + FIRST_DATA_ROW

    def to_dict(self):
        data = {'timestamp': self.timestamp}
        for key, column in self.FIELDS:
            data[key] = getattr(self, column)
        data['recordId'] = self.record_id
        data['rowIndex'] = self.row_index
        return data

    def to_row(self):
        """Values as they appear across the grid's columns"""
        return [self.timestamp] + [getattr(self, column) for _, column in self.FIELDS]

    def __repr__(self):
        return f'<DonorRow {self.row_index} {self.donor_name}>'
