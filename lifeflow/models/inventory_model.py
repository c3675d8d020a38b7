from lifeflow.extensions import db

INVENTORY_HEADERS = ['Blood Units', 'Plasma Units', 'Platelet Units', 'Last Updated']

# The inventory grid holds exactly one data row; this is its key
INVENTORY_ROW_ID = 1


class InventoryRow(db.Model):
    __tablename__ = 'inventory_row'

    id = db.Column(db.Integer, primary_key=True)
    blood_units = db.Column(db.Integer, nullable=False, default=0)
    plasma_units = db.Column(db.Integer, nullable=False, default=0)
    platelet_units = db.Column(db.Integer, nullable=False, default=0)
    last_updated = db.Column(db.String(40), nullable=False, default='')

    @classmethod
    def current(cls):
        """Return the single inventory row, adding a zeroed one on first use"""
        row = cls.query.filter_by(id=INVENTORY_ROW_ID).first()
        if row is None:
            row = cls(id=INVENTORY_ROW_ID)
            db.session.add(row)
            db.session.flush()
        return row

    def to_dict(self):
        return {
            'bloodUnitsAvailable': self.blood_units,
            'plasmaUnitsAvailable': self.plasma_units,
            'plateletUnitsAvailable': self.platelet_units,
            'lastUpdated': self.last_updated,
        }

    def __repr__(self):
        return f'<InventoryRow blood={self.blood_units} plasma={self.plasma_units} platelets={self.platelet_units}>'
