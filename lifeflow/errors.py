class LifeflowError(Exception):
    """Base class for every error raised by lifeflow"""


# Spreadsheet store side

class GridNotFoundError(LifeflowError):
    def __init__(self, grid):
        super().__init__(f'{grid} sheet not found')
        self.grid = grid


class RowOutOfRangeError(LifeflowError):
    def __init__(self, row_index):
        super().__init__(f'Row {row_index} is out of range')
        self.row_index = row_index


class ActionError(LifeflowError):
    """The envelope is missing a field or carries one of the wrong type"""


# Client side

class SheetsAPIError(LifeflowError):
    kind = 'api'


class TransportError(SheetsAPIError):
    """The request never produced a readable response"""
    kind = 'transport'


class EndpointError(SheetsAPIError):
    """The endpoint answered with success: false"""
    kind = 'endpoint'

    def __init__(self, message, body=None):
        super().__init__(message)
        self.body = body or {}


class RecordNotFoundError(SheetsAPIError):
    kind = 'local'

    def __init__(self, message='Could not find original record'):
        super().__init__(message)
