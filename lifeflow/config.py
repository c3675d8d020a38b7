import os


class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY', 'lifeflow-dev-key')
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL', 'sqlite:///lifeflow.db')
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Where the dashboard sends its writes and reads its snapshot
    SHEETS_ENDPOINT_URL = os.environ.get('SHEETS_ENDPOINT_URL', 'http://localhost:5000/api/v1/sheet/')
    SNAPSHOT_URL = os.environ.get('SNAPSHOT_URL', 'http://localhost:5000/api/v1/sheet/snapshot')

    SETTLE_DELAY_SECONDS = float(os.environ.get('SETTLE_DELAY_SECONDS', '1.0'))
    POLL_INTERVAL_SECONDS = int(os.environ.get('POLL_INTERVAL_SECONDS', '300'))  # every 5 minutes
    REQUEST_TIMEOUT_SECONDS = float(os.environ.get('REQUEST_TIMEOUT_SECONDS', '10'))
    REQUEST_RETRIES = int(os.environ.get('REQUEST_RETRIES', '3'))
    REQUEST_BACKOFF_FACTOR = float(os.environ.get('REQUEST_BACKOFF_FACTOR', '0.5'))

    DEFAULT_PAGE_SIZE = 10
    PAGE_SIZES = (10, 25, 50)

    SCHEDULER_ENABLED = True
    SCHEDULER_API_ENABLED = False
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')


class DevelopmentConfig(Config):
    DEBUG = True


class ProductionConfig(Config):
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL', 'mysql+pymysql://root:@localhost/lifeflow')


class TestingConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SHEETS_ENDPOINT_URL = 'http://testserver/api/v1/sheet/'
    SNAPSHOT_URL = 'http://testserver/api/v1/sheet/snapshot'
    SETTLE_DELAY_SECONDS = 0
    POLL_INTERVAL_SECONDS = 0
    REQUEST_RETRIES = 0
    SCHEDULER_ENABLED = False


CONFIGS = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig,
}
