import os


class Config:
    SECRET_KEY = os.getenv('SECRET_KEY', 'dev-secret-key-change-in-prod')

    # Database
    DATABASE_URL = os.getenv('DATABASE_URL', 'sqlite:///boggle.db')
    SQLALCHEMY_DATABASE_URI = DATABASE_URL
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Public URL, used for links in notifications
    APP_URL = os.getenv('APP_URL', 'http://localhost:5000')

    # Identity (injected by the edge access layer)
    IDENTITY_HEADER = os.getenv('IDENTITY_HEADER', 'CF-Access-Authenticated-User-Email')
    DEV_USER_EMAIL = os.getenv('DEV_USER_EMAIL')

    # Notifications (ntfy)
    NTFY_SERVER = os.getenv('NTFY_SERVER', 'https://ntfy.sh')
    NTFY_TOPIC = os.getenv('NTFY_TOPIC', '')
    NTFY_TIMEOUT = int(os.getenv('NTFY_TIMEOUT', '5'))
    NTFY_ASYNC = os.getenv('NTFY_ASYNC', 'true').lower() == 'true'

    # Games
    DEFAULT_TIMER_SECONDS = int(os.getenv('DEFAULT_TIMER_SECONDS', '120'))
    MIN_TIMER_SECONDS = int(os.getenv('MIN_TIMER_SECONDS', '1'))
    MAX_TIMER_SECONDS = int(os.getenv('MAX_TIMER_SECONDS', '3600'))

    # Tournaments
    DEFAULT_TARGET_SCORE = int(os.getenv('DEFAULT_TARGET_SCORE', '100'))
    MAX_TARGET_SCORE = int(os.getenv('MAX_TARGET_SCORE', '10000'))

    # Janitor
    LOBBY_TTL_SECONDS = int(os.getenv('LOBBY_TTL_SECONDS', '600'))
    PLAYING_GRACE_FACTOR = int(os.getenv('PLAYING_GRACE_FACTOR', '2'))
    TOURNAMENT_IDLE_SECONDS = int(os.getenv('TOURNAMENT_IDLE_SECONDS', '3600'))

    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')


class DevelopmentConfig(Config):
    DEBUG = True
    DEV_USER_EMAIL = os.getenv('DEV_USER_EMAIL', 'dev@localhost')


class ProductionConfig(Config):
    DEBUG = False


class TestingConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    DEV_USER_EMAIL = None
    NTFY_TOPIC = ''
    NTFY_ASYNC = False


config = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig,
    'default': DevelopmentConfig
}
