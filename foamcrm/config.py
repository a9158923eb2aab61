import os

class BaseConfig:
    SECRET_KEY = os.getenv('SECRET_KEY', 'change-me')
    SQLALCHEMY_DATABASE_URI = os.getenv('DATABASE_URL', 'sqlite:///foamcrm.db')
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SESSION_COOKIE_SAMESITE = 'Lax'
    SESSION_COOKIE_SECURE = False

    # Pricing / approval settings
    ESTIMATE_MARKUP_PERCENT = float(os.getenv('ESTIMATE_MARKUP_PERCENT', '0'))
    RATE_TABLE_VERSION = os.getenv('RATE_TABLE_VERSION', '2025-09')
    # Header the upstream auth layer sets with the acting user's id
    ACTOR_HEADER = os.getenv('ACTOR_HEADER', 'X-User-Id')

class DevConfig(BaseConfig):
    DEBUG = True
    ENV = 'development'

class ProdConfig(BaseConfig):
    DEBUG = False
    ENV = 'production'
    SESSION_COOKIE_SECURE = True

class TestConfig(BaseConfig):
    TESTING = True
    ENV = 'testing'
    SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'
