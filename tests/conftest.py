import os
import sys

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

import pytest

from foamcrm import create_app, db
from foamcrm.models import Job, Measurement, User


@pytest.fixture
def app():
    app = create_app('testing')
    app.config.update(SQLALCHEMY_DATABASE_URI='sqlite:///:memory:')
    with app.app_context():
        db.drop_all()
        db.create_all()
        yield app
        db.session.remove()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def manager(app):
    u = User(email='boss@example.com', full_name='Boss', role='manager')
    db.session.add(u)
    db.session.commit()
    return u


@pytest.fixture
def salesperson(app):
    u = User(email='rep@example.com', full_name='Rep', role='salesperson')
    db.session.add(u)
    db.session.commit()
    return u


@pytest.fixture
def job(app):
    j = Job(job_name='Smith attic', framing_size='2x6')
    db.session.add(j)
    db.session.commit()
    return j


@pytest.fixture
def add_measurement(app):
    def _add(job, height=10.0, width=8.0, insulation_type='closed_cell', **kw):
        m = Measurement(job_id=job.id, room_name=kw.pop('room_name', 'Living room'),
                        surface_type='wall', height=height, width=width,
                        square_feet=height * width, insulation_type=insulation_type, **kw)
        db.session.add(m)
        db.session.commit()
        return m
    return _add


def as_user(user):
    return {'X-User-Id': str(user.id)}
