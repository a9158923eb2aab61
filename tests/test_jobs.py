from conftest import as_user
from foamcrm import db
from foamcrm.estimates.approval import approve_estimate
from foamcrm.estimates.utils import create_estimate
from foamcrm.models import Estimate, Job, Measurement


def test_create_job(client, salesperson):
    resp = client.post('/jobs', json={'job_name': 'Lee garage', 'framing_size': '2x4'},
                       headers=as_user(salesperson))

    assert resp.status_code == 201
    job = resp.get_json()['job']
    assert job['framing_size'] == '2x4'
    assert job['workflow_status'] == 'measuring'
    assert job['locked_by_estimate_id'] is None
    assert db.session.get(Job, job['id']).job_name == 'Lee garage'


def test_create_job_validation(client, salesperson):
    resp = client.post('/jobs', json={'job_name': '  '}, headers=as_user(salesperson))
    assert resp.status_code == 400
    assert resp.get_json()['field'] == 'job_name'

    resp = client.post('/jobs', json={'job_name': 'Shed', 'framing_size': '2x3'},
                       headers=as_user(salesperson))
    assert resp.status_code == 400
    assert resp.get_json()['field'] == 'framing_size'

    assert client.post('/jobs', json={'job_name': 'Shed'}).status_code == 403
    assert Job.query.count() == 0


def test_list_measurements_prices_each_row(client, job, salesperson):
    resp = client.post(f'/jobs/{job.id}/measurements',
                       json={'room_name': 'Bedroom', 'height': 8, 'width': 10,
                             'insulation_type': 'hybrid',
                             'closed_cell_inches': 2, 'open_cell_inches': 3},
                       headers=as_user(salesperson))
    assert resp.status_code == 201
    assert resp.get_json()['measurement']['r_value'] == 'R-25'

    client.post(f'/jobs/{job.id}/measurements',
                json={'room_name': 'Attic', 'surface_type': 'ceiling', 'height': 10,
                      'width': 10, 'insulation_type': 'batt', 'thickness_inches': 3.5},
                headers=as_user(salesperson))

    rows = client.get(f'/jobs/{job.id}/measurements').get_json()['measurements']

    assert [r['room_name'] for r in rows] == ['Bedroom', 'Attic']
    assert rows[0]['unit_price'] == 3.899
    assert rows[0]['line_cost'] == 311.92
    assert rows[1]['unit_price'] == 0.8015
    assert rows[1]['line_cost'] == 80.15


def test_underfilled_cavity_warning_returned(client, job, salesperson):
    resp = client.post(f'/jobs/{job.id}/measurements',
                       json={'room_name': 'Den', 'height': 8, 'width': 10,
                             'insulation_type': 'hybrid',
                             'closed_cell_inches': 1, 'open_cell_inches': 1},
                       headers=as_user(salesperson))
    assert resp.status_code == 201
    assert resp.get_json()['warnings'] == [
        'Only using 2" of 5.5" available cavity depth (36%)']


def test_delete_job_requires_manager(client, job, salesperson, add_measurement):
    add_measurement(job)

    resp = client.delete(f'/jobs/{job.id}', headers=as_user(salesperson))

    assert resp.status_code == 403
    assert db.session.get(Job, job.id) is not None


def test_delete_job_cascades(client, job, manager, add_measurement):
    add_measurement(job)
    add_measurement(job, room_name='Kitchen')
    est = create_estimate(job.id, manager)
    approve_estimate(est.id, manager)
    job_id = job.id

    resp = client.delete(f'/jobs/{job_id}', headers=as_user(manager))

    assert resp.status_code == 200
    assert db.session.get(Job, job_id) is None
    assert Measurement.query.filter_by(job_id=job_id).count() == 0
    assert Estimate.query.filter_by(job_id=job_id).count() == 0
    assert client.get(f'/jobs/{job_id}').status_code == 404
