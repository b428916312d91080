"""
Shared pytest fixtures.

The app runs on TestingConfig (in-memory SQLite). `seeded` loads a small chart:
two patients, a credentialed practitioner and a nurse without an NPI, one formulary
drug, the coded option lists, four prescriptions and two medication list entries.
"""
import datetime
import pytest

from rx_app_pkg import create_app, db
from rx_app_pkg.models import (User, Role, Permission, PatientData, FormEncounter, Drug, ListOption,
                               MedicalCode, Prescription, ListEntry, ListMedication, IssueEncounter)
from rx_app_pkg.uuid_registry.services import uuid_to_bytes

PATIENT_UUID = '9a1c6d3e-5b0f-4c2a-8e7d-1f2a3b4c5d6e'
OTHER_PATIENT_UUID = '2b7e9f10-3c4d-4e5f-9a0b-1c2d3e4f5a6b'
ENCOUNTER_UUID = '5e8f0a1b-2c3d-4e5f-8a9b-0c1d2e3f4a5b'
FIRST_ENCOUNTER_UUID = '6f9a1b2c-3d4e-4f5a-9b0c-1d2e3f4a5b6c'
PRACTITIONER_UUID = '7a0b2c3d-4e5f-4a6b-8c1d-2e3f4a5b6c7d'
NURSE_UUID = '8b1c3d4e-5f6a-4b7c-9d2e-3f4a5b6c7d8e'
DRUG_UUID = '9c2d4e5f-6a7b-4c8d-8e3f-4a5b6c7d8e9f'

RX_ACTIVE_UUID = 'a1b2c3d4-e5f6-4a7b-8c9d-0e1f2a3b4c5d'
RX_COMPLETED_UUID = 'b2c3d4e5-f6a7-4b8c-9d0e-1f2a3b4c5d6e'
RX_STOPPED_UUID = 'c3d4e5f6-a7b8-4c9d-8e1f-2a3b4c5d6e7f'
RX_OTHER_PATIENT_UUID = 'd4e5f6a7-b8c9-4d0e-9f2a-3b4c5d6e7f8a'
LIST_MED_UUID = 'e5f6a7b8-c9d0-4e1f-8a3b-4c5d6e7f8a9b'
LIST_STOPPED_UUID = 'f6a7b8c9-d0e1-4f2a-9b4c-5d6e7f8a9b0c'
LIST_ALLERGY_UUID = '0a7b8c9d-e1f2-4a3b-8c5d-6e7f8a9b0c1d'

API_USERNAME = 'rx.clerk'
API_PASSWORD = 'correct-horse-battery'

ALL_PERMISSIONS = ['prescription:read', 'prescription:create', 'prescription:update',
                   'prescription:delete', 'user:logout']


@pytest.fixture
def app():
    app = create_app('testing')
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def seeded(app):
    patient = PatientData(pid=1, uuid=uuid_to_bytes(PATIENT_UUID), fname='Ada', lname='Okafor',
                          dob=datetime.date(1961, 4, 2))
    other_patient = PatientData(pid=2, uuid=uuid_to_bytes(OTHER_PATIENT_UUID), fname='Luis', lname='Brandt')
    encounter = FormEncounter(id=1, encounter=5001, pid=1, uuid=uuid_to_bytes(ENCOUNTER_UUID))
    first_encounter = FormEncounter(id=2, encounter=5000, pid=1, uuid=uuid_to_bytes(FIRST_ENCOUNTER_UUID))

    practitioner = User(id=1, username='dr.hale', uuid=uuid_to_bytes(PRACTITIONER_UUID),
                        fname='Miriam', lname='Hale', npi='1234567893')
    nurse = User(id=2, username='nurse.ito', uuid=uuid_to_bytes(NURSE_UUID), fname='Ken', lname='Ito', npi='')

    drug = Drug(drug_id=1, uuid=uuid_to_bytes(DRUG_UUID), name='Lisinopril 10mg', drug_code='314076',
                unit='mg', route='oral')

    options = [
        ListOption(list_id='drug_route', option_id='oral', title='Oral', codes='NCI-CONCEPT-ID:C38288'),
        ListOption(list_id='drug_route', option_id='IM', title='Intramuscular', codes='NCI-CONCEPT-ID:C28161'),
        ListOption(list_id='drug_interval', option_id='1', title='b.i.d.'),
        ListOption(list_id='drug_interval', option_id='2', title='t.i.d.'),
        ListOption(list_id='drug_units', option_id='mg', title='mg'),
        ListOption(list_id='drug_form', option_id='1', title='suspension'),
        ListOption(list_id='drug_form', option_id='2', title='tablet'),
        ListOption(list_id='medication-usage-category', option_id='community', title='Home/Community'),
        ListOption(list_id='medication-usage-category', option_id='inpatient', title='Inpatient'),
        ListOption(list_id='medication-request-intent', option_id='order', title='Order'),
        ListOption(list_id='medication-request-intent', option_id='plan', title='Plan'),
    ]

    rxnorm_code = MedicalCode(code_type='RXCUI', code='314076', code_text='lisinopril 10 MG Oral Tablet')

    prescriptions = [
        Prescription(uuid=uuid_to_bytes(RX_ACTIVE_UUID), patient_id=1, drug='Lisinopril', drug_id=1,
                     rxnorm_drugcode='', interval='1', encounter=5001, provider_id=1, active=1,
                     start_date=datetime.date(2024, 1, 2), date_added=datetime.datetime(2024, 1, 2, 9, 0)),
        Prescription(uuid=uuid_to_bytes(RX_COMPLETED_UUID), patient_id=1, drug='Amoxicillin',
                     rxnorm_drugcode='RXCUI:723', route='oral', provider_id=2, active=1,
                     start_date=datetime.date(2024, 1, 3), end_date=datetime.date(2024, 1, 13),
                     date_added=datetime.datetime(2024, 1, 3, 9, 0)),
        Prescription(uuid=uuid_to_bytes(RX_STOPPED_UUID), patient_id=1, drug='Metformin', active=0,
                     start_date=datetime.date(2024, 1, 4), date_added=datetime.datetime(2024, 1, 4, 9, 0)),
        Prescription(uuid=uuid_to_bytes(RX_OTHER_PATIENT_UUID), patient_id=2, drug='Atorvastatin', active=1,
                     start_date=datetime.date(2024, 1, 5), date_added=datetime.datetime(2024, 1, 5, 9, 0)),
    ]

    list_medication = ListEntry(id=10, uuid=uuid_to_bytes(LIST_MED_UUID), pid=1, type='medication',
                                title='Aspirin 81mg', diagnosis='RXCUI:243670', activity=1, user='dr.hale',
                                comments='daily with breakfast', date=datetime.datetime(2023, 12, 1, 8, 0))
    list_stopped = ListEntry(id=11, uuid=uuid_to_bytes(LIST_STOPPED_UUID), pid=1, type='medication',
                             title='Ibuprofen', activity=0, enddate=datetime.datetime(2023, 11, 20),
                             date=datetime.datetime(2023, 11, 1, 8, 0))
    list_allergy = ListEntry(id=12, uuid=uuid_to_bytes(LIST_ALLERGY_UUID), pid=1, type='allergy',
                             title='Penicillin', activity=1, date=datetime.datetime(2023, 10, 1, 8, 0))
    medication_detail = ListMedication(list_id=10, usage_category='community', usage_category_title='Home/Community',
                                       request_intent='plan', request_intent_title='Plan',
                                       drug_dosage_instructions='1 tablet by mouth daily')
    issue_encounters = [
        IssueEncounter(pid=1, list_id=10, encounter=5001),
        IssueEncounter(pid=1, list_id=10, encounter=5000),
    ]

    db.session.add_all([patient, other_patient, encounter, first_encounter, practitioner, nurse, drug,
                        rxnorm_code, list_medication, list_stopped, list_allergy, medication_detail])
    db.session.add_all(options)
    db.session.add_all(prescriptions)
    db.session.add_all(issue_encounters)
    db.session.commit()
    return app


@pytest.fixture
def api_user(seeded):
    permissions = [Permission(name=name) for name in ALL_PERMISSIONS]
    role = Role(name='prescriber', permissions=permissions)
    user = User(username=API_USERNAME, fname='Rx', lname='Clerk', roles=[role])
    user.set_password(API_PASSWORD)
    db.session.add(user)
    db.session.commit()
    return user


@pytest.fixture
def auth_headers(client, api_user):
    response = client.post('/api/auth/login', json={'username': API_USERNAME, 'password': API_PASSWORD})
    assert response.status_code == 200
    return {'Authorization': f"Bearer {response.get_json()['access_token']}"}
