import uuid as uuid_lib
import pytest

from rx_app_pkg import db
from rx_app_pkg.models import UuidRegistry, PatientData, Drug, Prescription
from rx_app_pkg.uuid_registry.commands import backfill_uuids_command
from rx_app_pkg.uuid_registry.services import (uuid_to_bytes, uuid_to_string, try_uuid_to_bytes, is_valid_uuid,
                                               get_id_by_uuid, create_uuid, create_missing_uuids)
from conftest import PATIENT_UUID


class TestUuidConversion:
    """String <-> 16 byte conversion."""

    def test_canonical_string_round_trips(self):
        value = str(uuid_lib.uuid4())
        assert uuid_to_string(uuid_to_bytes(value)) == value

    def test_uppercase_is_accepted_and_normalized(self):
        value = str(uuid_lib.uuid4())
        assert uuid_to_string(uuid_to_bytes(value.upper())) == value

    def test_binary_value_passes_through(self):
        raw = uuid_lib.uuid4().bytes
        assert uuid_to_bytes(raw) == raw

    @pytest.mark.parametrize('value', [
        'not-a-uuid',
        '',
        '9a1c6d3e5b0f4c2a8e7d1f2a3b4c5d6e',
        '{9a1c6d3e-5b0f-4c2a-8e7d-1f2a3b4c5d6e}',
        None,
        42,
        b'short',
    ])
    def test_malformed_values_are_rejected(self, value):
        assert try_uuid_to_bytes(value) is None
        assert not is_valid_uuid(value)

    def test_uuid_to_bytes_raises_on_malformed(self):
        with pytest.raises(ValueError):
            uuid_to_bytes('not-a-uuid')

    def test_uuid_to_string_keeps_none(self):
        assert uuid_to_string(None) is None


class TestRegistry:

    def test_get_id_by_uuid(self, seeded):
        assert get_id_by_uuid(PATIENT_UUID, PatientData, 'pid') == 1
        assert get_id_by_uuid(str(uuid_lib.uuid4()), PatientData, 'pid') is None
        assert get_id_by_uuid('garbage', PatientData, 'pid') is None

    def test_create_uuid_registers_value(self, app):
        value = create_uuid('prescriptions', Prescription)
        db.session.commit()

        assert len(value) == 16
        entry = db.session.get(UuidRegistry, value)
        assert entry is not None
        assert entry.table_name == 'prescriptions'

    def test_create_uuid_values_are_distinct(self, app):
        values = {create_uuid('drugs') for _ in range(5)}
        db.session.commit()
        assert len(values) == 5

    def test_create_missing_uuids_fills_only_empty_rows(self, seeded):
        db.session.add(Drug(drug_id=2, name='Warfarin 5mg'))
        db.session.commit()
        existing = db.session.get(Drug, 1).uuid

        counts = create_missing_uuids([Drug])

        assert counts == {'drugs': 1}
        assert db.session.get(Drug, 2).uuid is not None
        assert db.session.get(Drug, 1).uuid == existing

    def test_backfill_command(self, seeded):
        db.session.add(PatientData(pid=3, fname='No', lname='Uuid'))
        db.session.commit()

        result = seeded.test_cli_runner().invoke(backfill_uuids_command)

        assert result.exit_code == 0
        assert 'patient_data: 1' in result.output
        assert PatientData.query.filter_by(pid=3).first().uuid is not None
