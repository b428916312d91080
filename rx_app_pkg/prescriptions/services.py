# rx_app_pkg/prescriptions/services.py
import datetime
from flask import current_app, g
from sqlalchemy import update as sql_update, delete as sql_delete
from sqlalchemy.exc import SQLAlchemyError
from .. import db
from ..models import Prescription, PatientData, FormEncounter, ListEntry
from ..coding.services import add_coding
from ..uuid_registry.services import (create_uuid, create_missing_uuids, get_id_by_uuid, uuid_to_bytes,
                                      uuid_to_string)
from ..validators.base import lookup_code_title
from ..validators.prescription import (PrescriptionValidator, DATABASE_INSERT_CONTEXT,
                                       DATABASE_UPDATE_CONTEXT)
from ..validators.processing_result import ProcessingResult
from .queries import build_prescription_query
from .search import PatientFilter, PrescriptionIdFilter, validate_filters, build_where_clause

PRESCRIPTION_TABLE = 'prescriptions'

# Payload fields stored as-is
DIRECT_COLUMNS = [
    'start_date', 'end_date', 'route', 'drug', 'drug_id', 'rxnorm_drugcode', 'quantity', 'dosage',
    'size', 'refills', 'per_refill', 'note', 'drug_dosage_instructions',
    'usage_category', 'usage_category_title', 'request_intent', 'request_intent_title',
]
# Payload booleans stored as 0/1
FLAG_COLUMNS = ['medication', 'substitute', 'active']
# Coded payload field -> prescriptions column holding the option_id
CODED_COLUMNS = {
    'form_id': 'form',
    'route_id': 'route',
    'interval_id': 'interval',
    'unit_id': 'unit',
}
# option_id column -> (title column, list_id) filled from list_options when no title was sent
CODE_TITLE_COLUMNS = {
    'usage_category': ('usage_category_title', 'medication-usage-category'),
    'request_intent': ('request_intent_title', 'medication-request-intent'),
}
# NOT NULL columns: an explicit null in the payload falls back to the column default
NOT_NULL_DEFAULTS = {
    'drug_id': 0,
    'usage_category_title': '',
    'request_intent_title': '',
}


def _current_actor():
    """The user acting in this request, if one was authenticated."""
    return getattr(g, 'current_user', None)


class PrescriptionService:
    """
    Insert, update, read and delete prescriptions.
    Every operation returns a ProcessingResult; nothing here raises for bad input.
    """

    UUID_FIELDS = ['uuid', 'euuid', 'pruuid', 'drug_uuid', 'puuid']

    def __init__(self):
        self.prescription_validator = PrescriptionValidator()

    def get_uuid_fields(self):
        return list(self.UUID_FIELDS)

    def _build_columns(self, values):
        columns = {field: values[field] for field in DIRECT_COLUMNS if field in values}
        for column, default in NOT_NULL_DEFAULTS.items():
            if column in columns and columns[column] is None:
                columns[column] = default
        for field in FLAG_COLUMNS:
            if values.get(field) is not None:
                columns[field] = 1 if values[field] else 0
        for field, column in CODED_COLUMNS.items():
            if values.get(field) is not None:
                columns[column] = values[field]
        for column, (title_column, list_id) in CODE_TITLE_COLUMNS.items():
            if columns.get(column) and not columns.get(title_column):
                columns[title_column] = lookup_code_title(columns[column], list_id) or ''
        if values.get('encounter_id') is not None:
            encounter = db.session.get(FormEncounter, values['encounter_id'])
            columns['encounter'] = encounter.encounter if encounter else None
        return columns

    def insert(self, data):
        validation = self.prescription_validator.validate(data, DATABASE_INSERT_CONTEXT)
        if not validation.is_valid():
            return validation
        values = validation.data[0]

        processing_result = ProcessingResult()
        actor = _current_actor()
        try:
            prescription_uuid = create_uuid(PRESCRIPTION_TABLE, Prescription)
            prescription = Prescription(
                uuid=prescription_uuid,
                patient_id=get_id_by_uuid(values['puuid'], PatientData, 'pid'),
                date_added=datetime.datetime.utcnow(),
                created_by=actor.id if actor else None,
                user=actor.username if actor else None,
                **self._build_columns(values)
            )
            db.session.add(prescription)
            db.session.commit()
        except SQLAlchemyError as e:
            db.session.rollback()
            current_app.logger.error(f"[PrescriptionService] Insert failed: {e}")
            processing_result.add_internal_error("error processing SQL Insert")
            return processing_result

        current_app.logger.info(f"[PrescriptionService] Prescription {prescription.id} created for patient {values['puuid']}.")
        processing_result.add_data({
            'id': prescription.id,
            'uuid': uuid_to_string(prescription_uuid)
        })
        return processing_result

    def update(self, puuid, presuuid, data):
        if not data:
            processing_result = ProcessingResult()
            processing_result.add_validation_message('data', "Invalid Data")
            return processing_result

        data = dict(data)
        data['uuid'] = presuuid
        data['puuid'] = puuid
        validation = self.prescription_validator.validate(data, DATABASE_UPDATE_CONTEXT)
        if not validation.is_valid():
            return validation

        if not self.prescription_validator.validate_prescription_belongs_to_patient(puuid, presuuid):
            current_app.logger.warning(f"[PrescriptionService] Prescription {presuuid} does not belong to patient {puuid}.")
            processing_result = ProcessingResult()
            processing_result.set_validation_messages({"presuuid": "Prescription doesn't belong to Patient"})
            return processing_result

        values = validation.data[0]
        columns = self._build_columns(values)
        actor = _current_actor()
        columns['date_modified'] = datetime.datetime.utcnow()
        columns['updated_by'] = actor.id if actor else None

        try:
            db.session.execute(
                sql_update(Prescription)
                .where(Prescription.uuid == uuid_to_bytes(values['uuid']))
                .values(**columns)
            )
            db.session.commit()
        except SQLAlchemyError as e:
            db.session.rollback()
            current_app.logger.error(f"[PrescriptionService] Update of {presuuid} failed: {e}")
            processing_result = ProcessingResult()
            processing_result.add_internal_error("error processing SQL Update")
            return processing_result

        current_app.logger.info(f"[PrescriptionService] Prescription {presuuid} updated.")
        return self.get_one(presuuid)

    def get_one(self, uuid, puuid_bind=None):
        """
        Returns a single medication record by uuid.
        puuid_bind restricts visibility to that patient.
        """
        return self.get_all([PrescriptionIdFilter(uuid)], True, puuid_bind)

    def get_all(self, filters=None, is_and=True, puuid_bind=None):
        """
        Returns medication records from both sources matching the filters.
        No filters returns everything. Filters combine with AND unless is_and is False;
        the patient bind, when given, always applies.
        """
        filters = list(filters or [])
        validation = validate_filters(filters)
        if not validation.is_valid():
            return validation

        bind_filter = None
        if puuid_bind:
            bind_filter = PatientFilter(puuid_bind)
            bind_validation = bind_filter.validate()
            if not bind_validation.is_valid():
                return bind_validation

        statement, columns = build_prescription_query()
        where_clause = build_where_clause(filters, columns, is_and)
        if where_clause is not None:
            statement = statement.where(where_clause)
        if bind_filter is not None:
            statement = statement.where(bind_filter.to_clause(columns))

        processing_result = ProcessingResult()
        try:
            # legacy rows written without a uuid get one before they are listed
            create_missing_uuids([Prescription, ListEntry])
            rows = db.session.execute(statement).mappings().all()
        except SQLAlchemyError as e:
            db.session.rollback()
            current_app.logger.error(f"[PrescriptionService] Medication search failed: {e}")
            processing_result.add_internal_error("error processing SQL Select")
            return processing_result

        for row in rows:
            processing_result.add_data(self.create_result_record(row))
        return processing_result

    def create_result_record(self, row):
        """Shapes one view row into an output record and resolves its drug code."""
        record = {}
        uuid_fields = self.get_uuid_fields()
        for key, value in row.items():
            if key in uuid_fields:
                value = uuid_to_string(value)
            elif isinstance(value, (datetime.date, datetime.datetime)):
                value = value.isoformat()
            record[key] = value

        if record.get('rxnorm_drugcode'):
            updated_codes = {}
            for code, code_values in add_coding(row['rxnorm_drugcode']).items():
                if not code_values.get('description'):
                    # no description from the lookup, fall back to the drug name
                    code_values['description'] = row['drug']
                updated_codes[code] = code_values
            record['drugcode'] = updated_codes
        return record

    def delete(self, puuid, uuid):
        processing_result = ProcessingResult()

        is_valid_prescription = self.prescription_validator.validate_id('uuid', Prescription, uuid, is_uuid=True)
        is_valid_patient = self.prescription_validator.validate_id('uuid', PatientData, puuid, is_uuid=True)
        if not is_valid_prescription.is_valid() or not is_valid_patient.is_valid():
            return processing_result

        pid = get_id_by_uuid(puuid, PatientData, 'pid')
        try:
            outcome = db.session.execute(
                sql_delete(Prescription)
                .where(Prescription.patient_id == pid, Prescription.uuid == uuid_to_bytes(uuid))
            )
            db.session.commit()
        except SQLAlchemyError as e:
            db.session.rollback()
            current_app.logger.error(f"[PrescriptionService] Delete of {uuid} failed: {e}")
            processing_result.add_internal_error("error processing SQL Delete")
            return processing_result

        if outcome.rowcount == 0:
            current_app.logger.info(f"[PrescriptionService] Nothing deleted for prescription {uuid} of patient {puuid}.")
            return processing_result

        current_app.logger.info(f"[PrescriptionService] Prescription {uuid} deleted.")
        processing_result.add_data({'uuid': uuid})
        return processing_result
