# rx_app_pkg/validators/prescription.py
from flask import current_app
from pydantic import ValidationError
from ..models import PatientData, FormEncounter, Drug, Prescription
from ..uuid_registry.services import try_uuid_to_bytes, get_id_by_uuid
from .base import validate_id, validate_code, validate_code_title
from .processing_result import ProcessingResult
from .schemas import PrescriptionInsert, PrescriptionUpdate

DATABASE_INSERT_CONTEXT = 'insert'
DATABASE_UPDATE_CONTEXT = 'update'

# input field -> (model, column, is_uuid)
INSERT_REFERENCE_RULES = {
    'puuid': (PatientData, 'uuid', True),
    'encounter_id': (FormEncounter, 'id', False),
    'drug_id': (Drug, 'drug_id', False),
}
UPDATE_REFERENCE_RULES = {
    'uuid': (Prescription, 'uuid', True),
    'puuid': (PatientData, 'uuid', True),
    'encounter_id': (FormEncounter, 'id', False),
    'drug_id': (Drug, 'drug_id', False),
}

# input field -> list_options.list_id the value must be an option_id of
CODE_RULES = {
    'form_id': 'drug_form',
    'route_id': 'drug_route',
    'interval_id': 'drug_interval',
    'unit_id': 'drug_units',
    'usage_category': 'medication-usage-category',
    'request_intent': 'medication-request-intent',
}

# input field -> list_options.list_id the value must be a title of
CODE_TITLE_RULES = {
    'usage_category_title': 'medication-usage-category',
    'request_intent_title': 'medication-request-intent',
}

CONTEXTS = {
    DATABASE_INSERT_CONTEXT: (PrescriptionInsert, INSERT_REFERENCE_RULES),
    DATABASE_UPDATE_CONTEXT: (PrescriptionUpdate, UPDATE_REFERENCE_RULES),
}


def _format_error_message(error):
    message = error['msg']
    if message.startswith('Value error, '):
        message = message[len('Value error, '):]
    return message


class PrescriptionValidator:

    def validate(self, data, context):
        """
        Validates a prescription payload for the given context.
        A valid result carries the sanitized payload as its single data record;
        an invalid one carries field-keyed messages only.
        """
        if context not in CONTEXTS:
            raise ValueError(f"Unknown validation context: {context}")
        schema, reference_rules = CONTEXTS[context]

        result = ProcessingResult()
        try:
            payload = schema.model_validate(
                data,
                context={'date_format': current_app.config.get('PRESCRIPTION_DATE_FORMAT', '%Y-%m-%d')}
            )
        except ValidationError as e:
            for error in e.errors():
                field = str(error['loc'][0]) if error['loc'] else 'data'
                result.add_validation_message(field, _format_error_message(error))
            return result

        values = payload.model_dump(exclude_unset=True)

        for field, (model, column, is_uuid) in reference_rules.items():
            if values.get(field) is None:
                continue
            check = validate_id(column, model, values[field], is_uuid=is_uuid)
            if not check.is_valid():
                result.add_validation_message(field, f"invalid or nonexisting value {values[field]}")

        for field, list_id in CODE_RULES.items():
            if values.get(field) is not None and not validate_code(values[field], list_id):
                result.add_validation_message(field, f"{values[field]} is not a valid option of {list_id}")

        for field, list_id in CODE_TITLE_RULES.items():
            if values.get(field) is not None and not validate_code_title(values[field], list_id):
                result.add_validation_message(field, f"{values[field]} is not a valid title of {list_id}")

        if result.is_valid():
            result.add_data(values)
        else:
            current_app.logger.info(f"[PrescriptionValidator] {context} payload rejected: {result.validation_messages}")
        return result

    def validate_id(self, field, model, value, is_uuid=False):
        return validate_id(field, model, value, is_uuid=is_uuid)

    def validate_prescription_belongs_to_patient(self, puuid, uuid):
        """
        True if the prescription `uuid` is stored against the patient `puuid`.
        Malformed identifiers are never owned.
        """
        uuid_bytes = try_uuid_to_bytes(uuid)
        if uuid_bytes is None or try_uuid_to_bytes(puuid) is None:
            return False

        pid = get_id_by_uuid(puuid, PatientData, 'pid')
        if pid is None:
            return False

        prescription = Prescription.query.filter_by(patient_id=pid, uuid=uuid_bytes).first()
        return prescription is not None
