# rx_app_pkg/prescriptions/queries.py
# Read side of prescriptions: one select over the union of the prescriptions table
# and the medication entries of the issue list.
from sqlalchemy import select, union, case, and_, func, literal, null, cast, String, LargeBinary
from ..models import (Prescription, Drug, ListEntry, ListMedication, IssueEncounter, User,
                      ListOption, PatientData, FormEncounter)

ROUTE_LIST_ID = 'drug_route'
INTERVAL_LIST_ID = 'drug_interval'
UNIT_LIST_ID = 'drug_units'

# Prescriptions are completed orders as far as MedicationRequest is concerned.
PRESCRIPTION_INTENT = 'order'
PRESCRIPTION_INTENT_TITLE = 'Order'
PRESCRIPTION_CATEGORY = 'community'
PRESCRIPTION_CATEGORY_TITLE = 'Home/Community'
CATEGORY_TEXT = 'Community'


def status_case(end_date, active):
    """completed / active / stopped, derived the same way for both sources."""
    return case(
        (and_(end_date.isnot(None), active == 1), 'completed'),
        (active == 1, 'active'),
        else_='stopped',
    )


def _prescriptions_source():
    rxnorm_drugcode = case(
        (Prescription.rxnorm_drugcode != '', Prescription.rxnorm_drugcode),
        (Drug.drug_code.is_(None), ''),
        else_=literal('RXCUI:', String).concat(Drug.drug_code),
    )
    return (
        select(
            Prescription.uuid.label('uuid'),
            literal('prescriptions', String).label('source_table'),
            Prescription.drug.label('drug'),
            Prescription.active.label('active'),
            Prescription.end_date.label('end_date'),
            literal(PRESCRIPTION_INTENT, String).label('intent'),
            literal(PRESCRIPTION_INTENT_TITLE, String).label('intent_title'),
            literal(PRESCRIPTION_CATEGORY, String).label('category'),
            literal(PRESCRIPTION_CATEGORY_TITLE, String).label('category_title'),
            rxnorm_drugcode.label('rxnorm_drugcode'),
            Prescription.date_added.label('date_added'),
            func.coalesce(Prescription.unit, Drug.unit).label('unit'),
            Prescription.interval.label('interval'),
            func.coalesce(Prescription.route, Drug.route).label('route'),
            Prescription.note.label('note'),
            Prescription.patient_id.label('patient_id'),
            Prescription.encounter.label('encounter'),
            Prescription.provider_id.label('provider_id'),
            Drug.uuid.label('drug_uuid'),
            Prescription.drug_dosage_instructions.label('drug_dosage_instructions'),
            status_case(Prescription.end_date, Prescription.active).label('status'),
        )
        .select_from(Prescription)
        .outerjoin(Drug, Prescription.drug_id == Drug.drug_id)
    )


def _medication_list_source():
    # An issue can be tied to many encounters; only the first one is reported.
    issues_encounter = (
        select(
            IssueEncounter.pid.label('issues_encounter_pid'),
            IssueEncounter.list_id.label('issues_encounter_list_id'),
            func.min(IssueEncounter.encounter).label('issues_encounter_encounter'),
        )
        .group_by(IssueEncounter.pid, IssueEncounter.list_id)
        .subquery('issues_encounter')
    )
    return (
        select(
            ListEntry.uuid.label('uuid'),
            literal('lists', String).label('source_table'),
            ListEntry.title.label('drug'),
            ListEntry.activity.label('active'),
            ListEntry.enddate.label('end_date'),
            ListMedication.request_intent.label('intent'),
            ListMedication.request_intent_title.label('intent_title'),
            ListMedication.usage_category.label('category'),
            ListMedication.usage_category_title.label('category_title'),
            ListEntry.diagnosis.label('rxnorm_drugcode'),
            ListEntry.date.label('date_added'),
            cast(null(), String).label('unit'),
            cast(null(), String).label('interval'),
            cast(null(), String).label('route'),
            ListEntry.comments.label('note'),
            ListEntry.pid.label('patient_id'),
            issues_encounter.c.issues_encounter_encounter.label('encounter'),
            User.id.label('provider_id'),
            cast(null(), LargeBinary).label('drug_uuid'),
            ListMedication.drug_dosage_instructions.label('drug_dosage_instructions'),
            status_case(ListEntry.enddate, ListEntry.activity).label('status'),
        )
        .select_from(ListEntry)
        .outerjoin(User, User.username == ListEntry.user)
        .outerjoin(ListMedication, ListMedication.list_id == ListEntry.id)
        .outerjoin(
            issues_encounter,
            and_(
                ListEntry.pid == issues_encounter.c.issues_encounter_pid,
                ListEntry.id == issues_encounter.c.issues_encounter_list_id,
            ),
        )
        .where(ListEntry.type == 'medication')
    )


def _list_options(list_id, prefix):
    return (
        select(
            ListOption.option_id.label(f'{prefix}_id'),
            ListOption.title.label(f'{prefix}_title'),
            ListOption.codes.label(f'{prefix}_codes'),
        )
        .where(ListOption.list_id == list_id)
        .subquery(f'{prefix}s_list')
    )


def build_prescription_query():
    """
    Builds the unified medication select.
    Returns (statement, columns) where columns maps each output name to the
    expression it is selected from, for use in WHERE clauses.
    """
    combined = union(_prescriptions_source(), _medication_list_source()).subquery('combined_prescriptions')

    routes_list = _list_options(ROUTE_LIST_ID, 'route')
    intervals_list = _list_options(INTERVAL_LIST_ID, 'interval')
    units_list = _list_options(UNIT_LIST_ID, 'unit')

    patient = select(PatientData.uuid.label('puuid'), PatientData.pid.label('pid')).subquery('patient')
    encounter = select(
        FormEncounter.encounter.label('encounter'),
        FormEncounter.uuid.label('euuid'),
    ).subquery('encounter')
    # Only credentialed practitioners resolve.
    practitioner = (
        select(User.id.label('practitioner_id'), User.uuid.label('pruuid'))
        .where(User.npi.isnot(None), User.npi != '')
        .subquery('practitioner')
    )

    columns = {
        'uuid': combined.c.uuid,
        'source_table': combined.c.source_table,
        'drug': combined.c.drug,
        'active': combined.c.active,
        'intent': combined.c.intent,
        'category': combined.c.category,
        'intent_title': combined.c.intent_title,
        'category_title': combined.c.category_title,
        'category_text': literal(CATEGORY_TEXT, String),
        'rxnorm_drugcode': combined.c.rxnorm_drugcode,
        'date_added': combined.c.date_added,
        'unit': combined.c.unit,
        'interval': combined.c.interval,
        'route': combined.c.route,
        'note': combined.c.note,
        'status': combined.c.status,
        'drug_dosage_instructions': combined.c.drug_dosage_instructions,
        'puuid': patient.c.puuid,
        'euuid': encounter.c.euuid,
        'pruuid': practitioner.c.pruuid,
        'drug_uuid': combined.c.drug_uuid,
        'route_id': routes_list.c.route_id,
        'route_title': routes_list.c.route_title,
        'route_codes': routes_list.c.route_codes,
        'unit_id': units_list.c.unit_id,
        'unit_title': units_list.c.unit_title,
        'unit_codes': units_list.c.unit_codes,
        'interval_id': intervals_list.c.interval_id,
        'interval_title': intervals_list.c.interval_title,
        'interval_codes': intervals_list.c.interval_codes,
    }

    joined = (
        combined
        .outerjoin(routes_list, routes_list.c.route_id == combined.c.route)
        .outerjoin(intervals_list, intervals_list.c.interval_id == combined.c.interval)
        .outerjoin(units_list, units_list.c.unit_id == combined.c.unit)
        .outerjoin(patient, patient.c.pid == combined.c.patient_id)
        .outerjoin(encounter, encounter.c.encounter == combined.c.encounter)
        .outerjoin(practitioner, practitioner.c.practitioner_id == combined.c.provider_id)
    )

    statement = (
        select(*[expression.label(name) for name, expression in columns.items()])
        .select_from(joined)
        .order_by(combined.c.date_added, combined.c.source_table)
    )
    return statement, columns
