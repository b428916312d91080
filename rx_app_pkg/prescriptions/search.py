# rx_app_pkg/prescriptions/search.py
# Closed set of search filters understood by the medication view.
import enum
from sqlalchemy import and_, or_
from .. import db
from ..models import PatientData, Prescription, ListEntry
from ..uuid_registry.services import try_uuid_to_bytes
from ..validators.base import validate_id
from ..validators.processing_result import ProcessingResult


class SearchField(enum.Enum):
    DRUG = 'drug'
    STATUS = 'status'
    SOURCE_TABLE = 'source_table'
    INTENT = 'intent'
    CATEGORY = 'category'
    RXNORM_DRUGCODE = 'rxnorm_drugcode'
    ROUTE = 'route'
    ENCOUNTER_UUID = 'euuid'
    PRACTITIONER_UUID = 'pruuid'
    DRUG_UUID = 'drug_uuid'


UUID_SEARCH_FIELDS = {SearchField.ENCOUNTER_UUID, SearchField.PRACTITIONER_UUID, SearchField.DRUG_UUID}


class PatientFilter:
    """Rows belonging to the patient with this uuid."""
    key = 'patient'

    def __init__(self, puuid):
        self.puuid = puuid

    def validate(self):
        result = validate_id('uuid', PatientData, self.puuid, is_uuid=True)
        if not result.is_valid():
            return _keyed(self.key, f"invalid or nonexisting value {self.puuid}")
        return result

    def to_clause(self, columns):
        return columns['puuid'] == try_uuid_to_bytes(self.puuid)

    def __repr__(self):
        return f'<PatientFilter {self.puuid}>'


class PrescriptionIdFilter:
    """A single medication view row. The uuid may come from either source table."""
    key = '_id'

    def __init__(self, uuid):
        self.uuid = uuid

    def validate(self):
        uuid_bytes = try_uuid_to_bytes(self.uuid)
        if uuid_bytes is None:
            return _keyed(self.key, f"invalid or nonexisting value {self.uuid}")
        in_prescriptions = db.session.query(Prescription.id).filter(Prescription.uuid == uuid_bytes).first()
        in_lists = db.session.query(ListEntry.id).filter(
            ListEntry.uuid == uuid_bytes, ListEntry.type == 'medication'
        ).first()
        if in_prescriptions is None and in_lists is None:
            return _keyed(self.key, f"invalid or nonexisting value {self.uuid}")
        return ProcessingResult()

    def to_clause(self, columns):
        return columns['uuid'] == try_uuid_to_bytes(self.uuid)

    def __repr__(self):
        return f'<PrescriptionIdFilter {self.uuid}>'


class FieldEqualsFilter:
    """Exact match on one of the SearchField columns."""

    def __init__(self, field, value):
        self.field = field
        self.value = value

    @property
    def key(self):
        return self.field.value if isinstance(self.field, SearchField) else str(self.field)

    def validate(self):
        if not isinstance(self.field, SearchField):
            return _keyed(self.key, f"unknown search field {self.field}")
        if self.field in UUID_SEARCH_FIELDS and try_uuid_to_bytes(self.value) is None:
            return _keyed(self.key, f"invalid uuid {self.value}")
        return ProcessingResult()

    def to_clause(self, columns):
        value = self.value
        if self.field in UUID_SEARCH_FIELDS:
            value = try_uuid_to_bytes(value)
        return columns[self.field.value] == value

    def __repr__(self):
        return f'<FieldEqualsFilter {self.key}={self.value!r}>'


def _keyed(key, message):
    result = ProcessingResult()
    result.add_validation_message(key, message)
    return result


def validate_filters(filters):
    """Runs every filter's validation and merges the messages into one result."""
    result = ProcessingResult()
    for search_filter in filters:
        result.add_processing_result(search_filter.validate())
    return result


def build_where_clause(filters, columns, is_and=True):
    """Combines validated filters with AND or OR. Returns None when there is nothing to filter on."""
    clauses = [search_filter.to_clause(columns) for search_filter in filters]
    if not clauses:
        return None
    return and_(*clauses) if is_and else or_(*clauses)


def filters_from_query_args(args):
    """
    Translates query string arguments into filters.
    Returns (filters, result); the result carries a message for every unknown key.
    """
    filters = []
    result = ProcessingResult()
    # werkzeug MultiDict yields repeated keys only with multi=True
    items = args.items(multi=True) if hasattr(args, 'getlist') else args.items()
    for key, value in items:
        if key == '_or':
            continue
        if key == PatientFilter.key:
            filters.append(PatientFilter(value))
        elif key == PrescriptionIdFilter.key:
            filters.append(PrescriptionIdFilter(value))
        else:
            try:
                filters.append(FieldEqualsFilter(SearchField(key), value))
            except ValueError:
                result.add_validation_message(key, f"unknown search field {key}")
    return filters, result
