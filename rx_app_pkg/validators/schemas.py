# rx_app_pkg/validators/schemas.py
# Type rules for prescription payloads, one model per operation.
from datetime import date, datetime
from typing import Annotated, Optional
from pydantic import BaseModel, ConfigDict, StrictBool, AfterValidator, BeforeValidator, ValidationInfo
from ..uuid_registry.services import is_valid_uuid

DEFAULT_DATE_FORMAT = '%Y-%m-%d'


def _parse_date(value, info: ValidationInfo):
    if isinstance(value, date) and not isinstance(value, datetime):
        return value
    if not isinstance(value, str):
        raise ValueError("must be a date string")
    date_format = (info.context or {}).get('date_format', DEFAULT_DATE_FORMAT)
    try:
        return datetime.strptime(value, date_format).date()
    except ValueError:
        raise ValueError(f"must be a valid date in the format {date_format}")


def _check_uuid(value):
    if not is_valid_uuid(value):
        raise ValueError("must be a valid UUID")
    return value.lower()


PrescriptionDate = Annotated[date, BeforeValidator(_parse_date)]
UuidStr = Annotated[str, AfterValidator(_check_uuid)]


class PrescriptionInsert(BaseModel):
    model_config = ConfigDict(extra='ignore')

    start_date: PrescriptionDate
    route: str
    puuid: UuidStr

    encounter_id: Optional[int] = None
    drug: Optional[str] = None
    drug_id: Optional[int] = None
    rxnorm_drugcode: Optional[str] = None
    quantity: Optional[str] = None
    dosage: Optional[str] = None
    size: Optional[str] = None
    refills: Optional[int] = None
    per_refill: Optional[int] = None
    note: Optional[str] = None
    drug_dosage_instructions: Optional[str] = None
    medication: Optional[StrictBool] = None
    substitute: Optional[StrictBool] = None
    active: Optional[StrictBool] = None
    end_date: Optional[PrescriptionDate] = None

    form_id: Optional[str] = None
    route_id: Optional[str] = None
    interval_id: Optional[str] = None
    unit_id: Optional[str] = None
    usage_category: Optional[str] = None
    usage_category_title: Optional[str] = None
    request_intent: Optional[str] = None
    request_intent_title: Optional[str] = None


class PrescriptionUpdate(BaseModel):
    """Every insert field is optional here; the prescription uuid is not."""
    model_config = ConfigDict(extra='ignore')

    uuid: UuidStr

    start_date: Optional[PrescriptionDate] = None
    route: Optional[str] = None
    puuid: Optional[UuidStr] = None

    encounter_id: Optional[int] = None
    drug: Optional[str] = None
    drug_id: Optional[int] = None
    rxnorm_drugcode: Optional[str] = None
    quantity: Optional[str] = None
    dosage: Optional[str] = None
    size: Optional[str] = None
    refills: Optional[int] = None
    per_refill: Optional[int] = None
    note: Optional[str] = None
    drug_dosage_instructions: Optional[str] = None
    medication: Optional[StrictBool] = None
    substitute: Optional[StrictBool] = None
    active: Optional[StrictBool] = None
    end_date: Optional[PrescriptionDate] = None

    form_id: Optional[str] = None
    route_id: Optional[str] = None
    interval_id: Optional[str] = None
    unit_id: Optional[str] = None
    usage_category: Optional[str] = None
    usage_category_title: Optional[str] = None
    request_intent: Optional[str] = None
    request_intent_title: Optional[str] = None
