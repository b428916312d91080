# rx_app_pkg/validators/base.py
from .. import db
from ..models import ListOption
from ..uuid_registry.services import try_uuid_to_bytes
from .processing_result import ProcessingResult


def validate_id(field, model, value, is_uuid=False):
    """
    Checks that some row of `model` has `field` equal to `value`.
    UUID values are converted to binary first; malformed ones count as nonexistent.
    Returns a ProcessingResult that is valid when the row exists.
    """
    result = ProcessingResult()
    lookup_value = try_uuid_to_bytes(value) if is_uuid else value
    if lookup_value is None:
        result.add_validation_message(field, f"invalid or nonexisting value {value}")
        return result

    exists = db.session.query(getattr(model, field)).filter(getattr(model, field) == lookup_value).first()
    if exists is None:
        result.add_validation_message(field, f"invalid or nonexisting value {value}")
    return result


def validate_code(value, list_id):
    """True when `value` is an option_id of the given list_options list."""
    return ListOption.query.filter_by(list_id=list_id, option_id=value).first() is not None


def validate_code_title(value, list_id):
    """True when `value` is the title of an option in the given list."""
    return ListOption.query.filter_by(list_id=list_id, title=value).first() is not None


def lookup_code_title(option_id, list_id):
    option = ListOption.query.filter_by(list_id=list_id, option_id=option_id).first()
    return option.title if option else None
