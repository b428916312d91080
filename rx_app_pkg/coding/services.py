# rx_app_pkg/coding/services.py
from flask import current_app
from ..models import MedicalCode

RXNORM_SYSTEM = 'http://www.nlm.nih.gov/research/umls/rxnorm'

# Canonical code type -> FHIR coding system
CODE_SYSTEMS = {
    'RXCUI': RXNORM_SYSTEM,
    'SNOMED-CT': 'http://snomed.info/sct',
    'NDC': 'http://hl7.org/fhir/sid/ndc',
}

CODE_TYPE_ALIASES = {
    'RXNORM': 'RXCUI',
    'SNOMED': 'SNOMED-CT',
}


def normalize_code_type(code_type):
    code_type = (code_type or '').strip().upper()
    return CODE_TYPE_ALIASES.get(code_type, code_type)


def parse_code_string(code_string):
    """
    Splits a stored code string such as 'RXCUI:1049221;NDC:0002-3227' into
    (code_type, code) pairs. Entries without a type prefix get an empty type.
    """
    pairs = []
    for part in (code_string or '').split(';'):
        part = part.strip()
        if not part:
            continue
        if ':' in part:
            code_type, code = part.split(':', 1)
        else:
            code_type, code = '', part
        code = code.strip()
        if code:
            pairs.append((normalize_code_type(code_type), code))
    return pairs


def lookup_code_description(code_type, code):
    """Returns the stored description for a code, or '' when none is known."""
    query = MedicalCode.query.filter_by(code=code)
    if code_type:
        aliases = [code_type] + [alias for alias, canonical in CODE_TYPE_ALIASES.items() if canonical == code_type]
        query = query.filter(MedicalCode.code_type.in_(aliases))
    entry = query.first()
    return entry.code_text if entry and entry.code_text else ''


def add_coding(code_string):
    """
    Resolves a code string into coding entries keyed by code:
    {"code", "code_type", "system", "description"}.
    """
    codes = {}
    for code_type, code in parse_code_string(code_string):
        codes[code] = {
            "code": code,
            "code_type": code_type,
            "system": CODE_SYSTEMS.get(code_type),
            "description": lookup_code_description(code_type, code),
        }
    if not codes:
        current_app.logger.debug(f"[Coding] No codes parsed from '{code_string}'.")
    return codes
