# rx_app_pkg/prescriptions/routes.py
from flask import Blueprint, request, jsonify
from ..utils import permission_required
from .search import filters_from_query_args
from .services import PrescriptionService

prescriptions_bp = Blueprint('prescriptions_bp', __name__)


def _result_response(result, success_status=200, not_found_when_empty=False):
    """Maps a ProcessingResult onto an HTTP response."""
    if not result.is_valid():
        return jsonify({"message": "Validation failed.", "validationErrors": result.validation_messages}), 400
    if result.has_internal_errors():
        return jsonify({"message": "An internal error occurred.", "internalErrors": result.internal_errors}), 500
    if not_found_when_empty and not result.data:
        return jsonify({"message": "Prescription not found."}), 404
    return jsonify(result.to_dict()), success_status


def _search(puuid_bind=None):
    filters, parse_result = filters_from_query_args(request.args)
    if not parse_result.is_valid():
        return _result_response(parse_result)
    is_and = request.args.get('_or', '').lower() not in ('1', 'true')
    return _result_response(PrescriptionService().get_all(filters, is_and, puuid_bind))


@prescriptions_bp.route('/prescriptions', methods=['GET'])
@permission_required('prescription:read')
def list_prescriptions():
    return _search()


@prescriptions_bp.route('/prescriptions/<string:uuid>', methods=['GET'])
@permission_required('prescription:read')
def get_prescription(uuid):
    return _result_response(PrescriptionService().get_one(uuid), not_found_when_empty=True)


@prescriptions_bp.route('/patients/<string:puuid>/prescriptions', methods=['GET'])
@permission_required('prescription:read')
def list_patient_prescriptions(puuid):
    return _search(puuid_bind=puuid)


@prescriptions_bp.route('/patients/<string:puuid>/prescriptions/<string:uuid>', methods=['GET'])
@permission_required('prescription:read')
def get_patient_prescription(puuid, uuid):
    return _result_response(PrescriptionService().get_one(uuid, puuid_bind=puuid), not_found_when_empty=True)


@prescriptions_bp.route('/patients/<string:puuid>/prescriptions', methods=['POST'])
@permission_required('prescription:create')
def create_prescription(puuid):
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify({"message": "Request body must be a JSON object."}), 400
    data['puuid'] = puuid
    return _result_response(PrescriptionService().insert(data), success_status=201)


@prescriptions_bp.route('/patients/<string:puuid>/prescriptions/<string:uuid>', methods=['PUT'])
@permission_required('prescription:update')
def update_prescription(puuid, uuid):
    data = request.get_json(silent=True)
    if data is not None and not isinstance(data, dict):
        return jsonify({"message": "Request body must be a JSON object."}), 400
    return _result_response(PrescriptionService().update(puuid, uuid, data or {}))


@prescriptions_bp.route('/patients/<string:puuid>/prescriptions/<string:uuid>', methods=['DELETE'])
@permission_required('prescription:delete')
def delete_prescription(puuid, uuid):
    return _result_response(PrescriptionService().delete(puuid, uuid), not_found_when_empty=True)
