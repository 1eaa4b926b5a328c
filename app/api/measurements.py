"""
Measurements API Routes Blueprint

- /api/measurements - list (type filter, search), record, clear
- /api/measurements/stats - totals for the dashboard cards
- /api/measurements/report.pdf - printable report
"""

import logging
from flask import Blueprint, request, jsonify, make_response

from app.utils.helpers import get_service, get_json_body, with_notices, error_response
from crm_data_layer import StoreError
from services.measurement_engine import MeasurementType
from services.measurement_report import render_measurement_report
from services.measurement_workflow import PinNotFound
from validators import ValidationError, format_validation_error

logger = logging.getLogger(__name__)

# Create blueprint
measurements_bp = Blueprint('measurements_bp', __name__)


@measurements_bp.route('/api/measurements', methods=['GET', 'POST', 'DELETE'])
def handle_measurements():
    workflow = get_service('workflow')
    try:
        if request.method == 'GET':
            measurement_type = request.args.get('type')
            if measurement_type and measurement_type != 'all' and measurement_type not in MeasurementType.ALL:
                return jsonify(format_validation_error('type', f'Unknown measurement type: {measurement_type}')), 400
            records = workflow.list_measurements(measurement_type, request.args.get('search'))
            return jsonify({'success': True, 'measurements': records, 'count': len(records)})

        if request.method == 'POST':
            data = get_json_body()
            record = workflow.save_measurement(data, pin_id=data.get('pin_id'))
            return jsonify(with_notices({'success': True, 'measurement': record}, workflow)), 201

        count = workflow.clear_measurements()
        return jsonify(with_notices({'success': True, 'cleared': count}, workflow))
    except (ValidationError, PinNotFound, StoreError) as e:
        return error_response(e, 'handling measurements')


@measurements_bp.route('/api/measurements/stats', methods=['GET'])
def get_measurement_stats():
    try:
        return jsonify({'success': True, 'stats': get_service('workflow').measurement_stats()})
    except StoreError as e:
        return error_response(e, 'computing measurement stats')


@measurements_bp.route('/api/measurements/report.pdf', methods=['GET'])
def get_measurement_report():
    """PDF of all measurements (same filters as the list endpoint)"""
    workflow = get_service('workflow')
    try:
        records = workflow.list_measurements(request.args.get('type'), request.args.get('search'))
        pdf = render_measurement_report(records, workflow.measurement_stats())
    except StoreError as e:
        return error_response(e, 'building the measurement report')

    response = make_response(pdf)
    response.headers['Content-Type'] = 'application/pdf'
    response.headers['Content-Disposition'] = 'attachment; filename=measurements.pdf'
    return response
