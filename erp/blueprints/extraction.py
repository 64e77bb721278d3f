"""Extraction blueprint: validate documents read by the AI extraction service."""
from flask import Blueprint, request, jsonify, current_app

from erp.blueprints.pricing import get_json_object
from erp.blueprints.metrics import pricing_lines_computed_total
from erp.services.extraction_service import validate_extracted_document

extraction_bp = Blueprint('extraction', __name__, url_prefix='/api/extraction')


@extraction_bp.route('/validate', methods=['POST'])
def validate():
    """
    Recompute an extracted document and report inconsistent lines and totals.

    Query params:
        tolerance: absolute tolerance in currency units (default from config)
    """
    data = get_json_object()
    tolerance = request.args.get('tolerance') or current_app.config.get('EXTRACTION_TOLERANCE')

    report = validate_extracted_document(data, tolerance=tolerance)
    pricing_lines_computed_total.labels(source='extraction').inc(len(report.lines))
    return jsonify({'status': 'ok', 'report': report.to_dict()})
