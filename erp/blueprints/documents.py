"""Documents blueprint: quotations, sales orders, supplier LPOs and purchase invoices."""
from flask import Blueprint, request, jsonify, current_app

from erp.database import get_session
from erp.services.document_service import (
    get_document, create_document, add_item, update_item, remove_item,
    refresh_document, detect_drift, serialize_document, serialize_item
)
from erp.services.pdf_table_service import build_pdf_table
from erp.blueprints.pricing import get_json_object, markup_defaults
from erp.blueprints.metrics import pricing_lines_computed_total, pricing_drift_detected_total

documents_bp = Blueprint('documents', __name__, url_prefix='/api/documents')


def expected_version(data=None):
    """Version the client last saw, from the body or the If-Match header."""
    if isinstance(data, dict) and data.get('expected_version') is not None:
        return data['expected_version']
    return request.headers.get('If-Match')


@documents_bp.route('/<doc_type>', methods=['POST'])
def create(doc_type):
    """Create a document with its items."""
    data = get_json_object()
    document = create_document(
        get_session(), doc_type, data,
        markup_defaults=markup_defaults(),
        default_currency=current_app.config.get('DEFAULT_CURRENCY', 'AED'),
    )
    pricing_lines_computed_total.labels(source='save').inc(len(document.items))
    return jsonify({'status': 'ok', 'document': serialize_document(document)}), 201


@documents_bp.route('/<doc_type>/<int:doc_id>', methods=['GET'])
def view(doc_type, doc_id):
    """Document with its items, stored totals and per-line recomputation."""
    document = get_document(get_session(), doc_type, doc_id)
    return jsonify({'status': 'ok', 'document': serialize_document(document)})


@documents_bp.route('/<doc_type>/<int:doc_id>/items', methods=['POST'])
def create_item(doc_type, doc_id):
    data = get_json_object()
    db_session = get_session()
    item = add_item(
        db_session, doc_type, doc_id, data,
        expected_version=expected_version(data),
        markup_defaults=markup_defaults(),
    )
    pricing_lines_computed_total.labels(source='save').inc()
    document = get_document(db_session, doc_type, doc_id)
    return jsonify({
        'status': 'ok',
        'item': serialize_item(item),
        'document': serialize_document(document),
    }), 201


@documents_bp.route('/<doc_type>/<int:doc_id>/items/<int:item_id>', methods=['PATCH'])
def edit_item(doc_type, doc_id, item_id):
    data = get_json_object()
    db_session = get_session()
    item = update_item(db_session, doc_type, doc_id, item_id, data, expected_version=expected_version(data))
    pricing_lines_computed_total.labels(source='save').inc()
    document = get_document(db_session, doc_type, doc_id)
    return jsonify({
        'status': 'ok',
        'item': serialize_item(item),
        'document': serialize_document(document),
    })


@documents_bp.route('/<doc_type>/<int:doc_id>/items/<int:item_id>', methods=['DELETE'])
def delete_item(doc_type, doc_id, item_id):
    data = request.get_json(silent=True) or {}
    document = remove_item(get_session(), doc_type, doc_id, item_id, expected_version=expected_version(data))
    return jsonify({'status': 'ok', 'document': serialize_document(document)})


@documents_bp.route('/<doc_type>/<int:doc_id>/drift', methods=['GET'])
def drift(doc_type, doc_id):
    """Report stored values that no longer match their recomputation (read-only)."""
    document = get_document(get_session(), doc_type, doc_id)
    entries = detect_drift(document)
    for entry in entries:
        pricing_drift_detected_total.labels(doc_type=doc_type, scope=entry.scope).inc()
    return jsonify({
        'status': 'ok',
        'inSync': not entries,
        'drift': [entry.to_dict() for entry in entries],
    })


@documents_bp.route('/<doc_type>/<int:doc_id>/refresh', methods=['POST'])
def refresh(doc_type, doc_id):
    """Recompute and store line and document totals."""
    data = request.get_json(silent=True) or {}
    document, totals = refresh_document(get_session(), doc_type, doc_id, expected_version=expected_version(data))
    pricing_lines_computed_total.labels(source='save').inc(len(totals.lines))
    return jsonify({
        'status': 'ok',
        'totals': totals.to_dict(include_lines=False),
        'document': serialize_document(document),
    })


@documents_bp.route('/<doc_type>/<int:doc_id>/pdf-table', methods=['GET'])
def pdf_table(doc_type, doc_id):
    """Rows and totals block for the document PDF."""
    document = get_document(get_session(), doc_type, doc_id)
    table = build_pdf_table(document)
    return jsonify({'status': 'ok', 'number': document.document_number, **table})
