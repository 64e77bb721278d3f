"""Pricing blueprint: live line and document previews for forms."""
from flask import Blueprint, request, jsonify, current_app

from erp.database import get_session
from erp.exceptions import BusinessLogicError
from erp.services.pricing_service import (
    compute_line, compute_document_totals, compute_persisted_totals, TotalsBasis
)
from erp.services.markup_service import resolve_markup, normalize_customer_type
from erp.blueprints.metrics import pricing_lines_computed_total

pricing_bp = Blueprint('pricing', __name__, url_prefix='/api/pricing')


def get_json_body():
    """Return the JSON body of the request or raise a 400."""
    data = request.get_json(silent=True)
    if data is None:
        raise BusinessLogicError('Request body must be JSON')
    return data


def get_json_object():
    """Return the JSON object body of the request or raise a 400."""
    data = get_json_body()
    if not isinstance(data, dict):
        raise BusinessLogicError('Request body must be a JSON object')
    return data


def markup_defaults():
    return {
        'retail': current_app.config.get('DEFAULT_RETAIL_MARKUP'),
        'wholesale': current_app.config.get('DEFAULT_WHOLESALE_MARKUP'),
    }


@pricing_bp.route('/line', methods=['POST'])
def compute_line_preview():
    """Compute a single line from raw form inputs."""
    data = get_json_object()

    result = compute_line(data)
    pricing_lines_computed_total.labels(source='preview').inc()
    return jsonify({'status': 'ok', 'line': result.to_dict()})


@pricing_bp.route('/document', methods=['POST'])
def compute_document_preview():
    """
    Compute document totals from raw line inputs.

    Query params:
        policy: 'abort' (default from config) or 'skip'
        basis: 'preview' (default) or 'persisted'
    """
    data = get_json_body()
    items = data.get('items') if isinstance(data, dict) else data
    if not isinstance(items, list):
        raise BusinessLogicError('Expected a list of items')

    policy = request.args.get('policy') or current_app.config.get('PRICING_AGGREGATION_POLICY', 'abort')
    try:
        basis = TotalsBasis(request.args.get('basis', TotalsBasis.PREVIEW.value))
    except ValueError:
        raise BusinessLogicError("basis must be 'preview' or 'persisted'")
    if basis is TotalsBasis.PERSISTED:
        totals = compute_persisted_totals(items, policy=policy)
    else:
        totals = compute_document_totals(items, policy=policy)

    pricing_lines_computed_total.labels(source='preview').inc(len(totals.lines))
    if totals.skipped:
        current_app.logger.warning(f"Document preview skipped {len(totals.skipped)} invalid line(s)")
    return jsonify({'status': 'ok', 'totals': totals.to_dict()})


@pricing_bp.route('/markup', methods=['GET'])
def get_markup():
    """Resolve the markup percentage for a customer type and optional item/category."""
    customer_type = normalize_customer_type(request.args.get('customer_type'))
    item_id = request.args.get('item_id', type=int)
    category_id = request.args.get('category_id', type=int)

    markup = resolve_markup(
        get_session(),
        customer_type=customer_type,
        item_id=item_id,
        category_id=category_id,
        defaults=markup_defaults(),
    )
    return jsonify({
        'status': 'ok',
        'customerType': customer_type.value,
        'markupPercent': float(markup),
    })
