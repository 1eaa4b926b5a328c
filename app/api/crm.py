"""
CRM API Routes Blueprint

Paginated, searchable CRM records plus the reports dashboard:
- /api/crm/clients, /api/crm/jobs, /api/crm/invoices
- /api/crm/employees, /api/crm/deals, /api/crm/notes
- /api/crm/reports - Dashboard statistics

Each resource supports GET/POST on the collection and GET/PUT/DELETE on /<id>.
"""

import logging
from flask import Blueprint, request, jsonify

from app.utils.helpers import get_service, get_json_body, get_int_arg
from crm_data_layer import StoreError

logger = logging.getLogger(__name__)

# Create blueprint
crm_bp = Blueprint('crm_bp', __name__)

# Collection name -> (singular, query args passed through as filters)
RESOURCES = {
    'clients': ('client', ()),
    'jobs': ('job', ('client_id', 'status')),
    'invoices': ('invoice', ('client_id', 'status')),
    'employees': ('employee', ()),
    'deals': ('deal', ('status',)),
    'notes': ('note', ('reference_id', 'status')),
}


def _not_found_or_bad_request(result):
    return 404 if 'not found' in result.get('error', '').lower() else 400


def _make_collection_view(collection, singular, filter_args):
    def handle_collection():
        try:
            crm = get_service('crm')
            if request.method == 'GET':
                filters = {arg: request.args.get(arg) for arg in filter_args}
                result = getattr(crm, f'list_{collection}')(
                    search=request.args.get('search'),
                    page=get_int_arg('page', 1),
                    per_page=get_int_arg('per_page', 50),
                    sort_by=request.args.get('sort_by', 'created_at'),
                    sort_order=request.args.get('sort_order', 'desc'),
                    **filters
                )
                return jsonify(result)
            result = getattr(crm, f'create_{singular}')(get_json_body())
            if result['success']:
                return jsonify(result), 201
            return jsonify(result), _not_found_or_bad_request(result)
        except StoreError as e:
            logger.error(f"Error handling {collection}: {str(e)}")
            return jsonify({'success': False, 'error': str(e)}), 500

    handle_collection.__name__ = f'handle_{collection}'
    return handle_collection


def _make_item_view(collection, singular):
    def handle_item(record_id):
        try:
            crm = get_service('crm')
            if request.method == 'GET':
                result = getattr(crm, f'get_{singular}')(record_id)
                if not result['success']:
                    return jsonify(result), 404
                return jsonify(result)

            elif request.method == 'PUT':
                result = getattr(crm, f'update_{singular}')(record_id, get_json_body())
                if not result['success']:
                    return jsonify(result), _not_found_or_bad_request(result)
                return jsonify(result)

            if collection == 'clients':
                cascade = request.args.get('cascade', 'false').lower() == 'true'
                result = crm.delete_client(record_id, cascade=cascade)
            else:
                result = getattr(crm, f'delete_{singular}')(record_id)
            if not result['success']:
                return jsonify(result), 400 if 'related' in result else 404
            return jsonify(result)
        except StoreError as e:
            logger.error(f"Error handling {singular} {record_id}: {str(e)}")
            return jsonify({'success': False, 'error': str(e)}), 500

    handle_item.__name__ = f'handle_{singular}'
    return handle_item


for _collection, (_singular, _filters) in RESOURCES.items():
    crm_bp.add_url_rule(
        f'/api/crm/{_collection}',
        view_func=_make_collection_view(_collection, _singular, _filters),
        methods=['GET', 'POST']
    )
    crm_bp.add_url_rule(
        f'/api/crm/{_collection}/<record_id>',
        view_func=_make_item_view(_collection, _singular),
        methods=['GET', 'PUT', 'DELETE']
    )


# ============================================================================
# REPORTS
# ============================================================================

@crm_bp.route('/api/crm/reports', methods=['GET'])
def get_reports():
    """Dashboard totals, jobs by status, recent jobs, invoices and deal pipeline"""
    result = get_service('crm').get_report_stats()
    if not result['success']:
        return jsonify(result), 500
    return jsonify(result)
