"""
CRM Repository - Data access for CRM entities.
Handles clients, jobs, invoices, employees, deals and notes over any table store
(LocalDataStore or DatabaseStore), plus the dashboard report stats.
"""

import logging
from datetime import datetime, date
from typing import List, Optional, Dict, Any, Tuple

from dateutil import parser as date_parser

from crm_data_layer import StoreError
from services.mirrored_table import MirrorError
from validators import (
    validate_required_fields, validate_email, validate_choice, validate_date,
    validate_number_range, validate_client_request, sanitize_string, MAX_NOTES_LENGTH
)

logger = logging.getLogger(__name__)

JOB_STATUSES = ('pending', 'in_progress', 'completed', 'cancelled')
INVOICE_STATUSES = ('pending', 'paid', 'overdue', 'cancelled')
EMPLOYEE_ROLES = ('employee', 'manager', 'admin')
DEAL_STATUSES = ('open', 'negotiation', 'won', 'lost')
NOTE_TYPES = ('client', 'job', 'general')
PERMISSION_KEYS = ('clients', 'invoices', 'reports', 'settings')

ROLE_PERMISSIONS = {
    'employee': {'clients': True, 'invoices': False, 'reports': False, 'settings': False},
    'manager': {'clients': True, 'invoices': True, 'reports': True, 'settings': False},
    'admin': {'clients': True, 'invoices': True, 'reports': True, 'settings': True},
}


def _check(*results: Tuple[bool, Optional[str]]) -> Optional[str]:
    """First error message among validator results, or None"""
    for is_valid, error in results:
        if not is_valid:
            return error
    return None


class CRMRepository:
    """Repository for CRM records stored in a table store."""

    # Fields searched by list_* when a search term is given
    SEARCH_FIELDS = {
        'clients': ('name', 'email', 'phone', 'address'),
        'jobs': ('title', 'description'),
        'invoices': ('invoice_number',),
        'employees': ('name', 'email', 'role'),
        'deals': ('title', 'company_name', 'contact_name'),
        'notes': ('title', 'content', 'reference_name'),
    }

    # Fields copied from request data on create/update
    FIELDS = {
        'clients': ('name', 'email', 'phone', 'address'),
        'jobs': ('title', 'description', 'client_id', 'status', 'scheduled_date'),
        'invoices': ('client_id', 'invoice_number', 'amount', 'due_date', 'status'),
        'employees': ('name', 'email', 'role', 'permissions', 'is_active'),
        'deals': ('title', 'amount', 'status', 'probability', 'expected_close_date',
                  'company_name', 'contact_name'),
        'notes': ('title', 'content', 'type', 'reference_id'),
    }

    DEFAULTS = {
        'jobs': {'status': 'pending'},
        'invoices': {'status': 'pending', 'amount': 0.0},
        'employees': {'role': 'employee', 'is_active': True},
        'deals': {'status': 'open', 'amount': 0.0, 'probability': 0},
        'notes': {'type': 'general'},
    }

    SINGULAR = {
        'clients': 'client', 'jobs': 'job', 'invoices': 'invoice',
        'employees': 'employee', 'deals': 'deal', 'notes': 'note',
    }

    def __init__(self, store, pins=None):
        self.store = store
        # PinStore owning the local pin copy; pins are read and unlinked through it
        self.pins = pins

    # =========================================================================
    # VALIDATION
    # =========================================================================

    def _validate(self, table: str, data: Dict, is_update: bool) -> Optional[str]:
        if table == 'clients':
            return _check(validate_client_request(data, is_update))

        required = {
            'jobs': ['title'], 'invoices': ['invoice_number'], 'employees': ['name'],
            'deals': ['title'], 'notes': ['title'],
        }[table]
        if not is_update:
            error = _check(validate_required_fields(data, required))
            if error:
                return error

        results = []
        if table == 'jobs':
            if 'status' in data:
                results.append(validate_choice(data['status'], JOB_STATUSES, 'status'))
            if data.get('scheduled_date'):
                results.append(validate_date(data['scheduled_date']))
        elif table == 'invoices':
            if 'amount' in data:
                results.append(validate_number_range(data['amount'], min_value=0))
            if 'status' in data:
                results.append(validate_choice(data['status'], INVOICE_STATUSES, 'status'))
            if data.get('due_date'):
                results.append(validate_date(data['due_date']))
        elif table == 'employees':
            if data.get('email'):
                results.append(validate_email(data['email'].strip()))
            if 'role' in data:
                results.append(validate_choice(data['role'], EMPLOYEE_ROLES, 'role'))
            if 'permissions' in data and not isinstance(data['permissions'], dict):
                results.append((False, "permissions must be an object"))
        elif table == 'deals':
            if 'amount' in data:
                results.append(validate_number_range(data['amount'], min_value=0))
            if 'probability' in data:
                results.append(validate_number_range(data['probability'], 0, 100))
            if 'status' in data:
                results.append(validate_choice(data['status'], DEAL_STATUSES, 'status'))
            if data.get('expected_close_date'):
                results.append(validate_date(data['expected_close_date']))
        elif table == 'notes':
            if 'type' in data:
                results.append(validate_choice(data['type'], NOTE_TYPES, 'type'))
            if data.get('content') and len(data['content']) > MAX_NOTES_LENGTH:
                results.append((False, f"Note too long (maximum {MAX_NOTES_LENGTH} characters)"))
        return _check(*results)

    def _clean(self, table: str, data: Dict) -> Dict:
        row = {}
        for field in self.FIELDS[table]:
            if field in data:
                value = data[field]
                row[field] = sanitize_string(value, MAX_NOTES_LENGTH) if isinstance(value, str) else value
        if table == 'employees' and ('role' in row or 'permissions' in row):
            row['permissions'] = self._permissions(row.get('role', 'employee'), row.get('permissions'))
        if table == 'notes' and 'reference_id' in row:
            row['reference_name'] = self._reference_name(row.get('type', 'general'), row['reference_id'])
        return row

    def _permissions(self, role: str, permissions: Optional[Dict]) -> Dict[str, bool]:
        """Role defaults overridden by any explicit permission flags"""
        result = dict(ROLE_PERMISSIONS.get(role, ROLE_PERMISSIONS['employee']))
        for key in PERMISSION_KEYS:
            if permissions and key in permissions:
                result[key] = bool(permissions[key])
        return result

    def _reference_name(self, note_type: str, reference_id: Optional[str]) -> Optional[str]:
        if not reference_id:
            return None
        if note_type == 'client':
            client = self.store.get('clients', reference_id)
            return client['name'] if client else None
        if note_type == 'job':
            job = self.store.get('jobs', reference_id)
            return job['title'] if job else None
        return None

    # =========================================================================
    # GENERIC OPERATIONS
    # =========================================================================

    def _list(self, table: str, search: str = None, status: str = None,
              page: int = 1, per_page: int = 50, sort_by: str = 'created_at',
              sort_order: str = 'desc', **filters) -> Dict:
        filters = {k: v for k, v in filters.items() if v is not None}
        if status:
            filters['type' if table == 'notes' else 'status'] = status
        records = self.store.select(table, filters or None, order_by=sort_by or None,
                                    descending=(sort_order or 'desc').lower() == 'desc')

        if search:
            search_lower = search.lower()
            records = [r for r in records if any(
                search_lower in str(r.get(field) or '').lower()
                for field in self.SEARCH_FIELDS[table]
            )]

        # Pagination
        page = max(1, page)
        per_page = max(1, per_page)
        total = len(records)
        start = (page - 1) * per_page
        return {
            'success': True,
            table: records[start:start + per_page],
            'pagination': {
                'page': page,
                'per_page': per_page,
                'total': total,
                'total_pages': (total + per_page - 1) // per_page
            }
        }

    def _get(self, table: str, record_id: str) -> Dict:
        name = self.SINGULAR[table]
        record = self.store.get(table, record_id)
        if not record:
            return {'success': False, 'error': f'{name.capitalize()} not found'}
        return {'success': True, name: record}

    def _create(self, table: str, data: Dict) -> Dict:
        data = data or {}
        error = self._validate(table, data, is_update=False)
        if error:
            return {'success': False, 'error': error}

        now = datetime.utcnow().isoformat()
        row = dict(self.DEFAULTS.get(table, {}))
        if table == 'employees':
            row['permissions'] = self._permissions(data.get('role', 'employee'), None)
        row.update(self._clean(table, data))
        row['created_at'] = now
        row['updated_at'] = now

        record = self.store.insert(table, row)
        logger.info(f"Created {self.SINGULAR[table]}: {record['id']}")
        return {'success': True, self.SINGULAR[table]: record}

    def _update(self, table: str, record_id: str, data: Dict) -> Dict:
        data = data or {}
        name = self.SINGULAR[table]
        existing = self.store.get(table, record_id)
        if not existing:
            return {'success': False, 'error': f'{name.capitalize()} not found'}

        error = self._validate(table, data, is_update=True)
        if error:
            return {'success': False, 'error': error}

        changes = self._clean(table, data)
        if table == 'employees' and 'permissions' in changes and 'role' not in changes:
            changes['permissions'] = self._permissions(existing.get('role', 'employee'), data.get('permissions'))
        if table == 'notes' and 'reference_id' in changes and 'type' not in changes:
            changes['reference_name'] = self._reference_name(existing.get('type'), changes['reference_id'])
        changes['updated_at'] = datetime.utcnow().isoformat()

        record = self.store.update(table, record_id, changes)
        logger.info(f"Updated {name}: {record_id}")
        return {'success': True, name: record}

    def _delete(self, table: str, record_id: str) -> Dict:
        name = self.SINGULAR[table]
        if not self.store.delete(table, record_id):
            return {'success': False, 'error': f'{name.capitalize()} not found'}
        logger.info(f"Deleted {name}: {record_id}")
        return {'success': True, 'message': f'{name.capitalize()} deleted'}

    # =========================================================================
    # CLIENTS
    # =========================================================================

    def list_clients(self, **kwargs) -> Dict:
        return self._list('clients', **kwargs)

    def get_client(self, client_id: str) -> Dict:
        """Get a client with its jobs, invoices and pins"""
        result = self._get('clients', client_id)
        if not result['success']:
            return result
        jobs = self.store.select('jobs', {'client_id': client_id}, order_by='created_at', descending=True)
        invoices = self.store.select('invoices', {'client_id': client_id}, order_by='created_at', descending=True)
        result.update({
            'jobs': jobs,
            'invoices': invoices,
            'pins': self._client_pins(client_id),
            'stats': {
                'total_jobs': len(jobs),
                'active_jobs': len([j for j in jobs if j.get('status') in ('pending', 'in_progress')]),
                'total_invoiced': sum(i.get('amount') or 0 for i in invoices),
                'total_paid': sum(i.get('amount') or 0 for i in invoices if i.get('status') == 'paid'),
            }
        })
        return result

    def create_client(self, data: Dict) -> Dict:
        data = data or {}
        email = (data.get('email') or '').strip().lower()
        if email and any((c.get('email') or '').lower() == email for c in self.store.select('clients')):
            return {'success': False, 'error': 'A client with this email already exists'}
        return self._create('clients', data)

    def update_client(self, client_id: str, data: Dict) -> Dict:
        data = data or {}
        email = (data.get('email') or '').strip().lower()
        if email and any((c.get('email') or '').lower() == email and c['id'] != client_id
                         for c in self.store.select('clients')):
            return {'success': False, 'error': 'Another client with this email already exists'}
        return self._update('clients', client_id, data)

    def _client_pins(self, client_id: str) -> List[Dict]:
        if self.pins is not None:
            return self.pins.rows({'client_id': client_id})
        return self.store.select('pins', {'client_id': client_id})

    def _unlink_pin(self, pin_id: str) -> None:
        if self.pins is None:
            self.store.update('pins', pin_id, {'client_id': None})
            return
        try:
            self.pins.assign_client(pin_id, None)
        except MirrorError as e:
            logger.warning(f"Pin {pin_id} unlinked locally only: {e}")

    def delete_client(self, client_id: str, cascade: bool = False) -> Dict:
        """Delete a client; related jobs, invoices and pins need cascade=True and are unlinked"""
        if not self.store.get('clients', client_id):
            return {'success': False, 'error': 'Client not found'}

        related = {
            table: self.store.select(table, {'client_id': client_id})
            for table in ('jobs', 'invoices')
        }
        related['pins'] = self._client_pins(client_id)
        if any(related.values()) and not cascade:
            return {
                'success': False,
                'error': 'Client has related records. Use cascade=true to unlink them and delete the client.',
                'related': {table: len(rows) for table, rows in related.items()}
            }

        now = datetime.utcnow().isoformat()
        for table in ('jobs', 'invoices'):
            for row in related[table]:
                self.store.update(table, row['id'], {'client_id': None, 'updated_at': now})
        for pin in related['pins']:
            self._unlink_pin(pin['id'])

        return self._delete('clients', client_id)

    # =========================================================================
    # JOBS
    # =========================================================================

    def list_jobs(self, client_id: str = None, **kwargs) -> Dict:
        return self._list('jobs', client_id=client_id, **kwargs)

    def get_job(self, job_id: str) -> Dict:
        result = self._get('jobs', job_id)
        if result['success'] and result['job'].get('client_id'):
            result['client'] = self.store.get('clients', result['job']['client_id'])
        return result

    def create_job(self, data: Dict) -> Dict:
        error = self._missing_client(data)
        if error:
            return error
        return self._create('jobs', data)

    def update_job(self, job_id: str, data: Dict) -> Dict:
        error = self._missing_client(data)
        if error:
            return error
        return self._update('jobs', job_id, data)

    def delete_job(self, job_id: str) -> Dict:
        return self._delete('jobs', job_id)

    def _missing_client(self, data: Optional[Dict]) -> Optional[Dict]:
        client_id = (data or {}).get('client_id')
        if client_id and not self.store.get('clients', client_id):
            return {'success': False, 'error': 'Client not found'}
        return None

    # =========================================================================
    # INVOICES
    # =========================================================================

    def list_invoices(self, client_id: str = None, **kwargs) -> Dict:
        return self._list('invoices', client_id=client_id, **kwargs)

    def get_invoice(self, invoice_id: str) -> Dict:
        return self._get('invoices', invoice_id)

    def create_invoice(self, data: Dict) -> Dict:
        error = self._missing_client(data)
        if error:
            return error
        return self._create('invoices', data)

    def update_invoice(self, invoice_id: str, data: Dict) -> Dict:
        error = self._missing_client(data)
        if error:
            return error
        return self._update('invoices', invoice_id, data)

    def delete_invoice(self, invoice_id: str) -> Dict:
        return self._delete('invoices', invoice_id)

    # =========================================================================
    # EMPLOYEES
    # =========================================================================

    def list_employees(self, **kwargs) -> Dict:
        return self._list('employees', **kwargs)

    def get_employee(self, employee_id: str) -> Dict:
        return self._get('employees', employee_id)

    def create_employee(self, data: Dict) -> Dict:
        return self._create('employees', data)

    def update_employee(self, employee_id: str, data: Dict) -> Dict:
        return self._update('employees', employee_id, data)

    def delete_employee(self, employee_id: str) -> Dict:
        return self._delete('employees', employee_id)

    # =========================================================================
    # DEALS
    # =========================================================================

    def list_deals(self, **kwargs) -> Dict:
        return self._list('deals', **kwargs)

    def get_deal(self, deal_id: str) -> Dict:
        return self._get('deals', deal_id)

    def create_deal(self, data: Dict) -> Dict:
        return self._create('deals', data)

    def update_deal(self, deal_id: str, data: Dict) -> Dict:
        return self._update('deals', deal_id, data)

    def delete_deal(self, deal_id: str) -> Dict:
        return self._delete('deals', deal_id)

    # =========================================================================
    # NOTES
    # =========================================================================

    def list_notes(self, reference_id: str = None, **kwargs) -> Dict:
        return self._list('notes', reference_id=reference_id, **kwargs)

    def get_note(self, note_id: str) -> Dict:
        return self._get('notes', note_id)

    def create_note(self, data: Dict) -> Dict:
        return self._create('notes', data)

    def update_note(self, note_id: str, data: Dict) -> Dict:
        return self._update('notes', note_id, data)

    def delete_note(self, note_id: str) -> Dict:
        return self._delete('notes', note_id)

    # =========================================================================
    # REPORTS
    # =========================================================================

    def _is_overdue(self, invoice: Dict, today: date) -> bool:
        if invoice.get('status') == 'overdue':
            return True
        if invoice.get('status') != 'pending' or not invoice.get('due_date'):
            return False
        try:
            return date_parser.parse(invoice['due_date']).date() < today
        except (ValueError, OverflowError):
            logger.warning(f"Invoice {invoice.get('id')} has an unparseable due date")
            return False

    def get_report_stats(self, today: Optional[date] = None) -> Dict:
        """Dashboard totals, job breakdown, recent jobs, invoice and pipeline figures"""
        today = today or date.today()
        try:
            clients = self.store.select('clients')
            jobs = self.store.select('jobs', order_by='created_at', descending=True)
            notes = self.store.select('notes')
            invoices = self.store.select('invoices')
            deals = self.store.select('deals')
        except StoreError as e:
            logger.error(f"Error building report stats: {e}")
            return {'success': False, 'error': str(e)}

        jobs_by_status = {}
        for job in jobs:
            status = job.get('status') or 'pending'
            jobs_by_status[status] = jobs_by_status.get(status, 0) + 1

        overdue = [i for i in invoices if self._is_overdue(i, today)]
        overdue_ids = {i['id'] for i in overdue}
        open_deals = [d for d in deals if d.get('status') in ('open', 'negotiation')]

        return {
            'success': True,
            'stats': {
                'total_clients': len(clients),
                'total_jobs': len(jobs),
                'total_notes': len(notes),
                'jobs_by_status': jobs_by_status,
                'recent_jobs': [
                    {k: j.get(k) for k in ('id', 'title', 'status', 'created_at')}
                    for j in jobs[:10]
                ],
                'invoices': {
                    'total': len(invoices),
                    'outstanding_amount': sum(
                        i.get('amount') or 0 for i in invoices
                        if i.get('status') == 'pending' and i['id'] not in overdue_ids
                    ),
                    'paid_amount': sum(i.get('amount') or 0 for i in invoices if i.get('status') == 'paid'),
                    'overdue_amount': sum(i.get('amount') or 0 for i in overdue),
                    'overdue_count': len(overdue),
                },
                'deals': {
                    'open_count': len(open_deals),
                    'pipeline_value': sum(d.get('amount') or 0 for d in open_deals),
                    'weighted_value': sum(
                        (d.get('amount') or 0) * (d.get('probability') or 0) / 100 for d in open_deals
                    ),
                    'won_value': sum(d.get('amount') or 0 for d in deals if d.get('status') == 'won'),
                },
            }
        }
